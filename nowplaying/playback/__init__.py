"""Playback queue module."""

from .metadata import MetadataConverter
from .policy import is_index_playable
from .provider import PlaylistError, PlaylistProvider, load_playlist
from .queue import (
    InvalidSourceRecordError,
    MetadataIntegrityError,
    MetadataUpdateListener,
    QueueError,
    QueueManager,
    ResolverUnavailableError,
    TrackNotFoundError,
)
from .resolver import DirectResourceResolver, ResolveError, ResourceResolver
from .traversal import TraversalView
from .types import (
    Artwork,
    NowPlayingMetadata,
    PlayableResource,
    QueueMode,
    QueueState,
    SourceRecord,
    TrackDescriptor,
)

__all__ = [
    # Types
    "Artwork",
    "NowPlayingMetadata",
    "PlayableResource",
    "QueueMode",
    "QueueState",
    "SourceRecord",
    "TrackDescriptor",
    # Queue
    "QueueManager",
    "MetadataUpdateListener",
    "TraversalView",
    "is_index_playable",
    # Collaborators
    "MetadataConverter",
    "PlaylistProvider",
    "load_playlist",
    "ResourceResolver",
    "DirectResourceResolver",
    # Errors
    "QueueError",
    "InvalidSourceRecordError",
    "TrackNotFoundError",
    "MetadataIntegrityError",
    "ResolverUnavailableError",
    "PlaylistError",
    "ResolveError",
]
