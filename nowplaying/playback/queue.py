"""
Now-playing queue management.

Tracks the current position over the playlist, supports sequential and
shuffled traversal, and drives the metadata refresh protocol: a synchronous
metadata push followed by an asynchronous cover art enrichment.

All index and mode mutations are expected to come from a single owner
(the event loop thread). Art enrichment completes on a task and may land
after a newer refresh cycle has already pushed its metadata.
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Callable, Iterable, Optional, Union

from .metadata import MetadataConverter
from .policy import is_index_playable
from .provider import PlaylistProvider
from .resolver import ResolveError, ResourceResolver
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

if TYPE_CHECKING:
    from nowplaying.artwork.fetcher import ImageFetcher

logger = logging.getLogger(__name__)

# Default edge length requested for now-playing art
DEFAULT_ARTWORK_SIZE = 144

ResolverFactory = Callable[[], ResourceResolver]


class QueueError(Exception):
    """Base class for queue errors."""

    pass


class InvalidSourceRecordError(QueueError, ValueError):
    """Source record is missing or has a blank track id."""

    pass


class TrackNotFoundError(QueueError, LookupError):
    """No descriptor matches the requested track id."""

    pass


class MetadataIntegrityError(QueueError, ValueError):
    """A resolvable track has no now-playing metadata."""

    pass


class ResolverUnavailableError(QueueError, RuntimeError):
    """No resource resolver was bound before first use."""

    pass


class MetadataUpdateListener(ABC):
    """Observer for queue position and metadata changes."""

    @abstractmethod
    def on_index_changed(self, index: int) -> None:
        """Current index was repositioned by track id."""
        pass

    @abstractmethod
    def on_metadata_changed(self, metadata: NowPlayingMetadata) -> None:
        """New metadata is available (base or artwork-enriched)."""
        pass

    @abstractmethod
    def on_metadata_error(self) -> None:
        """Metadata refresh found no current track."""
        pass


class QueueManager:
    """
    Queue manager for the now-playing session.

    Handles:
    - Current index tracking with playability validation
    - Sequential and shuffled traversal
    - Repositioning by track id
    - In-place patching of descriptors from upstream records
    - Metadata refresh with asynchronous artwork enrichment
    """

    def __init__(
        self,
        provider: PlaylistProvider,
        converter: MetadataConverter,
        image_fetcher: Optional["ImageFetcher"],
        resolver: Union[ResourceResolver, ResolverFactory, None] = None,
        artwork_size: int = DEFAULT_ARTWORK_SIZE,
        view: Optional[TraversalView] = None,
    ) -> None:
        """
        Initialize queue manager.

        Args:
            provider: Playlist provider owning the descriptors
            converter: Metadata converter for now-playing metadata
            image_fetcher: Asynchronous artwork loader, None disables artwork
            resolver: Any object with a ``resolve`` method, or a zero-argument
                factory called on first resolution (breaks construction cycles
                with the host)
            artwork_size: Edge length requested for artwork
            view: Optional traversal view (defaults to sequential over provider)
        """
        self._provider = provider
        self._converter = converter
        self._image_fetcher = image_fetcher
        self._view = view or TraversalView(provider)
        self._artwork_size = artwork_size

        self._resolver: Optional[ResourceResolver] = None
        self._resolver_factory: Optional[ResolverFactory] = None
        if resolver is not None and hasattr(resolver, "resolve"):
            self._resolver = resolver  # type: ignore[assignment]
        else:
            self._resolver_factory = resolver  # type: ignore[assignment]

        self._current_index: int = 0
        self._listener: Optional[MetadataUpdateListener] = None

        logger.debug("QueueManager initialized")

    # =========================================================================
    # Listener and State
    # =========================================================================

    def set_update_listener(self, listener: Optional[MetadataUpdateListener]) -> None:
        """Register the metadata listener, replacing any previous one."""
        self._listener = listener

    @property
    def current_index(self) -> int:
        return self._current_index

    @property
    def current_queue_size(self) -> int:
        """Length of the list exposed for the active mode."""
        return len(self._view.get_ordered_list())

    @property
    def mode(self) -> QueueMode:
        return self._view.mode

    def set_mode(self, mode: QueueMode) -> None:
        """
        Switch traversal mode.

        The current index is kept as is and only re-validated on next use.
        """
        self._view.set_mode(mode)
        logger.info(f"Queue mode: {mode.value}")

    def update_list(self, tracks: Iterable[TrackDescriptor]) -> None:
        """Replace the playlist. The current index is not touched."""
        self._provider.set_list(tracks)

    def get_state(self) -> QueueState:
        """Get current queue state snapshot."""
        tracks = self._view.get_ordered_list()
        current_id: Optional[str] = None
        if is_index_playable(self._current_index, tracks):
            current_id = tracks[self._current_index].track_id
        return QueueState(
            current_index=self._current_index,
            mode=self._view.mode,
            queue_size=len(tracks),
            current_track_id=current_id,
        )

    # =========================================================================
    # Navigation
    # =========================================================================

    def is_same_track(self, track_id: str) -> bool:
        """Check whether ``track_id`` is the current resolved track."""
        current = self.current_track()
        if current is None:
            return False
        return track_id == current.track_id

    def skip_by(self, amount: int) -> bool:
        """
        Move the current index by ``amount``.

        Underflow clamps to the first position; overflow wraps around the
        queue length.

        Returns:
            True if the new position is playable and was committed
        """
        tracks = self._view.get_ordered_list()
        if not tracks:
            return False

        index = self._current_index + amount
        if index < 0:
            index = 0
        else:
            index %= len(tracks)

        if not is_index_playable(index, tracks):
            logger.debug(f"Skip by {amount} rejected: index {index} not playable")
            return False

        logger.debug(f"Queue index: {self._current_index} -> {index}")
        self._current_index = index
        return True

    def update_index_by_id(self, track_id: str) -> bool:
        """
        Reposition to ``track_id``.

        The index is looked up in provider order and validated against the
        list for the active mode.

        Returns:
            True if a matching, playable position was committed
        """
        index = self._provider.find_index_by_id(track_id)
        if not is_index_playable(index, self._view.get_ordered_list()):
            logger.debug(f"Track {track_id} not at a playable position ({index})")
            return False

        self._current_index = index
        if self._listener:
            self._listener.on_index_changed(index)
        return True

    def set_current_by_id(self, track_id: str) -> None:
        """
        Make ``track_id`` current and refresh metadata.

        Falls back to setting the raw provider index without playability
        validation, so playback is never blocked by a transiently excluded
        track. A missing id leaves the index at -1.
        """
        reused = False
        if self.is_same_track(track_id):
            reused = self.update_index_by_id(track_id)
        if not reused:
            index = self._provider.find_index_by_id(track_id)
            if index < 0:
                logger.warning(f"Track {track_id} not in playlist")
            self._current_index = index
        self.update_metadata()

    # =========================================================================
    # Current Track
    # =========================================================================

    def current_track(
        self, override: Optional[TrackDescriptor] = None
    ) -> Optional[PlayableResource]:
        """
        Resolve the track at the current index.

        Args:
            override: Descriptor written over the current entry before
                resolution. Reaches the provider only in sequential mode.

        Returns:
            PlayableResource, or None if the current index is not playable
            or the resolver rejects the track
        """
        tracks = self._view.get_ordered_list()
        if not is_index_playable(self._current_index, tracks):
            return None

        if override is not None:
            tracks[self._current_index] = override
            descriptor = override
        else:
            descriptor = tracks[self._current_index]

        resolver = self._get_resolver()
        try:
            return resolver.resolve(
                descriptor.track_id, descriptor.url, int(time.time() * 1000)
            )
        except ResolveError as e:
            logger.warning(f"Cannot resolve track {descriptor.track_id}: {e}")
            return None

    def current_track_descriptor(self) -> Optional[TrackDescriptor]:
        """Descriptor at the current index in provider order."""
        return self._provider.get_descriptor(self._current_index)

    def apply_source_record(self, record: Optional[SourceRecord]) -> TrackDescriptor:
        """
        Patch the matching descriptor with upstream fields.

        Only fields that differ are written; the descriptor keeps its
        identity for every other holder.

        Raises:
            InvalidSourceRecordError: If record is missing or has a blank id
            TrackNotFoundError: If no descriptor has the record's id
        """
        if record is None or not (record.track_id or "").strip():
            raise InvalidSourceRecordError("Source record is missing or has an empty track id")

        descriptor = self._provider.find_descriptor_by_id(record.track_id)
        if descriptor is None:
            raise TrackNotFoundError(f"No track with id {record.track_id}")

        if descriptor.url != record.url:
            descriptor.url = record.url
        if descriptor.title != record.name:
            descriptor.title = record.name
        if descriptor.cover_url != record.cover_url:
            descriptor.cover_url = record.cover_url
        if descriptor.duration_ms != record.duration_ms:
            descriptor.duration_ms = record.duration_ms

        logger.debug(f"Applied source record for track {record.track_id}")
        return descriptor

    # =========================================================================
    # Metadata Refresh
    # =========================================================================

    def update_metadata(self) -> None:
        """
        Run one refresh cycle.

        Pushes base metadata synchronously, then requests artwork and
        re-pushes the enriched metadata when it arrives. Artwork failures
        are silent.

        Raises:
            MetadataIntegrityError: If the current track has no metadata
        """
        current = self.current_track()
        if current is None:
            if self._listener:
                self._listener.on_metadata_error()
            return

        track_id = current.track_id
        metadata = self._converter.convert(track_id)
        if metadata is None:
            raise MetadataIntegrityError(f"Invalid track id {track_id}")

        if self._listener:
            self._listener.on_metadata_changed(metadata)

        cover_url = metadata.cover_url
        if cover_url and self._image_fetcher is not None:

            def on_artwork_loaded(artwork: Artwork) -> None:
                self._converter.update_artwork(track_id, metadata, artwork)
                if self._listener:
                    self._listener.on_metadata_changed(metadata)

            self._image_fetcher.fetch(cover_url, self._artwork_size, on_artwork_loaded)

    def _get_resolver(self) -> ResourceResolver:
        if self._resolver is None:
            if self._resolver_factory is None:
                raise ResolverUnavailableError("No resource resolver bound to queue")
            self._resolver = self._resolver_factory()
        return self._resolver
