"""
Now-playing metadata conversion.

Builds the metadata objects handed to the update listener from playlist
descriptors, and merges loaded cover art into them.
"""

import logging
from typing import Optional

from .provider import PlaylistProvider
from .types import Artwork, NowPlayingMetadata

logger = logging.getLogger(__name__)


def format_duration(duration_ms: int) -> str:
    """Format milliseconds as ``m:ss``."""
    total_s = max(0, duration_ms) // 1000
    return f"{total_s // 60}:{total_s % 60:02d}"


class MetadataConverter:
    """
    Converts playlist descriptors into now-playing metadata.

    Lookups always go through the provider, so patched descriptors are
    picked up on the next conversion.
    """

    def __init__(self, provider: PlaylistProvider):
        """
        Initialize converter.

        Args:
            provider: Playlist provider holding the descriptors
        """
        self._provider = provider

    def convert(self, track_id: str) -> Optional[NowPlayingMetadata]:
        """
        Build metadata for a track.

        Args:
            track_id: Track identifier

        Returns:
            NowPlayingMetadata or None if the provider does not know the track
        """
        descriptor = self._provider.find_descriptor_by_id(track_id)
        if descriptor is None:
            logger.warning(f"No descriptor for track {track_id}")
            return None

        return NowPlayingMetadata(
            track_id=descriptor.track_id,
            title=descriptor.title,
            media_url=descriptor.url,
            cover_url=descriptor.cover_url,
            duration_ms=descriptor.duration_ms,
        )

    def update_artwork(
        self, track_id: str, metadata: NowPlayingMetadata, artwork: Artwork
    ) -> NowPlayingMetadata:
        """
        Merge loaded cover art into ``metadata`` in place.

        Args:
            track_id: Track the artwork was requested for
            metadata: Metadata object to enrich
            artwork: Loaded artwork

        Returns:
            The same metadata object
        """
        if metadata.track_id != track_id:
            logger.warning(
                f"Artwork for track {track_id} merged into metadata of {metadata.track_id}"
            )
        metadata.artwork = artwork
        logger.debug(f"Artwork merged for track {track_id} ({artwork.width}x{artwork.height})")
        return metadata

    def log_now_playing(self, metadata: NowPlayingMetadata) -> None:
        """
        Log currently playing track at INFO level.

        Args:
            metadata: Track metadata to log
        """
        title = metadata.title or metadata.track_id
        art = "with art" if metadata.has_artwork else "no art"
        logger.info(f"Now playing: {title} [{format_duration(metadata.duration_ms)}] ({art})")
