"""
Resource resolution.

Turns a track id and URL into a playable resource.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from urllib.parse import urlparse

from .types import PlayableResource

logger = logging.getLogger(__name__)


class ResolveError(Exception):
    """Track could not be resolved into a playable resource."""

    pass


class ResourceResolver(ABC):
    """Contract for resolving tracks into playable resources."""

    @abstractmethod
    def resolve(self, track_id: str, url: str, timestamp_ms: int) -> PlayableResource:
        """
        Resolve a track.

        Args:
            track_id: Track identifier
            url: Media URL from the descriptor
            timestamp_ms: Resolution time in epoch milliseconds

        Returns:
            A new PlayableResource

        Raises:
            ResolveError: If the track cannot be resolved
        """
        pass


class DirectResourceResolver(ResourceResolver):
    """
    Resolver that plays descriptor URLs as they are.

    URLs with a scheme pass through unchanged; bare filesystem paths become
    absolute ``file://`` URIs.
    """

    def resolve(self, track_id: str, url: str, timestamp_ms: int) -> PlayableResource:
        url = (url or "").strip()
        if not url:
            raise ResolveError(f"Track {track_id} has no media URL")

        if not urlparse(url).scheme:
            url = Path(url).expanduser().resolve().as_uri()

        logger.debug(f"Resolved track {track_id} -> {url}")
        return PlayableResource(track_id=track_id, url=url, resolved_at_ms=timestamp_ms)
