"""
Queue data model.

Track descriptors, resolved resources and now-playing metadata shared by
the queue manager and its collaborators.
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class QueueMode(Enum):
    """Queue traversal modes."""

    SEQUENTIAL = "sequential"  # Provider order
    SHUFFLED = "shuffled"  # Fresh random permutation on every read


@dataclass
class TrackDescriptor:
    """
    One entry of the playlist.

    Owned by the playlist provider. The queue manager may patch the mutable
    fields in place but never replaces ``track_id``.

    Attributes:
        track_id: Stable identifier, unique within a queue
        url: Playable media URL or path
        title: Display title
        cover_url: Cover art URL or path
        duration_ms: Track duration in milliseconds
        unplayable: Entry must be skipped by navigation
    """

    track_id: str
    url: str = ""
    title: str = ""
    cover_url: str = ""
    duration_ms: int = 0
    unplayable: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TrackDescriptor":
        """Build a descriptor from a playlist file entry."""
        return cls(
            track_id=str(data["id"]),
            url=str(data.get("url", "") or ""),
            title=str(data.get("title", "") or ""),
            cover_url=str(data.get("cover", "") or ""),
            duration_ms=int(data.get("duration_ms", 0) or 0),
            unplayable=bool(data.get("unplayable", False)),
        )


@dataclass
class SourceRecord:
    """Upstream update used to patch a descriptor. Not retained."""

    track_id: str
    url: str = ""
    name: str = ""
    cover_url: str = ""
    duration_ms: int = 0


@dataclass(frozen=True)
class PlayableResource:
    """A descriptor resolved into an immediately playable form."""

    track_id: str
    url: str
    resolved_at_ms: int

    def age_ms(self, now_ms: Optional[int] = None) -> int:
        """Milliseconds elapsed since resolution."""
        if now_ms is None:
            now_ms = int(time.time() * 1000)
        return max(0, now_ms - self.resolved_at_ms)


@dataclass(frozen=True)
class Artwork:
    """Decoded and resized cover art, PNG encoded."""

    url: str
    data: bytes
    width: int
    height: int
    content_type: str = "image/png"


@dataclass
class NowPlayingMetadata:
    """Now-playing metadata pushed to the update listener."""

    track_id: str
    title: str = ""
    media_url: str = ""
    cover_url: str = ""
    duration_ms: int = 0
    artwork: Optional[Artwork] = None

    @property
    def has_artwork(self) -> bool:
        return self.artwork is not None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {
            "track_id": self.track_id,
            "title": self.title,
            "media_url": self.media_url,
            "cover_url": self.cover_url,
            "duration_ms": self.duration_ms,
            "artwork": None,
        }
        if self.artwork is not None:
            result["artwork"] = {
                "url": self.artwork.url,
                "width": self.artwork.width,
                "height": self.artwork.height,
                "content_type": self.artwork.content_type,
                "bytes": len(self.artwork.data),
            }
        return result


@dataclass
class QueueState:
    """
    Snapshot of current queue state for reporting.

    ``current_index`` may be -1 or past the end after a permissive
    reposition; ``current_track_id`` is None whenever it is not playable.
    """

    current_index: int
    mode: QueueMode
    queue_size: int
    current_track_id: Optional[str]
