"""
In-memory playlist provider and playlist file loading.
"""

import logging
from pathlib import Path
from typing import Iterable, Optional

import yaml

from .types import TrackDescriptor

logger = logging.getLogger(__name__)


class PlaylistError(Exception):
    """Playlist file error."""

    pass


class PlaylistProvider:
    """
    Ordered, mutable list of track descriptors.

    ``get_list()`` hands out the live backing list, so edits made through it
    (including queue overrides) are visible to every holder.
    """

    def __init__(self, tracks: Optional[Iterable[TrackDescriptor]] = None) -> None:
        self._tracks: list[TrackDescriptor] = list(tracks) if tracks else []

    @property
    def size(self) -> int:
        return len(self._tracks)

    def get_list(self) -> list[TrackDescriptor]:
        """Return the live backing list."""
        return self._tracks

    def set_list(self, tracks: Iterable[TrackDescriptor]) -> None:
        """Replace the playlist contents."""
        self._tracks[:] = list(tracks)
        logger.debug(f"Playlist replaced: {len(self._tracks)} tracks")

    def append(self, tracks: Iterable[TrackDescriptor]) -> None:
        """Append tracks to the end of the playlist."""
        added = list(tracks)
        self._tracks.extend(added)
        logger.debug(f"Appended {len(added)} tracks, playlist size {len(self._tracks)}")

    def find_index_by_id(self, track_id: str) -> int:
        """Index of ``track_id`` in provider order, -1 when absent."""
        for i, track in enumerate(self._tracks):
            if track.track_id == track_id:
                return i
        return -1

    def find_descriptor_by_id(self, track_id: str) -> Optional[TrackDescriptor]:
        index = self.find_index_by_id(track_id)
        return self._tracks[index] if index >= 0 else None

    def get_descriptor(self, index: int) -> Optional[TrackDescriptor]:
        if 0 <= index < len(self._tracks):
            return self._tracks[index]
        return None


def load_playlist(path: Path) -> list[TrackDescriptor]:
    """
    Load track descriptors from a YAML playlist file.

    Expected layout::

        tracks:
          - id: "a1"
            url: "https://example.com/a1.flac"
            title: "First"
            cover: "https://example.com/a1.jpg"
            duration_ms: 180000

    Args:
        path: Path to YAML file

    Returns:
        Descriptors in file order

    Raises:
        PlaylistError: If the file cannot be read, parsed or validated
    """
    if not path.exists():
        raise PlaylistError(f"Playlist file not found: {path}")

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise PlaylistError(f"Error parsing playlist: {e}")
    except IOError as e:
        raise PlaylistError(f"Error reading playlist: {e}")

    if not isinstance(data, dict) or not isinstance(data.get("tracks"), list):
        raise PlaylistError(f"Playlist {path} must contain a 'tracks' list")

    tracks: list[TrackDescriptor] = []
    seen: set[str] = set()
    for i, entry in enumerate(data["tracks"]):
        if not isinstance(entry, dict) or not str(entry.get("id", "") or "").strip():
            raise PlaylistError(f"Track #{i} in {path} has no id")
        try:
            track = TrackDescriptor.from_dict(entry)
        except (TypeError, ValueError) as e:
            raise PlaylistError(f"Track #{i} in {path} is invalid: {e}")
        if track.track_id in seen:
            raise PlaylistError(f"Duplicate track id in {path}: {track.track_id}")
        seen.add(track.track_id)
        tracks.append(track)

    logger.info(f"Loaded playlist {path}: {len(tracks)} tracks")
    return tracks
