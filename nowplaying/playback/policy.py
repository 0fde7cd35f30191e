"""
Queue position policy.
"""

from typing import Optional, Sequence

from .types import TrackDescriptor


def is_index_playable(index: int, tracks: Optional[Sequence[TrackDescriptor]]) -> bool:
    """
    Check whether ``index`` is a playable position in ``tracks``.

    A position is playable when it is in range and the entry there is not
    flagged unplayable. Never raises.
    """
    if not tracks:
        return False
    if index < 0 or index >= len(tracks):
        return False
    return not tracks[index].unplayable
