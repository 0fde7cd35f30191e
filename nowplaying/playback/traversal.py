"""
Traversal view over the playlist provider.

Sequential mode exposes the provider's live list. Shuffled mode rebuilds a
random permutation on every read, so two reads may disagree even when the
playlist is unchanged. Callers that need a stable order keep the returned
list.
"""

import logging
import random
from typing import Optional

from .provider import PlaylistProvider
from .types import QueueMode, TrackDescriptor

logger = logging.getLogger(__name__)


class TraversalView:
    """Ordered view of the playlist for the active queue mode."""

    def __init__(
        self,
        provider: PlaylistProvider,
        mode: QueueMode = QueueMode.SEQUENTIAL,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._provider = provider
        self._mode = mode
        self._rng = rng or random.Random()
        self._shuffled: list[TrackDescriptor] = []

    @property
    def mode(self) -> QueueMode:
        return self._mode

    def set_mode(self, mode: QueueMode) -> None:
        """Switch traversal mode. The current index is not touched."""
        if mode != self._mode:
            logger.debug(f"Traversal mode: {self._mode.value} -> {mode.value}")
        self._mode = mode

    def get_ordered_list(self) -> list[TrackDescriptor]:
        """
        Return the list for the active mode.

        In shuffled mode the returned list is a fresh copy; writes to it do
        not reach the provider.
        """
        if self._mode == QueueMode.SEQUENTIAL:
            return self._provider.get_list()

        self._shuffled = list(self._provider.get_list())
        self._rng.shuffle(self._shuffled)
        return self._shuffled
