"""
nowplaying application.

Host that wires the queue manager to its collaborators and runs a
now-playing session.
"""

import logging
from pathlib import Path
from typing import Any, Optional

from nowplaying.artwork import ImageFetcher
from nowplaying.config import Config
from nowplaying.playback import (
    DirectResourceResolver,
    MetadataConverter,
    MetadataUpdateListener,
    NowPlayingMetadata,
    PlaylistProvider,
    QueueManager,
    QueueMode,
    ResourceResolver,
    load_playlist,
)

logger = logging.getLogger(__name__)


class SessionListener(MetadataUpdateListener):
    """Records and logs queue events for the session."""

    def __init__(self, converter: MetadataConverter):
        self._converter = converter
        self.latest_index: Optional[int] = None
        self.latest_metadata: Optional[NowPlayingMetadata] = None
        self.metadata_updates = 0
        self.error_count = 0

    def on_index_changed(self, index: int) -> None:
        logger.debug(f"Queue index changed: {index}")
        self.latest_index = index

    def on_metadata_changed(self, metadata: NowPlayingMetadata) -> None:
        self.latest_metadata = metadata
        self.metadata_updates += 1
        self._converter.log_now_playing(metadata)

    def on_metadata_error(self) -> None:
        logger.warning("No playable track for metadata refresh")
        self.latest_metadata = None
        self.error_count += 1


class NowPlayingApp:
    """
    Main nowplaying application.

    Orchestrates:
    - Playlist (PlaylistProvider, loaded from YAML)
    - Resolution (DirectResourceResolver)
    - Metadata (MetadataConverter, ImageFetcher)
    - Queue (QueueManager)

    Usage:
        config = load_config(...)
        async with NowPlayingApp(config) as app:
            metadata = await app.play("track-id")
    """

    def __init__(self, config: Config):
        """
        Initialize application.

        Args:
            config: Validated configuration
        """
        self._config = config
        self._is_running = False

        # Components (initialized in start())
        self._provider: Optional[PlaylistProvider] = None
        self._resolver: Optional[ResourceResolver] = None
        self._converter: Optional[MetadataConverter] = None
        self._image_fetcher: Optional[ImageFetcher] = None
        self._queue: Optional[QueueManager] = None
        self._listener: Optional[SessionListener] = None

    async def __aenter__(self) -> "NowPlayingApp":
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[Any],
    ) -> None:
        await self.stop()

    @property
    def queue(self) -> QueueManager:
        if self._queue is None:
            raise RuntimeError("Application not started")
        return self._queue

    @property
    def listener(self) -> SessionListener:
        if self._listener is None:
            raise RuntimeError("Application not started")
        return self._listener

    async def start(self) -> None:
        """
        Build all components.

        Raises:
            PlaylistError: If the playlist cannot be loaded
        """
        if self._is_running:
            return

        logger.info("Starting now-playing session...")

        tracks = load_playlist(Path(self._config.queue.playlist))
        self._provider = PlaylistProvider(tracks)
        self._converter = MetadataConverter(self._provider)
        if self._config.artwork.enabled:
            self._image_fetcher = ImageFetcher(
                timeout=self._config.artwork.timeout,
                cache_size=self._config.artwork.cache_size,
            )

        # Resolver is bound lazily; the queue asks for it on first resolution
        self._queue = QueueManager(
            provider=self._provider,
            converter=self._converter,
            image_fetcher=self._image_fetcher,
            resolver=self._get_resolver,
            artwork_size=self._config.artwork.size,
        )
        self._listener = SessionListener(self._converter)
        self._queue.set_update_listener(self._listener)

        if self._config.queue.shuffle:
            self._queue.set_mode(QueueMode.SHUFFLED)

        self._is_running = True
        logger.info(f"Session ready: {self._provider.size} tracks")

    async def stop(self) -> None:
        """Stop the session and release resources."""
        if not self._is_running:
            return
        self._is_running = False
        if self._image_fetcher:
            await self._image_fetcher.close()
        logger.info("Session stopped")

    # =========================================================================
    # Commands
    # =========================================================================

    async def play(self, track_id: str) -> Optional[NowPlayingMetadata]:
        """
        Make ``track_id`` current and return its metadata.

        Raises:
            MetadataIntegrityError: If the track has no metadata
        """
        self.queue.set_current_by_id(track_id)
        return await self._settle()

    async def skip(self, amount: int) -> Optional[NowPlayingMetadata]:
        """
        Skip by ``amount`` positions and return the new metadata.

        Returns:
            Metadata of the current track, or None if the skip was rejected
        """
        if not self.queue.skip_by(amount):
            logger.info(f"Skip by {amount} rejected")
            return None
        self.queue.update_metadata()
        return await self._settle()

    async def refresh(self) -> Optional[NowPlayingMetadata]:
        """Refresh metadata for the current position."""
        self.queue.update_metadata()
        return await self._settle()

    def set_shuffle(self, enabled: bool) -> None:
        """Switch between shuffled and sequential traversal."""
        self.queue.set_mode(QueueMode.SHUFFLED if enabled else QueueMode.SEQUENTIAL)

    async def _settle(self) -> Optional[NowPlayingMetadata]:
        """Wait for artwork enrichment of the last refresh cycle."""
        if self._image_fetcher:
            await self._image_fetcher.wait_idle()
        return self.listener.latest_metadata

    def _get_resolver(self) -> ResourceResolver:
        if self._resolver is None:
            self._resolver = DirectResourceResolver()
        return self._resolver
