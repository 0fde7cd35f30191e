"""
Cover art fetching.

Asynchronous, cache-backed image retrieval. Images are downloaded with
aiohttp (or read from disk), resized to a square target with Pillow and
re-encoded as PNG.
"""

import asyncio
import io
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional
from urllib.parse import unquote, urlparse

import aiohttp
from PIL import Image, UnidentifiedImageError

from nowplaying.playback.types import Artwork

logger = logging.getLogger(__name__)

# Target edge length for now-playing art, in pixels
ARTWORK_SIZE = 144

ArtworkLoadedCallback = Callable[[Artwork], None]


@dataclass
class ArtworkCache:
    """In-memory cache for resized artwork."""

    _cache: "OrderedDict[tuple[str, int], Artwork]" = field(default_factory=OrderedDict)
    _max_size: int = 50

    def get(self, url: str, size: int) -> Optional[Artwork]:
        """Get cached artwork, marking it most recently used."""
        key = (url, size)
        artwork = self._cache.get(key)
        if artwork is not None:
            self._cache.move_to_end(key)
        return artwork

    def set(self, url: str, size: int, artwork: Artwork) -> None:
        """Cache artwork."""
        key = (url, size)
        if key in self._cache:
            self._cache.move_to_end(key)
        elif len(self._cache) >= self._max_size:
            # Evict least recently used
            self._cache.popitem(last=False)
        self._cache[key] = artwork

    def clear(self) -> None:
        """Clear all cached artwork."""
        self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)


def resize_image(url: str, data: bytes, size: int) -> Artwork:
    """
    Decode image bytes and resize to ``size`` x ``size``.

    Raises:
        UnidentifiedImageError: If the bytes are not a supported image
    """
    img = Image.open(io.BytesIO(data))
    if img.mode not in ("RGB", "RGBA"):
        img = img.convert("RGBA")
    img = img.resize((size, size))

    out = io.BytesIO()
    img.save(out, format="PNG")
    return Artwork(url=url, data=out.getvalue(), width=size, height=size)


class ImageFetcher:
    """
    Fire-and-forget cover art loader.

    ``fetch()`` schedules a task on the running event loop and calls back
    once on success. Failures are logged and otherwise silent. In-flight
    fetches are never cancelled by newer ones.
    """

    def __init__(
        self,
        timeout: float = 10.0,
        cache_size: int = 50,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """
        Initialize image fetcher.

        Args:
            timeout: Total HTTP timeout in seconds
            cache_size: Maximum number of cached images
            session: Optional shared aiohttp session (not closed by us)
        """
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._cache = ArtworkCache(_max_size=cache_size)
        self._session = session
        self._owns_session = session is None
        self._tasks: set[asyncio.Task[None]] = set()

    async def __aenter__(self) -> "ImageFetcher":
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[Any],
    ) -> None:
        await self.close()

    @property
    def cache(self) -> ArtworkCache:
        return self._cache

    @property
    def pending(self) -> int:
        """Number of fetches still in flight."""
        return len(self._tasks)

    # =========================================================================
    # Public API
    # =========================================================================

    def fetch(self, url: str, size: int, on_loaded: ArtworkLoadedCallback) -> None:
        """
        Request artwork without waiting for it.

        Args:
            url: Image URL, file:// URI or filesystem path
            size: Target edge length in pixels
            on_loaded: Called with the artwork once loaded
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(f"No running event loop, artwork not fetched: {url}")
            return

        task = loop.create_task(self._fetch_and_notify(url, size, on_loaded))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def load(self, url: str, size: int = ARTWORK_SIZE) -> Optional[Artwork]:
        """
        Load and resize artwork, using cache when available.

        Args:
            url: Image URL, file:// URI or filesystem path
            size: Target edge length in pixels

        Returns:
            Artwork or None on any failure
        """
        cached = self._cache.get(url, size)
        if cached:
            return cached

        try:
            data = await self._read(url)
            artwork = await asyncio.to_thread(resize_image, url, data, size)
        except asyncio.CancelledError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"Failed to download artwork {url}: {e}")
            return None
        except (OSError, UnidentifiedImageError, ValueError) as e:
            logger.warning(f"Failed to decode artwork {url}: {e}")
            return None

        self._cache.set(url, size, artwork)
        logger.debug(f"Loaded artwork {url} ({len(artwork.data)} bytes)")
        return artwork

    async def wait_idle(self) -> None:
        """Wait until every in-flight fetch has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        """Cancel in-flight fetches and release the HTTP session."""
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        self._tasks.clear()

        if self._session and self._owns_session:
            await self._session.close()
            self._session = None

    # =========================================================================
    # Internals
    # =========================================================================

    async def _fetch_and_notify(
        self, url: str, size: int, on_loaded: ArtworkLoadedCallback
    ) -> None:
        artwork = await self.load(url, size)
        if artwork is None:
            return
        try:
            on_loaded(artwork)
        except Exception as e:
            logger.error(f"Artwork callback failed for {url}: {e}", exc_info=True)

    async def _read(self, url: str) -> bytes:
        parsed = urlparse(url)
        if parsed.scheme in ("http", "https"):
            return await self._download(url)
        if parsed.scheme == "file":
            path = Path(unquote(parsed.path))
        elif not parsed.scheme:
            path = Path(url).expanduser()
        else:
            raise ValueError(f"Unsupported artwork URL scheme: {parsed.scheme}")
        return await asyncio.to_thread(path.read_bytes)

    async def _download(self, url: str) -> bytes:
        if self._session is None:
            self._session = aiohttp.ClientSession()
            self._owns_session = True

        async with self._session.get(url, timeout=self._timeout) as resp:
            resp.raise_for_status()
            return await resp.read()
