"""Tests for cover art fetching."""

import asyncio
import io
from pathlib import Path
from typing import Optional
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest
from PIL import Image

from nowplaying.artwork.fetcher import ArtworkCache, ImageFetcher, resize_image
from nowplaying.playback.types import Artwork


def png_bytes(width: int = 300, height: int = 200) -> bytes:
    out = io.BytesIO()
    Image.new("RGB", (width, height), "red").save(out, format="PNG")
    return out.getvalue()


def mock_session(data: bytes = b"", error: Optional[Exception] = None) -> MagicMock:
    """Build an aiohttp session mock whose get() yields one response."""
    resp = MagicMock()
    resp.read = AsyncMock(return_value=data)
    if error is not None:
        resp.raise_for_status.side_effect = error
    session = MagicMock()
    session.get.return_value.__aenter__.return_value = resp
    session.get.return_value.__aexit__.return_value = False
    session.close = AsyncMock()
    return session


@pytest.fixture
def cover(tmp_path: Path) -> Path:
    path = tmp_path / "cover.png"
    path.write_bytes(png_bytes())
    return path


class TestArtworkCache:
    """Tests for ArtworkCache class."""

    def test_get_empty(self) -> None:
        """Test getting from empty cache returns None."""
        assert ArtworkCache().get("u", 144) is None

    def test_keyed_by_size(self) -> None:
        """Test entries are per URL and size."""
        cache = ArtworkCache()
        artwork = Artwork(url="u", data=b"", width=144, height=144)
        cache.set("u", 144, artwork)

        assert cache.get("u", 144) is artwork
        assert cache.get("u", 64) is None

    def test_lru_eviction(self) -> None:
        """Test the oldest entry is evicted when full."""
        cache = ArtworkCache(_max_size=2)
        for name in ("1", "2", "3"):
            cache.set(name, 10, Artwork(url=name, data=b"", width=10, height=10))

        assert cache.get("1", 10) is None
        assert cache.get("2", 10) is not None
        assert cache.get("3", 10) is not None
        assert len(cache) == 2

    def test_recently_read_entry_survives(self) -> None:
        """Test reading an entry protects it from eviction."""
        cache = ArtworkCache(_max_size=2)
        for name in ("1", "2"):
            cache.set(name, 10, Artwork(url=name, data=b"", width=10, height=10))

        assert cache.get("1", 10) is not None
        cache.set("3", 10, Artwork(url="3", data=b"", width=10, height=10))

        assert cache.get("1", 10) is not None
        assert cache.get("2", 10) is None
        assert cache.get("3", 10) is not None

    def test_clear(self) -> None:
        cache = ArtworkCache()
        cache.set("u", 1, Artwork(url="u", data=b"", width=1, height=1))
        cache.clear()
        assert len(cache) == 0


class TestResizeImage:
    """Tests for resize_image."""

    def test_resize_to_square_png(self) -> None:
        """Test images are resized and re-encoded."""
        artwork = resize_image("u", png_bytes(), 144)

        assert artwork.width == 144
        assert artwork.height == 144
        assert artwork.content_type == "image/png"
        with Image.open(io.BytesIO(artwork.data)) as img:
            assert img.size == (144, 144)
            assert img.format == "PNG"

    def test_palette_image(self) -> None:
        """Test non-RGB modes are converted."""
        out = io.BytesIO()
        Image.new("P", (20, 20)).save(out, format="PNG")
        artwork = resize_image("u", out.getvalue(), 8)
        assert artwork.width == 8


class TestImageFetcher:
    """Tests for ImageFetcher class."""

    @pytest.mark.asyncio
    async def test_load_local_path(self, cover: Path) -> None:
        """Test loading artwork from a filesystem path."""
        async with ImageFetcher() as fetcher:
            artwork = await fetcher.load(str(cover), 144)

        assert artwork is not None
        assert artwork.url == str(cover)
        assert (artwork.width, artwork.height) == (144, 144)

    @pytest.mark.asyncio
    async def test_load_file_uri(self, cover: Path) -> None:
        """Test loading artwork from a file URI."""
        async with ImageFetcher() as fetcher:
            artwork = await fetcher.load(cover.as_uri(), 64)

        assert artwork is not None
        assert artwork.width == 64

    @pytest.mark.asyncio
    async def test_load_missing_file(self, tmp_path: Path) -> None:
        """Test a missing file yields no artwork."""
        async with ImageFetcher() as fetcher:
            assert await fetcher.load(str(tmp_path / "missing.png")) is None

    @pytest.mark.asyncio
    async def test_load_not_an_image(self, tmp_path: Path) -> None:
        """Test undecodable bytes yield no artwork."""
        path = tmp_path / "cover.png"
        path.write_bytes(b"definitely not a png")
        async with ImageFetcher() as fetcher:
            assert await fetcher.load(str(path)) is None

    @pytest.mark.asyncio
    async def test_load_unsupported_scheme(self) -> None:
        """Test unsupported URL schemes yield no artwork."""
        async with ImageFetcher() as fetcher:
            assert await fetcher.load("ftp://example.com/cover.png") is None

    @pytest.mark.asyncio
    async def test_load_uses_cache(self, cover: Path) -> None:
        """Test repeated loads are served from cache."""
        async with ImageFetcher() as fetcher:
            first = await fetcher.load(str(cover), 144)
            cover.unlink()
            second = await fetcher.load(str(cover), 144)

        assert first is not None
        assert second is first

    @pytest.mark.asyncio
    async def test_load_http(self) -> None:
        """Test downloading artwork over HTTP."""
        session = mock_session(png_bytes())
        fetcher = ImageFetcher(session=session)

        artwork = await fetcher.load("https://example.com/cover.png", 100)

        assert artwork is not None
        assert artwork.width == 100
        session.get.assert_called_once()
        assert session.get.call_args[0][0] == "https://example.com/cover.png"

    @pytest.mark.asyncio
    async def test_load_http_error(self) -> None:
        """Test HTTP errors yield no artwork."""
        error = aiohttp.ClientResponseError(
            request_info=MagicMock(), history=(), status=404, message="Not Found"
        )
        fetcher = ImageFetcher(session=mock_session(error=error))

        assert await fetcher.load("https://example.com/cover.png") is None

    @pytest.mark.asyncio
    async def test_close_keeps_shared_session(self) -> None:
        """Test a session passed in is not closed by the fetcher."""
        session = mock_session()
        fetcher = ImageFetcher(session=session)
        await fetcher.close()
        session.close.assert_not_called()

    @pytest.mark.asyncio
    async def test_fetch_calls_back(self, cover: Path) -> None:
        """Test fetch completes asynchronously and calls back once."""
        received: list[Artwork] = []
        async with ImageFetcher() as fetcher:
            fetcher.fetch(str(cover), 32, received.append)

            assert received == []
            assert fetcher.pending == 1

            await fetcher.wait_idle()

        assert len(received) == 1
        assert received[0].width == 32
        assert fetcher.pending == 0

    @pytest.mark.asyncio
    async def test_fetch_cached_is_still_async(self, cover: Path) -> None:
        """Test cached artwork is delivered on a task too."""
        received: list[Artwork] = []
        async with ImageFetcher() as fetcher:
            await fetcher.load(str(cover), 32)
            fetcher.fetch(str(cover), 32, received.append)
            assert received == []
            await fetcher.wait_idle()

        assert len(received) == 1

    @pytest.mark.asyncio
    async def test_fetch_failure_is_silent(self, tmp_path: Path) -> None:
        """Test failed fetches never call back."""
        callback = MagicMock()
        async with ImageFetcher() as fetcher:
            fetcher.fetch(str(tmp_path / "missing.png"), 32, callback)
            await fetcher.wait_idle()

        callback.assert_not_called()

    @pytest.mark.asyncio
    async def test_fetch_callback_error_contained(self, cover: Path) -> None:
        """Test callback exceptions do not escape the task."""
        callback = MagicMock(side_effect=RuntimeError("boom"))
        async with ImageFetcher() as fetcher:
            fetcher.fetch(str(cover), 32, callback)
            await fetcher.wait_idle()

        callback.assert_called_once()

    @pytest.mark.asyncio
    async def test_fetches_are_independent(self, cover: Path, tmp_path: Path) -> None:
        """Test a newer fetch does not cancel an older one."""
        other = tmp_path / "other.png"
        other.write_bytes(png_bytes(50, 50))
        received: list[str] = []

        async with ImageFetcher() as fetcher:
            fetcher.fetch(str(cover), 16, lambda a: received.append(a.url))
            fetcher.fetch(str(other), 16, lambda a: received.append(a.url))
            await fetcher.wait_idle()

        assert sorted(received) == sorted([str(cover), str(other)])

    @pytest.mark.asyncio
    async def test_close_cancels_pending(self) -> None:
        """Test closing cancels in-flight fetches."""
        session = MagicMock()
        resp = MagicMock()

        async def slow_read() -> bytes:
            await asyncio.sleep(10)
            return b""

        resp.read = slow_read
        session.get.return_value.__aenter__.return_value = resp
        session.get.return_value.__aexit__.return_value = False
        callback = MagicMock()

        fetcher = ImageFetcher(session=session)
        fetcher.fetch("https://example.com/slow.png", 16, callback)
        await asyncio.sleep(0)
        await fetcher.close()

        assert fetcher.pending == 0
        callback.assert_not_called()

    def test_fetch_without_event_loop(self, cover: Path) -> None:
        """Test fetch outside an event loop drops the request."""
        callback = MagicMock()
        fetcher = ImageFetcher()

        fetcher.fetch(str(cover), 32, callback)

        assert fetcher.pending == 0
        callback.assert_not_called()
