"""Tests for now-playing metadata conversion."""

import logging

import pytest

from nowplaying.playback.metadata import MetadataConverter, format_duration
from nowplaying.playback.provider import PlaylistProvider
from nowplaying.playback.types import Artwork, NowPlayingMetadata, TrackDescriptor


class TestNowPlayingMetadata:
    """Tests for NowPlayingMetadata class."""

    def test_default_values(self) -> None:
        """Test default field values."""
        metadata = NowPlayingMetadata(track_id="a")
        assert metadata.title == ""
        assert metadata.media_url == ""
        assert metadata.cover_url == ""
        assert metadata.duration_ms == 0
        assert metadata.artwork is None
        assert metadata.has_artwork is False

    def test_to_dict(self) -> None:
        """Test conversion to dictionary."""
        metadata = NowPlayingMetadata(
            track_id="a",
            title="Song",
            media_url="https://example.com/a.flac",
            cover_url="https://example.com/a.jpg",
            duration_ms=180000,
        )

        result = metadata.to_dict()

        assert result == {
            "track_id": "a",
            "title": "Song",
            "media_url": "https://example.com/a.flac",
            "cover_url": "https://example.com/a.jpg",
            "duration_ms": 180000,
            "artwork": None,
        }

    def test_to_dict_with_artwork(self) -> None:
        """Test artwork is summarized, not embedded."""
        metadata = NowPlayingMetadata(track_id="a")
        metadata.artwork = Artwork(url="c", data=b"12345", width=144, height=144)

        result = metadata.to_dict()

        assert result["artwork"] == {
            "url": "c",
            "width": 144,
            "height": 144,
            "content_type": "image/png",
            "bytes": 5,
        }


class TestFormatDuration:
    """Tests for format_duration."""

    def test_values(self) -> None:
        assert format_duration(0) == "0:00"
        assert format_duration(61000) == "1:01"
        assert format_duration(3599999) == "59:59"
        assert format_duration(-5) == "0:00"


class TestMetadataConverter:
    """Tests for MetadataConverter class."""

    @pytest.fixture
    def provider(self) -> PlaylistProvider:
        return PlaylistProvider(
            [
                TrackDescriptor(
                    track_id="a",
                    url="https://example.com/a.flac",
                    title="Song A",
                    cover_url="https://example.com/a.jpg",
                    duration_ms=200000,
                )
            ]
        )

    @pytest.fixture
    def converter(self, provider: PlaylistProvider) -> MetadataConverter:
        return MetadataConverter(provider)

    def test_convert(self, converter: MetadataConverter) -> None:
        """Test metadata is built from the descriptor."""
        metadata = converter.convert("a")
        assert metadata == NowPlayingMetadata(
            track_id="a",
            title="Song A",
            media_url="https://example.com/a.flac",
            cover_url="https://example.com/a.jpg",
            duration_ms=200000,
        )

    def test_convert_unknown(self, converter: MetadataConverter) -> None:
        """Test unknown tracks have no metadata."""
        assert converter.convert("missing") is None

    def test_convert_picks_up_edits(
        self, converter: MetadataConverter, provider: PlaylistProvider
    ) -> None:
        """Test each conversion reads the current descriptor."""
        provider.get_list()[0].title = "Edited"
        metadata = converter.convert("a")
        assert metadata is not None
        assert metadata.title == "Edited"

    def test_update_artwork_in_place(self, converter: MetadataConverter) -> None:
        """Test artwork is merged into the given object."""
        metadata = converter.convert("a")
        assert metadata is not None
        artwork = Artwork(url="https://example.com/a.jpg", data=b"png", width=144, height=144)

        result = converter.update_artwork("a", metadata, artwork)

        assert result is metadata
        assert metadata.artwork is artwork
        assert metadata.has_artwork is True

    def test_log_now_playing(
        self, converter: MetadataConverter, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Test now playing log line."""
        metadata = converter.convert("a")
        assert metadata is not None

        with caplog.at_level(logging.INFO, logger="nowplaying.playback.metadata"):
            converter.log_now_playing(metadata)

        assert "Now playing: Song A [3:20] (no art)" in caplog.text
