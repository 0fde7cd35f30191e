"""Cover art loading."""

from .fetcher import ARTWORK_SIZE, ArtworkCache, ImageFetcher, resize_image

__all__ = [
    "ARTWORK_SIZE",
    "ArtworkCache",
    "ImageFetcher",
    "resize_image",
]
