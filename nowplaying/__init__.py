"""
nowplaying - Now-playing queue for media players.

Tracks queue position over a playlist and keeps now-playing metadata and
cover art in sync with it.
"""

__version__ = "0.1.0"

from .app import NowPlayingApp
from .config import Config, load_config, ConfigError

__all__ = [
    "__version__",
    "NowPlayingApp",
    "Config",
    "load_config",
    "ConfigError",
]
