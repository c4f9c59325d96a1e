"""
Core module for playlist-sync.

This module provides the foundational components used throughout the application:
    - exceptions: Custom exception classes for error handling
    - config: Configuration loading and validation
    - constants: Playlist limits, the Favorites sentinel and seed data
    - logger: Logging system with console and file outputs

Usage:
    from playlist_sync.core import (
        Config, load_config,
        setup_logging, get_logger,
        PlaylistSyncError, InvalidShape, TransportError
    )
"""

from playlist_sync.core.config import (
    ClientConfig,
    Config,
    LoggingConfig,
    ServerConfig,
    load_config,
)
from playlist_sync.core.constants import (
    FAVORITES_PLAYLIST_ID,
    FAVORITES_PLAYLIST_NAME,
    MAX_PLAYLIST_COUNT,
)
from playlist_sync.core.exceptions import (
    AuthenticationError,
    ConfigError,
    DatabaseError,
    FavoritesGuardError,
    IntegrityError,
    InvalidShape,
    PlaylistSyncError,
    TransportError,
)
from playlist_sync.core.logger import (
    get_logger,
    log_performance,
    setup_logging,
    shutdown_logging,
)

__all__ = [
    # Config
    "Config",
    "ServerConfig",
    "ClientConfig",
    "LoggingConfig",
    "load_config",
    # Constants
    "FAVORITES_PLAYLIST_ID",
    "FAVORITES_PLAYLIST_NAME",
    "MAX_PLAYLIST_COUNT",
    # Exceptions
    "PlaylistSyncError",
    "ConfigError",
    "DatabaseError",
    "InvalidShape",
    "IntegrityError",
    "TransportError",
    "FavoritesGuardError",
    "AuthenticationError",
    # Logger
    "setup_logging",
    "get_logger",
    "log_performance",
    "shutdown_logging",
]
