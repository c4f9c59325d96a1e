"""
Exception classes for playlist-sync.

This module defines all custom exceptions used throughout the application.
Each exception carries a human-readable message plus an optional details
dictionary, so boundaries can log context without parsing strings.

Exception Hierarchy:
    PlaylistSyncError (base)
        ConfigError - Configuration file issues
        DatabaseError - SQLite persistence issues
        InvalidShape - Malformed snapshot or payload
        IntegrityError - Snapshot rejected at auto-sync commit
        TransportError - Remote store unreachable or non-2xx
        FavoritesGuardError - Mutation attempted on the virtual Favorites playlist
        AuthenticationError - Request without a valid session
"""


class PlaylistSyncError(Exception):
    """
    Base exception for all playlist-sync errors.

    All custom exceptions in this project inherit from this class,
    allowing callers to catch every playlist-sync error with a single
    except clause if desired.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context (e.g., playlist ids).

    Example:
        try:
            service.save_user_playlists(user_id, data)
        except PlaylistSyncError as e:
            logger.error(f"Save failed: {e.message}")
            if e.details:
                logger.debug(f"Details: {e.details}")
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error description.
            details: Optional dictionary containing additional context about the error.
                     Common keys include:
                     - 'playlist_id': Playlist involved in the error
                     - 'user_id': Owner of the data being processed
                     - 'original_error': The underlying exception if wrapping another error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return the error message for display."""
        return self.message


class ConfigError(PlaylistSyncError):
    """
    Raised when there's an issue with the configuration file.

    This is a CRITICAL error that should stop program execution.

    Common causes:
        - config.yaml has invalid YAML syntax
        - A section is not a mapping
        - Invalid field values (e.g., negative port, unknown log level)

    Example:
        raise ConfigError(
            "Invalid port in config.yaml",
            details={'file_path': '/path/to/config.yaml', 'field': 'server.port'}
        )
    """
    pass


class DatabaseError(PlaylistSyncError):
    """
    Raised when there's an issue with the SQLite database.

    Common causes:
        - Parent directory of the database file does not exist
        - Schema version mismatch
        - Constraint violation while saving a snapshot
    """
    pass


class InvalidShape(PlaylistSyncError):
    """
    Raised when a snapshot or payload does not have the expected structure.

    Shape errors always fail closed: the normalizer raises, the resolver
    downgrades to a conflict prompt and the HTTP layer answers 400.
    """
    pass


class IntegrityError(PlaylistSyncError):
    """
    Raised when a snapshot chosen for auto-sync fails its integrity check.

    Causes:
        - Duplicate playlist ids
        - Duplicate item ids within one playlist
        - Active playlist id pointing at no playlist

    The caller must not apply the snapshot.
    """
    pass


class TransportError(PlaylistSyncError):
    """
    Raised when the remote store cannot be reached or answers with a non-2xx status.

    Attributes:
        status_code: HTTP status of the response, None for network failures.
        is_auth_error: True for 401 responses.
    """

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, details)
        self.status_code = status_code
        self.is_auth_error = status_code == 401


class FavoritesGuardError(PlaylistSyncError):
    """Raised when a rename/delete/bounds operation targets the virtual Favorites playlist."""
    pass


class AuthenticationError(PlaylistSyncError):
    """Raised when a request carries no valid session token."""
    pass
