"""
Defines custom exceptions for the application to allow for more specific error handling.
"""


class TabTorrentError(Exception):
    """Base exception for all application-specific errors."""


class ValidationError(TabTorrentError):
    """Raised when a download is requested without a usable magnet link or file path."""


class ResolutionError(TabTorrentError):
    """Raised when the engine cannot resolve a display name for a torrent."""


class SessionStartError(TabTorrentError):
    """Raised when the engine refuses to start a download or the download fails."""


class StopError(TabTorrentError):
    """Raised when the engine rejects a stop request."""


class SessionBusyError(TabTorrentError):
    """
    Raised when a download is started on a tab that is already resolving or
    downloading.
    """


class SessionNotFoundError(TabTorrentError):
    """Raised when a tab id does not refer to an open tab."""


class ConfigurationError(TabTorrentError):
    """Raised for issues related to configuration loading or validation."""
