"""Exception types raised by the Tika server supervisor."""


class TikaServerError(Exception):
    """Base exception for all supervisor failures."""


class ConfigurationError(TikaServerError, ValueError):
    """Raised synchronously when a server handle is built from invalid settings."""


class LaunchError(TikaServerError):
    """Raised when the server subprocess cannot be spawned or exits while starting."""


class StartupTimeoutError(TikaServerError, TimeoutError):
    """Raised when the server never answered a health check within the startup timeout."""


class StartCancelledError(TikaServerError):
    """Raised when the caller cancels a start that is still waiting for readiness."""


class ServerError(TikaServerError):
    """Raised when a server handle is used in an invalid state."""


class DownloadError(TikaServerError):
    """Raised when the server artifact cannot be fetched."""


class ChecksumMismatchError(DownloadError):
    """Raised when a downloaded artifact does not match its expected checksum."""


class ArtifactPathError(TikaServerError, OSError):
    """Raised when the artifact destination path is unusable."""
