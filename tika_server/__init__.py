"""
Supervisor for an external Apache Tika server.

It downloads and validates the tika-server jar, launches it as a subprocess
and waits until it answers before handing out its URL.
"""

from .errors import (
    ArtifactPathError, ChecksumMismatchError, ConfigurationError, DownloadError, LaunchError, ServerError,
    StartCancelledError, StartupTimeoutError, TikaServerError,
)
from .external import Version, download_server, validate_file_md5
from .supervisor import (
    Command, Server, cmder, new_server, with_command_factory, with_hostname, with_java_path, with_java_props,
    with_port, with_startup_timeout,
)

__all__ = [
    "ArtifactPathError", "ChecksumMismatchError", "Command", "ConfigurationError", "DownloadError",
    "LaunchError", "Server", "ServerError", "StartCancelledError", "StartupTimeoutError", "TikaServerError",
    "Version", "cmder", "download_server", "new_server", "validate_file_md5", "with_command_factory",
    "with_hostname", "with_java_path", "with_java_props", "with_port", "with_startup_timeout",
]
