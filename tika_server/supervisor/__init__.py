"""
The Supervisor package.
Manages the lifecycle of the tika-server subprocess.

This package contains the Server handle, its functional options and the
process helpers that launch, log and stop the subprocess.
"""
from .options import (
    ServerConfig, with_command_factory, with_hostname, with_java_path, with_java_props, with_port,
    with_startup_timeout,
)
from .process_utils import Command, cmder
from .server import Server, new_server, wait_for_start

__all__ = [
    "Command", "Server", "ServerConfig", "cmder", "new_server", "wait_for_start", "with_command_factory",
    "with_hostname", "with_java_path", "with_java_props", "with_port", "with_startup_timeout",
]
