import re
import socket
import ipaddress
from dataclasses import dataclass, field
from typing import Callable, Dict, Tuple, Union

from tika_server import settings
from tika_server.errors import ConfigurationError
from tika_server.supervisor.process_utils import CommandFactory, cmder

HOSTNAME_LABEL = re.compile(r"^(?!-)[A-Za-z0-9_-]{1,63}(?<!-)$")


@dataclass
class ServerConfig:
    """Settings used to build a Server. Unset fields keep the defaults from settings.py."""
    hostname: str = settings.DEFAULT_HOSTNAME
    port: str = settings.DEFAULT_PORT
    startup_timeout: float = settings.DEFAULT_STARTUP_TIMEOUT
    java_path: str = settings.JAVA_EXECUTABLE
    java_props: Dict[str, str] = field(default_factory=dict)
    command_factory: CommandFactory = cmder


Option = Callable[[ServerConfig], None]


def with_hostname(hostname: str) -> Option:
    """Sets the hostname the server binds to and is polled on."""
    def apply(config: ServerConfig) -> None:
        config.hostname = hostname
    return apply


def with_port(port: Union[str, int]) -> Option:
    """Sets the port the server binds to and is polled on."""
    def apply(config: ServerConfig) -> None:
        config.port = str(port)
    return apply


def with_startup_timeout(seconds: float) -> Option:
    """Sets how long start() waits for the first successful health check."""
    def apply(config: ServerConfig) -> None:
        config.startup_timeout = seconds
    return apply


def with_java_path(java_path: str) -> Option:
    def apply(config: ServerConfig) -> None:
        config.java_path = java_path
    return apply


def with_java_props(props: Dict[str, str]) -> Option:
    """Adds -Dkey=value system properties to the java command line."""
    def apply(config: ServerConfig) -> None:
        config.java_props.update(props)
    return apply


def with_command_factory(factory: CommandFactory) -> Option:
    """Replaces the factory that turns (cancel_event, program, *args) into a Command."""
    def apply(config: ServerConfig) -> None:
        config.command_factory = factory
    return apply


#* --- Validation ---
def _strip_brackets(hostname: str) -> str:
    if hostname.startswith("[") and hostname.endswith("]"):
        return hostname[1:-1]
    return hostname


def is_valid_hostname(hostname: str) -> bool:
    """Accepts IP literals and DNS names. Percent-escapes and other URL syntax are rejected."""
    if not hostname:
        return False
    try:
        ipaddress.ip_address(_strip_brackets(hostname))
        return True
    except ValueError:
        pass
    name = hostname[:-1] if hostname.endswith(".") else hostname
    if len(name) > 253:
        return False
    return all(HOSTNAME_LABEL.match(label) for label in name.split("."))


def resolve_port(port: str) -> int:
    """
    Returns the numeric port for a port number or a service name.

    :raises ConfigurationError: If the port is out of range or cannot be resolved.
    """
    if port.isascii() and port.isdigit():
        number = int(port)
        if 0 < number < 65536:
            return number
        raise ConfigurationError(f"port {port} is out of range")
    try:
        return socket.getservbyname(port, "tcp")
    except OSError as e:
        raise ConfigurationError(f"cannot resolve port '{port}': {e}") from e


def build_base_url(hostname: str, port: int) -> str:
    """Returns the http base URL for a host and port, bracketing IPv6 literals."""
    host = _strip_brackets(hostname)
    if ":" in host:
        host = f"[{host}]"
    return f"http://{host}:{port}"


def validate_config(config: ServerConfig) -> Tuple[str, int]:
    """
    Checks a ServerConfig and returns the base URL it describes with its numeric port.

    :raises ConfigurationError: If any field cannot be used to reach the server.
    """
    if not is_valid_hostname(config.hostname):
        raise ConfigurationError(f"invalid hostname '{config.hostname}'")
    port = resolve_port(config.port)
    if config.startup_timeout <= 0:
        raise ConfigurationError(f"startup timeout must be positive, got {config.startup_timeout}")
    if not config.java_path:
        raise ConfigurationError("no java executable configured")
    return build_base_url(config.hostname, port), port
