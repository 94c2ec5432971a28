import os
import time
import logging
import requests
import threading
import subprocess
from pathlib import Path
from typing import Callable, Optional, Union

from tika_server import settings
from tika_server.errors import (
    ConfigurationError, LaunchError, ServerError, StartCancelledError, StartupTimeoutError,
)
from tika_server.supervisor import process_utils
from tika_server.supervisor.options import Option, ServerConfig, validate_config

log = logging.getLogger(__name__)


def _check_jar(jar: Union[str, Path]) -> str:
    """Makes sure the jar path points to a readable file and returns it as a string."""
    if not str(jar):
        raise ConfigurationError("no jar path given")
    path = Path(jar)
    if not path.is_file():
        raise ConfigurationError(f"jar '{jar}' does not exist or is not a file")
    if not os.access(path, os.R_OK):
        raise ConfigurationError(f"jar '{jar}' is not readable")
    return str(path)


def _is_up(session: requests.Session, url: str, timeout: float) -> bool:
    """Sends one health check. Only a successful response counts as up."""
    try:
        res = session.get(url, timeout=timeout)
        res.raise_for_status()
    except requests.RequestException as e:
        log.debug(f"Health check on {url} failed: {e}")
        return False
    return True


def wait_for_start(
    url: str,
    timeout: float,
    cancel_event: Optional[threading.Event] = None,
    process: Optional[subprocess.Popen] = None,
) -> None:
    """
    Polls `url` until it answers successfully or `timeout` seconds pass.

    :param url: The base URL of the server.
    :param timeout: Startup budget in seconds.
    :param cancel_event: When set, polling stops at the next check.
    :param process: The server process. Polling stops if it exits.
    :raises StartupTimeoutError: If no check succeeded in time.
    :raises StartCancelledError: If `cancel_event` was set.
    :raises LaunchError: If `process` exited before the server came up.
    """
    cancel_event = cancel_event or threading.Event()
    deadline = time.monotonic() + timeout

    log.info(f"Waiting for tika-server at {url}...")
    with requests.Session() as session:
        # The server is a local child process; environment proxies must not apply.
        session.trust_env = False
        while True:
            if cancel_event.is_set():
                raise StartCancelledError(f"start of {url} was cancelled")
            if process is not None and process.poll() is not None:
                log.error(f"tika-server exited with code {process.returncode} before it became available.")
                raise LaunchError(f"server process exited with code {process.returncode}")

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            if _is_up(session, url, min(settings.HEALTH_CHECK_TIMEOUT, remaining)):
                log.info("tika-server is up and answering.")
                return

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            if cancel_event.wait(min(settings.POLL_INTERVAL, remaining)):
                raise StartCancelledError(f"start of {url} was cancelled")

    log.critical(f"tika-server did not become available after {timeout} seconds.")
    raise StartupTimeoutError(f"server at {url} did not start within {timeout} seconds")


class Server:
    """
    A handle on a tika-server subprocess.

    Building a Server only validates its settings. start() launches the jar,
    waits for it to answer and hands back a callable that stops it.
    """

    def __init__(self, jar: Union[str, Path], *options: Option) -> None:
        """
        Validates the jar and options. No process is spawned here.

        :param jar: Path to the tika-server jar.
        :param options: Functional options such as with_hostname().
        :raises ConfigurationError: If the jar or any option is invalid.
        """
        self.jar = _check_jar(jar)

        config = ServerConfig()
        for option in options:
            option(config)

        self._url, self.port = validate_config(config)
        self.hostname = config.hostname
        self.startup_timeout = config.startup_timeout
        self.java_path = config.java_path
        self.java_props = dict(config.java_props)
        self.command_factory = config.command_factory

        self._process: Optional[subprocess.Popen] = None
        self._stop: Optional[Callable[[], None]] = None

    @property
    def url(self) -> str:
        """The base URL of the server."""
        return self._url

    @property
    def running(self) -> bool:
        return self._process is not None and self._process.poll() is None

    def start(self, cancel_event: Optional[threading.Event] = None) -> Callable[[], None]:
        """
        Launches the server and blocks until it answers or the startup timeout passes.

        :param cancel_event: Optional cancellation token. Setting it aborts the
            wait, and after a successful start it stops the server.
        :return: A callable that stops the server. Calling it again does nothing.
        :raises LaunchError: If the process cannot be spawned.
        :raises StartupTimeoutError: If the server never answered. The process is stopped first.
        :raises StartCancelledError: If `cancel_event` was set while waiting.
        """
        if self.running:
            raise ServerError(f"server at {self._url} is already running")

        args = process_utils.build_java_args(self.jar, self.hostname, str(self.port), self.java_props)
        command = self.command_factory(cancel_event, self.java_path, *args)

        log.info(f"Starting tika-server from '{self.jar}' on {self._url}...")
        try:
            process = command.start()
        except OSError as e:
            log.critical(f"Failed to start tika-server: {e}", exc_info=True)
            raise LaunchError(f"cannot launch {command.args[0]}: {e}") from e

        process_utils.log_process_output(process, settings.PROCESS_LOG_NAME)
        self._process = process

        try:
            wait_for_start(self._url, self.startup_timeout, cancel_event, process)
        except BaseException:
            process_utils.terminate_process_tree(process)
            self._process = None
            raise

        log.info(f"tika-server started with PID: {process.pid}")
        self._stop = self._make_stop(process)
        if cancel_event is not None:
            threading.Thread(
                target=self._watch_cancel, args=(cancel_event, process, self._stop),
                daemon=True, name="TikaCancelWatcher",
            ).start()
        return self._stop

    def _make_stop(self, process: subprocess.Popen) -> Callable[[], None]:
        lock = threading.Lock()
        stopped = False

        def stop() -> None:
            nonlocal stopped
            with lock:
                if stopped:
                    return
                stopped = True
            log.info(f"Stopping tika-server (PID {process.pid})...")
            process_utils.terminate_process_tree(process)
            if self._process is process:
                self._process = None

        return stop

    @staticmethod
    def _watch_cancel(cancel_event: threading.Event, process: subprocess.Popen, stop: Callable[[], None]) -> None:
        """Stops the server once the caller's cancel event is set."""
        while process.poll() is None:
            if cancel_event.wait(settings.POLL_INTERVAL):
                log.info("Cancellation requested. Stopping tika-server.")
                stop()
                return

    def stop(self) -> None:
        """Stops the server if start() succeeded. Safe to call more than once."""
        if self._stop is not None:
            self._stop()

    def __enter__(self) -> "Server":
        self.start()
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.stop()


def new_server(jar: Union[str, Path], *options: Option) -> Server:
    """Builds a Server for `jar`. See Server.__init__."""
    return Server(jar, *options)
