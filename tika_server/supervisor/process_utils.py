import sys
import psutil
import logging
import threading
import subprocess
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from tika_server import settings

log = logging.getLogger(__name__)


#* --- Process Creation ---
@dataclass
class Command:
    """An external command that has not been started yet."""
    args: List[str]
    cwd: Optional[str] = None
    env: Optional[Dict[str, str]] = None
    popen_kwargs: Dict[str, Any] = field(default_factory=dict)

    def start(self) -> subprocess.Popen:
        """Spawns the command with piped output. Raises OSError if it cannot be spawned."""
        kwargs = _get_popen_creation_flags()
        kwargs.update(self.popen_kwargs)
        return subprocess.Popen(
            self.args,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            stdin=subprocess.DEVNULL,
            cwd=self.cwd,
            env=self.env,
            **kwargs,
        )


# (cancel_event, program, *args) -> Command
CommandFactory = Callable[..., Command]


def _get_popen_creation_flags() -> Dict[str, Any]:
    """Returns platform-specific creation flags for subprocess.Popen."""
    if sys.platform == "win32":
        return {"creationflags": subprocess.CREATE_NEW_PROCESS_GROUP | subprocess.CREATE_NO_WINDOW}
    return {"start_new_session": True}


def cmder(cancel_event: Optional[threading.Event], program: str, *args: str) -> Command:
    """Default command factory: runs `program` with `args` as given."""
    return Command([program, *args])


def build_java_args(jar: str, hostname: str, port: str, java_props: Dict[str, str]) -> List[str]:
    """Returns the arguments passed to the java executable for a tika-server jar."""
    props = [f"-D{key}={value}" for key, value in sorted(java_props.items())]
    return [*props, "-jar", jar, "--host", hostname, "--port", str(port)]


#* --- Process Output ---
def _read_pipe(pipe, process_name: str, level: int) -> None:
    """Target function for reader threads. Reads and logs lines from a subprocess pipe."""
    proc_logger = logging.getLogger(f"proc.{process_name}")
    try:
        for line_bytes in iter(pipe.readline, b""):
            line = line_bytes.decode("utf-8", errors="replace").strip()
            if line:
                proc_logger.log(level, line)
    except (OSError, ValueError) as e:
        proc_logger.debug(f"Pipe reader for {process_name} stream exited: {e}")
    finally:
        pipe.close()


def log_process_output(process: subprocess.Popen, name: str) -> None:
    """Starts background threads to consume and log a process's stdout/stderr."""
    if process.stdout:
        threading.Thread(target=_read_pipe, args=(process.stdout, name, logging.INFO), daemon=True).start()
    if process.stderr:
        threading.Thread(target=_read_pipe, args=(process.stderr, name, logging.WARNING), daemon=True).start()


#* --- Process Shutdown ---
def _collect_process_tree(pid: int) -> List[psutil.Process]:
    try:
        parent = psutil.Process(pid)
    except psutil.NoSuchProcess:
        return []
    try:
        children = parent.children(recursive=True)
    except psutil.NoSuchProcess:
        children = []
    return [parent, *children]


def _terminate_processes(processes: List[psutil.Process]) -> None:
    """Sends SIGTERM to all processes."""
    for proc in processes:
        try:
            log.debug(f"Sending SIGTERM to PID {proc.pid}")
            proc.terminate()
        except psutil.NoSuchProcess:
            continue


def _forceful_kill(processes: List[psutil.Process]) -> None:
    """Forcefully kills processes that didn't terminate gracefully."""
    if not processes:
        return

    log.warning(f"{len(processes)} processes did not terminate gracefully. Forcing shutdown...")
    for proc in processes:
        try:
            log.warning(f"Killing stubborn process PID {proc.pid}.")
            proc.kill()
        except psutil.NoSuchProcess:
            continue


def terminate_process_tree(process: subprocess.Popen, timeout: float = settings.GRACEFUL_SHUTDOWN_TIMEOUT) -> None:
    """
    Stops a spawned process and every child it started.

    Processes get SIGTERM first; whatever is still alive after `timeout`
    seconds is killed. The Popen object is reaped afterwards so no zombie is left.

    :param process: The process returned by Command.start().
    :param timeout: Seconds to wait before force-killing.
    """
    if process.poll() is not None:
        return

    procs = _collect_process_tree(process.pid)
    _terminate_processes(procs)
    try:
        _, alive = psutil.wait_procs(procs, timeout=timeout)
    except psutil.NoSuchProcess:
        alive = []
    _forceful_kill(alive)

    try:
        process.wait(timeout=timeout)
    except subprocess.TimeoutExpired:
        log.error(f"Process {process.pid} could not be reaped after kill.")
