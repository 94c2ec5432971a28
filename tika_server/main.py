import sys
import logging
import threading
import setproctitle
from typing import Dict, List, Optional, Tuple

from tika_server import settings
from tika_server.errors import TikaServerError
from tika_server.external import download_server
from tika_server.log import setup_logging
from tika_server.supervisor import Server, with_hostname, with_port, with_startup_timeout

log = logging.getLogger("console")

USAGE = """Usage:
  python -m tika_server.main download [<version> [<path>]]
  python -m tika_server.main serve [<jar>] [--host H] [--port P] [--timeout S] [--verbose]"""


def _parse_flags(args: List[str]) -> Tuple[Dict[str, Optional[str]], List[str]]:
    """Splits '--name value' pairs and bare '--flag' switches from the positional arguments."""
    flags: Dict[str, Optional[str]] = {}
    positional: List[str] = []
    it = iter(args)
    for arg in it:
        if arg == "--verbose":
            flags["verbose"] = "1"
        elif arg.startswith("--"):
            flags[arg[2:]] = next(it, None)
        else:
            positional.append(arg)
    return flags, positional


def _cmd_download(args: List[str]) -> int:
    version = args[0] if args else settings.DEFAULT_VERSION
    path = args[1] if len(args) > 1 else str(settings.DEFAULT_JAR_PATH)
    try:
        download_server(version, path)
    except TikaServerError as e:
        log.error(f"Download of tika-server {version} failed: {e}")
        return 1
    return 0


def _cmd_serve(args: List[str]) -> int:
    flags, positional = _parse_flags(args)
    if len(positional) > 1:
        log.error(f"Expected at most one jar path, got {len(positional)}: {positional}")
        return 2
    if flags.get("verbose"):
        setup_logging(logging.DEBUG)

    jar = positional[0] if positional else str(settings.DEFAULT_JAR_PATH)
    options = []
    if flags.get("host"):
        options.append(with_hostname(flags["host"]))
    if flags.get("port"):
        options.append(with_port(flags["port"]))
    try:
        if flags.get("timeout"):
            options.append(with_startup_timeout(float(flags["timeout"])))
    except ValueError:
        log.error(f"Invalid timeout '{flags['timeout']}'.")
        return 2

    setproctitle.setproctitle("Tika - Supervisor")
    shutdown = threading.Event()
    try:
        server = Server(jar, *options)
        stop = server.start(shutdown)
    except TikaServerError as e:
        log.error(f"Could not start tika-server: {e}")
        return 1

    log.info(f"tika-server is available at {server.url}. Press Ctrl+C to stop.")
    interrupted = False
    try:
        while server.running:
            shutdown.wait(settings.POLL_INTERVAL)
    except KeyboardInterrupt:
        interrupted = True
        log.warning("Interrupted by user.")
    finally:
        shutdown.set()
        stop()

    if not interrupted:
        log.error("tika-server exited on its own.")
        return 1
    return 0


COMMANDS = {
    "download": _cmd_download,
    "serve": _cmd_serve,
}


def main(argv: Optional[List[str]] = None) -> int:
    """The main entry point for the command line."""
    setup_logging(logging.INFO)

    argv = sys.argv[1:] if argv is None else argv
    if not argv or argv[0].lower() not in COMMANDS:
        print(USAGE)
        return 2

    command, args = argv[0].lower(), argv[1:]
    log.debug(f"Received command: {command}, args: {args}")
    return COMMANDS[command](args)


if __name__ == "__main__":
    sys.exit(main())
