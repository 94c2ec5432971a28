import sys
import time
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

from tika_server.supervisor import Command


class BouncyServer:
    """A stub health endpoint that answers 500 for the first `bounce` requests, then 200."""

    def __init__(self, bounce: int, delay: float = 0.0):
        self.bounce = bounce
        self.delay = delay
        self.requests = 0
        lock = threading.Lock()
        outer = self

        class Handler(BaseHTTPRequestHandler):
            def do_GET(self):
                if outer.delay:
                    time.sleep(outer.delay)
                with lock:
                    outer.requests += 1
                    failing = outer.bounce < 0 or outer.requests <= outer.bounce
                body = b"error" if failing else b"1.14"
                self.send_response(500 if failing else 200)
                self.send_header("Content-Length", str(len(body)))
                self.end_headers()
                self.wfile.write(body)

            def log_message(self, *args):
                pass

        self.httpd = ThreadingHTTPServer(("127.0.0.1", 0), Handler)
        self.host, self.port = self.httpd.server_address[:2]
        self.url = f"http://{self.host}:{self.port}"
        self._closed = False
        self._thread = threading.Thread(target=self.httpd.serve_forever, daemon=True)
        self._thread.start()

    def close(self):
        if self._closed:
            return
        self._closed = True
        self.httpd.shutdown()
        self.httpd.server_close()


@pytest.fixture
def bouncy_server():
    servers = []

    def make(bounce: int = 0, delay: float = 0.0) -> BouncyServer:
        try:
            server = BouncyServer(bounce, delay)
        except PermissionError:
            pytest.skip("port bind not permitted in this environment")
        servers.append(server)
        return server

    yield make
    for server in servers:
        server.close()


@pytest.fixture
def dummy_jar(tmp_path):
    jar = tmp_path / "tika-server.jar"
    jar.write_bytes(b"not really a jar")
    return jar


def _make_sleeper(seconds: float):
    """A command factory that ignores the java command and runs a sleeping Python process."""
    calls = []

    def factory(cancel_event, program, *args):
        calls.append((program, args))
        return Command([sys.executable, "-c", f"import time; time.sleep({seconds})"])

    factory.calls = calls
    return factory


@pytest.fixture
def sleeper_factory():
    return _make_sleeper
