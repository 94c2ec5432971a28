import logging

import pytest

from tika_server import main
from tika_server.errors import DownloadError


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    monkeypatch.setattr(main, "setup_logging", lambda level=logging.INFO: None)


def test_main_usage(capsys):
    assert main.main([]) == 2
    assert "Usage" in capsys.readouterr().out
    assert main.main(["unknown"]) == 2


def test_main_download(monkeypatch, tmp_path):
    calls = []
    monkeypatch.setattr(main, "download_server", lambda version, path: calls.append((version, path)))
    assert main.main(["download", "1.14", str(tmp_path / "tika.jar")]) == 0
    assert calls == [("1.14", str(tmp_path / "tika.jar"))]


def test_main_download_error(monkeypatch):
    def fail(version, path):
        raise DownloadError("boom")

    monkeypatch.setattr(main, "download_server", fail)
    assert main.main(["download", "1.14", "tika.jar"]) == 1


def test_main_serve_invalid_jar(monkeypatch, tmp_path):
    monkeypatch.setattr(main.setproctitle, "setproctitle", lambda title: None)
    assert main.main(["serve", str(tmp_path / "missing.jar")]) == 1


def test_main_serve_invalid_timeout(tmp_path):
    assert main.main(["serve", str(tmp_path / "tika.jar"), "--timeout", "soon"]) == 2


def test_parse_flags():
    flags, positional = main._parse_flags(["tika.jar", "--host", "0.0.0.0", "--verbose", "--port", "9999"])
    assert flags == {"host": "0.0.0.0", "verbose": "1", "port": "9999"}
    assert positional == ["tika.jar"]


def test_main_serve_rejects_extra_positionals(monkeypatch):
    def must_not_build(*args, **kwargs):
        raise AssertionError("Server should not be built")

    monkeypatch.setattr(main, "Server", must_not_build)
    assert main.main(["serve", "a.jar", "b.jar"]) == 2


class ExitingServer:
    """Starts fine, then reports that its process is gone."""

    url = "http://localhost:9998"
    running = False

    def __init__(self, jar, *options):
        self.stopped = False

    def start(self, cancel_event=None):
        def stop():
            self.stopped = True
        return stop


def test_main_serve_server_exits_on_its_own(monkeypatch, tmp_path):
    monkeypatch.setattr(main.setproctitle, "setproctitle", lambda title: None)
    monkeypatch.setattr(main, "Server", ExitingServer)
    assert main.main(["serve", str(tmp_path / "tika.jar")]) == 1
