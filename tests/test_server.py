import logging
import threading
import urllib.error
import urllib.request

import pytest

from spot.server import DevServer, SiteServer, parse_address
from spot.watch import WatchError


@pytest.mark.parametrize(
    "address, expected",
    [
        (":8080", ("", 8080)),
        ("127.0.0.1:9000", ("127.0.0.1", 9000)),
        ("localhost:0", ("localhost", 0)),
        ("[::1]:8000", ("::1", 8000)),
        ("8081", ("", 8081)),
    ],
)
def test_parse_address(address, expected):
    assert parse_address(address) == expected


@pytest.mark.parametrize("address", [":http", "host:", ":70000", "a:b:c"])
def test_parse_address_rejects_invalid(address):
    with pytest.raises(ValueError):
        parse_address(address)


def fetch(url):
    with urllib.request.urlopen(url, timeout=5) as response:
        return response.status, response.headers, response.read()


def test_site_server_serves_files_and_shuts_down(tmp_path):
    (tmp_path / "index.html").write_text("<h1>Home</h1>", encoding="utf-8")
    (tmp_path / "blog").mkdir()
    (tmp_path / "blog" / "post.html").write_text("post", encoding="utf-8")
    (tmp_path / "empty").mkdir()

    server = SiteServer(tmp_path, "127.0.0.1:0")
    thread = threading.Thread(target=server.serve_forever)
    thread.start()
    try:
        base = f"http://127.0.0.1:{server.port}"
        status, headers, body = fetch(base + "/")
        assert status == 200
        assert body == b"<h1>Home</h1>"
        assert "no-cache" in headers["Cache-Control"]
        assert fetch(base + "/blog/post.html")[2] == b"post"

        with pytest.raises(urllib.error.HTTPError) as exc_info:
            fetch(base + "/empty/")
        assert exc_info.value.code == 404
        with pytest.raises(urllib.error.HTTPError):
            fetch(base + "/missing.html")
    finally:
        server.shutdown()
        thread.join(timeout=5)
    assert not thread.is_alive()


def test_site_server_follows_swapped_directory(tmp_path):
    root = tmp_path / "dist"
    root.mkdir()
    (root / "index.html").write_text("old", encoding="utf-8")
    server = SiteServer(root, "127.0.0.1:0")
    thread = threading.Thread(target=server.serve_forever)
    thread.start()
    try:
        base = f"http://127.0.0.1:{server.port}"
        assert fetch(base + "/")[2] == b"old"
        root.rename(tmp_path / "dist.old")
        root.mkdir()
        (root / "index.html").write_text("new", encoding="utf-8")
        assert fetch(base + "/")[2] == b"new"
    finally:
        server.shutdown()
        thread.join(timeout=5)


class DummyServer:
    def __init__(self):
        self.serving = threading.Event()
        self.stopped = threading.Event()

    def serve_forever(self):
        self.serving.set()
        self.stopped.wait(5)

    def shutdown(self):
        self.stopped.set()


class DummyWatcher:
    def __init__(self, stop_event, error=None):
        self.stop_event = stop_event
        self.error = error
        self.ran = False

    def run(self):
        self.ran = True
        if self.error is not None:
            raise self.error
        self.stop_event.wait(5)

    def stop(self):
        self.stop_event.set()


def write_config(tmp_path):
    config_path = tmp_path / "config.yaml"
    config_path.write_text("site_title: Served\n", encoding="utf-8")
    return config_path


def test_dev_server_stops_both_loops_on_stop_event(tmp_path):
    dev = DevServer(write_config(tmp_path), "127.0.0.1:0")
    server = DummyServer()
    watcher = DummyWatcher(dev.stop_event)

    def trigger_stop():
        server.serving.wait(5)
        dev.stop_event.set()

    stopper = threading.Thread(target=trigger_stop)
    stopper.start()
    dev.run(server, watcher)
    stopper.join()

    assert watcher.ran
    assert server.stopped.is_set()


def test_dev_server_reraises_watch_failure(tmp_path):
    dev = DevServer(write_config(tmp_path))
    server = DummyServer()
    watcher = DummyWatcher(dev.stop_event, error=WatchError("file watcher closed unexpectedly"))

    with pytest.raises(WatchError):
        dev.run(server, watcher)
    assert server.stopped.is_set()
    assert dev.stop_event.is_set()


class CrashingServer(DummyServer):
    def serve_forever(self):
        self.serving.set()
        raise OSError("Bad file descriptor")


def test_dev_server_stops_watching_when_http_server_dies(tmp_path, caplog):
    dev = DevServer(write_config(tmp_path))
    server = CrashingServer()
    watcher = DummyWatcher(dev.stop_event)

    caplog.set_level(logging.ERROR, logger="spot")
    with pytest.raises(OSError, match="Bad file descriptor"):
        dev.run(server, watcher)
    assert watcher.ran
    assert dev.stop_event.is_set()
    assert "HTTP server failed" in caplog.text


def test_dev_server_loads_config_up_front(tmp_path):
    dev = DevServer(write_config(tmp_path))
    assert dev.config.site.title == "Served"
    assert dev.address == ":8080"
