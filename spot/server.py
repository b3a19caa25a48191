"""Development server for Spot.

Serves the build directory over HTTP while the watch loop rebuilds it, and
coordinates a graceful shutdown of both on SIGINT or SIGTERM:
- Rejects directory listings with a 404.
- Sends no-cache headers so rebuilt pages are always fetched again.
- Stops accepting connections on shutdown and waits for in-flight requests.

Key classes:
- SiteServer: Threaded static file server bound to the build directory.
- DevServer: Runs the serve and watch loops and shuts both down together.
- _SiteRequestHandler: HTTP request handler for the build directory.
"""

from __future__ import annotations

import functools
import logging
import signal
import threading
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

from .config import load_config
from .watch import WatchLoop

logger = logging.getLogger(__name__)

DEFAULT_ADDRESS = ":8080"


def parse_address(address: str) -> tuple[str, int]:
    """Split a ``host:port`` address.

    Examples:
        >>> parse_address(":8080")
        ('', 8080)

        >>> parse_address("127.0.0.1:9000")
        ('127.0.0.1', 9000)

    Raises:
        ValueError: If the port is missing or out of range.
    """
    host, sep, port = address.strip().rpartition(":")
    if not sep:
        host, port = "", address.strip()
    host = host.strip("[]")
    try:
        number = int(port)
    except ValueError:
        raise ValueError(f"Invalid address {address!r}: port must be a number") from None
    if not 0 <= number <= 65535:
        raise ValueError(f"Invalid address {address!r}: port out of range")
    return host, number


class _SiteRequestHandler(SimpleHTTPRequestHandler):
    """Serves files from the build directory without directory listings."""

    def end_headers(self):
        self.send_header("Cache-Control", "no-cache, no-store, must-revalidate")
        super().end_headers()

    def list_directory(self, path):
        # Never expose directory listings; treat as missing content.
        self.send_error(404, "File not found")
        return None

    def log_message(self, format, *args):
        logger.debug("%s - %s", self.address_string(), format % args)


class SiteServer:
    """Threaded HTTP server for a build directory.

    The directory is resolved on every request, so a rebuilt tree swapped in
    under the same path is served without restarting.

    Attributes:
        root: Directory being served.
        httpd: Underlying ThreadingHTTPServer; bound on construction.
    """

    def __init__(self, root: Path, address: str = DEFAULT_ADDRESS):
        self.root = root
        host, port = parse_address(address)
        handler = functools.partial(_SiteRequestHandler, directory=str(root))
        self.httpd = ThreadingHTTPServer((host, port), handler)
        # Non-daemon request threads are joined by server_close().
        self.httpd.daemon_threads = False

    @property
    def port(self) -> int:
        return self.httpd.server_address[1]

    def serve_forever(self) -> None:
        logger.info("Serving %s at http://localhost:%d", self.root, self.port)
        self.httpd.serve_forever(poll_interval=0.25)

    def shutdown(self) -> None:
        """Stop accepting requests and wait for in-flight ones to finish.

        Must not be called from the thread running serve_forever().
        """
        self.httpd.shutdown()
        self.httpd.server_close()
        logger.info("HTTP server stopped")


class DevServer:
    """Serves the output while rebuilding it on change.

    Attributes:
        config_path: Configuration file of the site.
        address: Address the HTTP server listens on.
        stop_event: Shared shutdown flag; set by signals or a failing loop.
    """

    def __init__(self, config_path: Path, address: str = DEFAULT_ADDRESS):
        self.config_path = Path(config_path)
        self.config = load_config(self.config_path)
        self.address = address
        self.stop_event = threading.Event()
        self._watch_error: Exception | None = None
        self._serve_error: Exception | None = None

    def start(self) -> None:  # pragma: no cover - integration path
        """Run until SIGINT/SIGTERM, then shut both loops down."""
        previous = self._install_signal_handlers()
        try:
            server = SiteServer(self.config.build_path, self.address)
            self.run(server, WatchLoop(self.config_path, self.stop_event))
        finally:
            for signum, handler in previous.items():
                signal.signal(signum, handler)

    def run(self, server: SiteServer, watcher: WatchLoop) -> None:
        """Run the serve and watch loops until the stop event is set.

        Returns once the HTTP server has drained its in-flight requests and the
        watch loop has returned.

        Raises:
            Exception: The error that stopped the watch loop or the HTTP
                server, if any.
        """
        serve_thread = threading.Thread(target=self._run_serve, args=(server,), name="spot-serve")
        watch_thread = threading.Thread(target=self._run_watch, args=(watcher,), name="spot-watch")
        serve_thread.start()
        watch_thread.start()
        try:
            while not self.stop_event.wait(0.5):
                pass
        finally:
            self.stop_event.set()
            watcher.stop()
            logger.info("Shutting down HTTP server...")
            server.shutdown()
            serve_thread.join()
            watch_thread.join()
        if self._watch_error is not None:
            raise self._watch_error
        if self._serve_error is not None:
            raise self._serve_error

    def _run_serve(self, server: SiteServer) -> None:
        try:
            server.serve_forever()
        except Exception as exc:
            logger.error("HTTP server failed: %s", exc)
            self._serve_error = exc
        finally:
            self.stop_event.set()

    def _run_watch(self, watcher: WatchLoop) -> None:
        try:
            watcher.run()
        except Exception as exc:
            logger.error("Watch loop failed: %s", exc)
            self._watch_error = exc
        finally:
            self.stop_event.set()

    def _install_signal_handlers(self) -> dict:
        previous = {}
        if threading.current_thread() is not threading.main_thread():
            return previous

        def _handle(signum, frame):
            logger.info("Received %s, stopping", signal.Signals(signum).name)
            self.stop_event.set()

        for signum in (signal.SIGINT, signal.SIGTERM):
            previous[signum] = signal.signal(signum, _handle)
        return previous
