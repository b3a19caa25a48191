"""Watch and rebuild loop for Spot.

The loop watches the content, static and template trees with watchdog and
rebuilds the whole site whenever a file is written or created. Filesystem
events are delivered by watchdog's observer thread into a queue that only the
loop consumes, and rebuilds run on the loop's own thread, so two rebuilds never
overlap. Events that arrive while a rebuild is running are coalesced into at
most one follow-up rebuild.

Key classes:
- WatchLoop: Runs the initial build, then waits for changes until stopped.
- _ChangeHandler: Watchdog handler feeding trigger events into the queue.
"""

from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .build import BuildError, build_site, staging_dir_for
from .config import Config, ConfigError, load_config
from .utils import is_relative_to

logger = logging.getLogger(__name__)


class WatchError(RuntimeError):
    """Raised when the filesystem event stream stops unexpectedly."""


@dataclass(frozen=True)
class WatchItem:
    """One item of the event queue: a trigger path or a watcher error."""

    path: str = ""
    error: BaseException | None = None


class _ChangeHandler(FileSystemEventHandler):
    """Queues write and create events, ignoring the build output."""

    def __init__(self, events: queue.Queue, ignored: tuple[Path, ...] = ()):
        super().__init__()
        self.events = events
        self.ignored = ignored

    def on_any_event(self, event: FileSystemEvent) -> None:
        try:
            path = self._trigger_path(event)
        except Exception as exc:
            self.events.put(WatchItem(error=exc))
            return
        if path is not None:
            self.events.put(WatchItem(path=path))

    def _trigger_path(self, event: FileSystemEvent) -> str | None:
        if event.event_type == "created":
            path = event.src_path
        elif event.event_type == "modified" and not event.is_directory:
            path = event.src_path
        elif event.event_type == "moved":
            path = event.dest_path
        else:
            return None
        if isinstance(path, bytes):
            path = path.decode()
        resolved = Path(path)
        if any(is_relative_to(resolved, ignored) for ignored in self.ignored):
            return None
        return str(resolved)


class WatchLoop:
    """Rebuilds the site whenever its sources change.

    Attributes:
        config_path: Configuration file, re-read on every rebuild.
        stop_event: Set to make the loop return.
        events: Queue of WatchItems fed by the observer.
        builds: Number of rebuilds run so far, the initial one included.
    """

    def __init__(
        self,
        config_path: Path,
        stop_event: threading.Event | None = None,
        build: Callable[[Config], object] | None = None,
        observer_factory: Callable[[], object] = Observer,
        poll_interval: float = 0.25,
    ):
        self.config_path = Path(config_path)
        self.stop_event = stop_event or threading.Event()
        self.events: queue.Queue[WatchItem] = queue.Queue()
        self.builds = 0
        self._build = build or build_site
        self._observer_factory = observer_factory
        self._poll_interval = poll_interval

    def run(self) -> None:
        """Build once, then rebuild on every change until stopped.

        Raises:
            ConfigError: If the configuration cannot be loaded at startup.
            WatchError: If the observer thread dies while watching.
        """
        config = load_config(self.config_path)
        observer = self._start_observer(config)
        try:
            self._rebuild("initial build")
            logger.info("Watching %s for changes", ", ".join(str(p) for p in config.watch_paths))
            while not self.stop_event.is_set():
                try:
                    item = self.events.get(timeout=self._poll_interval)
                except queue.Empty:
                    if not observer.is_alive():
                        raise WatchError("file watcher closed unexpectedly") from None
                    continue
                if not self._consume(item):
                    continue
                self._rebuild(item.path)
                while not self.stop_event.is_set() and self._drain():
                    self._rebuild("changes during previous rebuild")
        finally:
            observer.stop()
            observer.join()
            logger.info("Stopped file watcher")

    def stop(self) -> None:
        self.stop_event.set()

    def _start_observer(self, config: Config):
        handler = _ChangeHandler(
            self.events,
            ignored=(config.build_path, staging_dir_for(config.build_path)),
        )
        observer = self._observer_factory()
        for folder in config.watch_paths:
            if not folder.is_dir():
                logger.warning("Not watching missing directory %s", folder)
                continue
            observer.schedule(handler, str(folder), recursive=True)
        observer.start()
        return observer

    def _consume(self, item: WatchItem) -> bool:
        """Log ``item``; return True if it should trigger a rebuild."""
        if item.error is not None:
            logger.error("File watcher error: %s", item.error)
            return False
        logger.info("File change detected in %s, rebuilding", item.path)
        return True

    def _drain(self) -> bool:
        """Consume every queued item; return True if any was a trigger."""
        triggered = False
        while True:
            try:
                item = self.events.get_nowait()
            except queue.Empty:
                return triggered
            triggered = self._consume(item) or triggered

    def _rebuild(self, reason: str) -> None:
        self.builds += 1
        logger.debug("Rebuild #%d (%s)", self.builds, reason)
        try:
            config = load_config(self.config_path)
            self._build(config)
        except (ConfigError, BuildError) as exc:
            logger.error("Failed to rebuild: %s", exc)
