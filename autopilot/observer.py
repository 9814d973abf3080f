"""Recursive filesystem observer built on watchdog.

Emits one ChangeEvent per file created, modified or deleted under the watched
root. Added and modified files are held back until their size and mtime stop
changing, so half-written files never reach the coordinator.
"""

import logging
import os
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from autopilot.config import WatchConfig
from autopilot.errors import ObserverError

logger = logging.getLogger(__name__)


class ChangeKind(Enum):
    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"


@dataclass(frozen=True)
class ChangeEvent:
    path: str
    kind: ChangeKind


ChangeCallback = Callable[[ChangeEvent], None]
ErrorCallback = Callable[[ObserverError], None]


def is_ignored(path: str, config: WatchConfig) -> bool:
    """Check a path (relative to the watched root) against the ignore set."""
    parts = [p for p in path.replace("\\", "/").split("/") if p and p != "."]
    for part in parts:
        if part in config.ignored_dirs:
            return True
        if config.ignore_hidden and part.startswith("."):
            return True
    return False


class WriteStabilizer:
    """Delay events until a file has been quiet for ``threshold`` seconds."""

    def __init__(
        self,
        emit: ChangeCallback,
        on_error: ErrorCallback,
        threshold: float,
        poll_interval: float,
        root: str = ".",
        clock: Callable[[], float] = time.monotonic,
    ):
        self._emit = emit
        self._on_error = on_error
        self._threshold = threshold
        self._poll_interval = poll_interval
        self._root = root
        self._clock = clock
        # path -> (kind, (size, mtime), time of last observed change)
        self._pending: dict[str, tuple[ChangeKind, tuple | None, float]] = {}
        self._lock = threading.Lock()
        # Serializes emission so a delete never overtakes a ready add.
        self._ordering = threading.Lock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self.on_tick: Callable[[], None] | None = None

    def _signature(self, path: str) -> tuple | None:
        st = os.stat(os.path.join(self._root, path))
        return st.st_size, st.st_mtime_ns

    def track(self, path: str, kind: ChangeKind) -> None:
        with self._lock:
            previous = self._pending.get(path)
            if previous is not None and previous[0] is ChangeKind.ADDED:
                kind = ChangeKind.ADDED
            signature = previous[1] if previous else None
            self._pending[path] = (kind, signature, self._clock())

    def discard(self, path: str) -> None:
        with self._lock:
            self._pending.pop(path, None)

    @property
    def ordering(self) -> threading.Lock:
        return self._ordering

    @property
    def pending(self) -> list[str]:
        with self._lock:
            return list(self._pending)

    def check(self) -> None:
        """Emit every pending path whose signature has stopped changing."""
        with self._ordering:
            ready = []
            errors = []
            now = self._clock()
            with self._lock:
                for path, (kind, signature, changed_at) in list(self._pending.items()):
                    try:
                        current = self._signature(path)
                    except FileNotFoundError:
                        # Deleted mid-write; the delete event reports it.
                        del self._pending[path]
                        continue
                    except OSError as e:
                        del self._pending[path]
                        errors.append(ObserverError(f"Cannot read {path}: {e}"))
                        continue
                    if current != signature:
                        self._pending[path] = (kind, current, now)
                    elif now - changed_at >= self._threshold:
                        del self._pending[path]
                        ready.append(ChangeEvent(path, kind))

            for error in errors:
                self._on_error(error)
            for event in ready:
                self._emit(event)

    def _run(self) -> None:
        while not self._stop.wait(self._poll_interval):
            self.check()
            if self.on_tick is not None:
                self.on_tick()

    def start(self) -> None:
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="autopilot-stabilizer", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None
        with self._lock:
            self._pending.clear()


class ChangeHandler(FileSystemEventHandler):
    """Translate watchdog events into ChangeEvents relative to the root."""

    def __init__(self, config: WatchConfig, emit: ChangeCallback, on_error: ErrorCallback,
                 stabilizer: WriteStabilizer):
        super().__init__()
        self._config = config
        self._root = os.path.abspath(config.root)
        self._emit = emit
        self._on_error = on_error
        self._stabilizer = stabilizer

    def _relative(self, path) -> str | None:
        if isinstance(path, bytes):
            path = os.fsdecode(path)
        rel = os.path.relpath(os.path.abspath(path), self._root)
        if rel == os.pardir or rel.startswith(os.pardir + os.sep):
            return None
        if is_ignored(rel, self._config):
            return None
        return rel

    def dispatch(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        try:
            super().dispatch(event)
        except OSError as e:
            self._on_error(ObserverError(f"{event.src_path}: {e}"))

    def on_created(self, event: FileSystemEvent) -> None:
        path = self._relative(event.src_path)
        if path is not None:
            self._stabilizer.track(path, ChangeKind.ADDED)

    def on_modified(self, event: FileSystemEvent) -> None:
        path = self._relative(event.src_path)
        if path is not None:
            self._stabilizer.track(path, ChangeKind.MODIFIED)

    def on_deleted(self, event: FileSystemEvent) -> None:
        path = self._relative(event.src_path)
        if path is not None:
            with self._stabilizer.ordering:
                self._stabilizer.discard(path)
                self._emit(ChangeEvent(path, ChangeKind.DELETED))

    def on_moved(self, event: FileSystemEvent) -> None:
        src = self._relative(event.src_path)
        if src is not None:
            with self._stabilizer.ordering:
                self._stabilizer.discard(src)
                self._emit(ChangeEvent(src, ChangeKind.DELETED))
        dest = self._relative(event.dest_path)
        if dest is not None:
            self._stabilizer.track(dest, ChangeKind.ADDED)


class FilesystemObserver:
    """Owns the watchdog observer thread and the write stabilizer.

    ``on_change`` and ``on_error`` are called from background threads; callers
    that need a single thread of control must hop back onto it themselves.
    """

    def __init__(self, config: WatchConfig, on_change: ChangeCallback, on_error: ErrorCallback):
        self.config = config
        self._stabilizer = WriteStabilizer(
            on_change,
            on_error,
            threshold=config.stability_threshold,
            poll_interval=config.poll_interval,
            root=os.path.abspath(config.root),
        )
        self._stabilizer.on_tick = self._check_emitters
        self._handler = ChangeHandler(config, on_change, on_error, self._stabilizer)
        self._on_error = on_error
        self._observer: Observer | None = None
        self._emitter_failed = False

    def _dead_emitters(self) -> list:
        observer = self._observer
        if observer is None:
            return []
        return [e for e in observer.emitters if not e.is_alive()]

    def _check_emitters(self) -> None:
        # An emitter thread exits for good when reading events fails (inotify
        # watch limit on a new directory, watched root removed).
        if self._emitter_failed:
            return
        dead = self._dead_emitters()
        if dead:
            self._emitter_failed = True
            paths = ", ".join(sorted(e.watch.path for e in dead))
            logger.error("Watcher stopped for %s", paths)
            self._on_error(ObserverError(f"Watcher stopped: no longer receiving changes for {paths}"))

    def start(self) -> None:
        root = os.path.abspath(self.config.root)
        if not os.path.isdir(root):
            raise ObserverError(f"Cannot watch {root}: not a directory")
        observer = Observer()
        try:
            observer.schedule(self._handler, root, recursive=True)
            observer.start()
        except OSError as e:
            raise ObserverError(f"Cannot watch {root}: {e}") from e
        self._observer = observer
        self._emitter_failed = False
        self._stabilizer.start()
        logger.info("Watching %s", root)

    def stop(self) -> None:
        """Stop both threads and wait for them to exit."""
        self._stabilizer.stop()
        if self._observer is not None:
            self._observer.stop()
            self._observer.join()
            self._observer = None
        logger.info("Stopped watching %s", self.config.root)

    @property
    def is_alive(self) -> bool:
        return (
            self._observer is not None
            and self._observer.is_alive()
            and not self._dead_emitters()
        )
