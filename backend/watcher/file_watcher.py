"""
Monowatch File Watcher.

Cross-platform file system monitoring using watchdog, delivering
add/addDir/change/unlink/unlinkDir/error notifications onto the
asyncio event loop.
Requires Python 3.11+.
"""

import asyncio
import fnmatch
import os
import re
import time
from collections import defaultdict
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path, PurePosixPath
from typing import Any

from watchdog.events import (
    DirCreatedEvent,
    DirDeletedEvent,
    DirModifiedEvent,
    DirMovedEvent,
    FileClosedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from utils.logger import LoggerMixin
from workspace.models import EventKind
from workspace.resolver import normalize_path

_STAT_KINDS = (EventKind.ADD, EventKind.ADD_DIR, EventKind.CHANGE)

# Vim swap files, backup files ending in "~" and Sublime Text temp files
ATOMIC_TEMP_RE = re.compile(r"^\..*\.sw[px]$|~$|^\.subl.*\.tmp$")

# An unlink followed by an add of the same path within this window is a change
ATOMIC_DELAY_SECONDS = 0.1

# Modifications of a new file are part of its creation until it is closed,
# or until this long after creation where close events are unavailable
WRITE_GRACE_SECONDS = 0.5


def is_atomic_temp(path: str) -> bool:
    """Check if ``path`` names an editor's temporary file used for atomic saves."""
    return ATOMIC_TEMP_RE.search(os.path.basename(path)) is not None


class WorkspaceEventHandler(FileSystemEventHandler, LoggerMixin):
    """
    Translates watchdog events into watcher notifications.

    Runs on the observer thread; everything is handed to
    FileWatcher.publish, which moves it onto the event loop.

    A new file produces a single add: the writes that fill it are not
    reported as changes. A temporary file renamed over its target is
    reported as a change of the target.
    """

    def __init__(self, watcher: "FileWatcher", write_grace: float = WRITE_GRACE_SECONDS) -> None:
        super().__init__()
        self._watcher = watcher
        self._write_grace = write_grace
        self._created: dict[str, float] = {}

    def on_created(self, event: FileCreatedEvent | DirCreatedEvent) -> None:
        """Handle file/directory creation."""
        if event.is_directory:
            self._watcher.publish(EventKind.ADD_DIR, event.src_path)
            return
        path = os.fsdecode(event.src_path)
        self._prune_created()
        self._created[path] = time.monotonic()
        self._watcher.publish(EventKind.ADD, path)

    def on_modified(self, event: FileModifiedEvent | DirModifiedEvent) -> None:
        """Handle file modification."""
        if event.is_directory:
            return
        path = os.fsdecode(event.src_path)
        if self._still_writing(path):
            return
        self._watcher.publish(EventKind.CHANGE, path)

    def on_closed(self, event: FileClosedEvent) -> None:
        """A closed file is fully created; later writes are changes."""
        self._created.pop(os.fsdecode(event.src_path), None)

    def on_deleted(self, event: FileDeletedEvent | DirDeletedEvent) -> None:
        """Handle file/directory deletion."""
        if event.is_directory:
            self._watcher.publish(EventKind.UNLINK_DIR, event.src_path)
            return
        path = os.fsdecode(event.src_path)
        self._created.pop(path, None)
        self._watcher.publish(EventKind.UNLINK, path)

    def on_moved(self, event: FileMovedEvent | DirMovedEvent) -> None:
        """Handle move/rename as removal of the source and creation of the destination."""
        if event.is_directory:
            self._watcher.publish(EventKind.UNLINK_DIR, event.src_path)
            self._watcher.publish(EventKind.ADD_DIR, event.dest_path)
            return

        src = os.fsdecode(event.src_path)
        dest = os.fsdecode(event.dest_path)
        self._created.pop(src, None)
        if self._watcher.atomic and is_atomic_temp(src):
            self._watcher.publish(EventKind.CHANGE, dest)
            return

        self._watcher.publish(EventKind.UNLINK, src)
        if self._watcher.atomic and self._watcher.is_tracked(dest):
            self._watcher.publish(EventKind.CHANGE, dest)
        else:
            self._watcher.publish(EventKind.ADD, dest)

    def _still_writing(self, path: str) -> bool:
        created_at = self._created.get(path)
        if created_at is None:
            return False
        if time.monotonic() - created_at < self._write_grace:
            return True
        del self._created[path]
        return False

    def _prune_created(self) -> None:
        cutoff = time.monotonic() - self._write_grace
        for path in [p for p, created_at in self._created.items() if created_at < cutoff]:
            del self._created[path]


class FileWatcher(LoggerMixin):
    """
    Watches a workspace for changes under the include patterns.

    Handlers registered with on() are always invoked on the event loop
    thread. Paths passed to add() are reported even when no include
    pattern matches them; unwatch() removes them again. Files that
    already exist when watching starts are never reported as added.

    With ``atomic`` on, editors' temporary files are never reported,
    and an unlink followed quickly by an add of the same path is
    delivered as a single change.
    """

    def __init__(
        self,
        root: Path,
        include: Iterable[str],
        loop: asyncio.AbstractEventLoop | None = None,
        ignore_patterns: Iterable[str] | None = None,
        recursive: bool = True,
        observer_options: Mapping[str, Any] | None = None,
        atomic: bool = True,
    ) -> None:
        """
        Initialize the file watcher.

        Args:
            root: Workspace root to observe
            include: Glob patterns, relative to root, whose paths are reported
            loop: Event loop receiving notifications, defaults to the running loop
            ignore_patterns: Glob patterns never reported
            recursive: Whether to watch subdirectories
            observer_options: Extra keyword arguments for the watchdog Observer
            atomic: Fold atomic saves into change notifications
        """
        self._root = Path(normalize_path(root))
        self._include = [p.strip("/") for p in include]
        self._ignore_patterns = list(ignore_patterns or [])
        self._recursive = recursive
        self._observer_options = dict(observer_options or {})
        self._loop = loop
        self.atomic = atomic

        self._handlers: dict[str, list[Callable[..., None]]] = defaultdict(list)
        self._watched: set[str] = set()
        self._pending_unlinks: dict[str, asyncio.TimerHandle] = {}
        self._handler = WorkspaceEventHandler(self)
        self._observer: Any = None
        self._running = False

    # Subscription and watch set

    def on(self, name: str, handler: Callable[..., None]) -> None:
        """Register ``handler`` for notifications called ``name``."""
        self._handlers[name].append(handler)

    def add(self, path: str | Path) -> None:
        """Add a path to the watch set. Adding twice is a no-op."""
        self._watched.add(normalize_path(path))

    def unwatch(self, path: str | Path) -> None:
        """Remove a path from the watch set. Removing an unknown path is a no-op."""
        self._watched.discard(normalize_path(path))

    @property
    def watched(self) -> frozenset[str]:
        """Paths added explicitly through add()."""
        return frozenset(self._watched)

    # Filtering

    def _relative_parts(self, path: str) -> tuple[str, ...] | None:
        rel = os.path.relpath(normalize_path(path), self._root)
        if rel == os.curdir:
            return ()
        parts = PurePosixPath(Path(rel).as_posix()).parts
        if parts and parts[0] == os.pardir:
            return None
        return parts

    def is_ignored(self, path: str) -> bool:
        """Check if a path matches an ignore pattern."""
        if self.atomic and is_atomic_temp(path):
            return True
        parts = self._relative_parts(path)
        if parts is None:
            parts = Path(path).parts
        rel = "/".join(parts)
        for pattern in self._ignore_patterns:
            if fnmatch.fnmatch(rel, pattern):
                return True
            if any(fnmatch.fnmatch(part, pattern) for part in parts):
                return True
        return False

    def is_included(self, path: str) -> bool:
        """Check if the path or one of its ancestors matches an include pattern."""
        parts = self._relative_parts(path)
        if parts is None:
            return False
        for pattern in self._include:
            if pattern in ("", ".", "**"):
                return True
            for i in range(1, len(parts) + 1):
                if fnmatch.fnmatch("/".join(parts[:i]), pattern):
                    return True
        return False

    def is_tracked(self, path: str) -> bool:
        """Check if the path itself was added explicitly."""
        return normalize_path(path) in self._watched

    def is_watched(self, path: str) -> bool:
        """Check if the path or one of its ancestors was added explicitly."""
        if not self._watched:
            return False
        current = normalize_path(path)
        while True:
            if current in self._watched:
                return True
            parent = os.path.dirname(current)
            if parent == current:
                return False
            current = parent

    def should_report(self, path: str) -> bool:
        """Decide whether a raw event path is delivered to handlers."""
        if self.is_ignored(path):
            return False
        return self.is_included(path) or self.is_watched(path)

    # Delivery

    def publish(self, kind: EventKind, raw_path: str | bytes) -> None:
        """
        Deliver a notification to the event loop.

        Safe to call from any thread.
        """
        try:
            path = os.fsdecode(raw_path)
            if not self.should_report(path):
                return
            if kind in _STAT_KINDS:
                try:
                    stats: os.stat_result | None = os.stat(path)
                except FileNotFoundError:
                    stats = None
                args: tuple[Any, ...] = (path, stats)
            else:
                args = (path,)
        except Exception as e:
            self._call_soon(self.emit, "error", e)
            return

        self.log.debug("file_event", kind=kind.value, path=path)
        self._call_soon(self._deliver, kind, args)

    def _call_soon(self, callback: Callable[..., None], *args: Any) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            self.log.debug("event_dropped_no_loop", args=args)
            return
        loop.call_soon_threadsafe(callback, *args)

    def _deliver(self, kind: EventKind, args: tuple[Any, ...]) -> None:
        path = args[0]
        if self.atomic and kind is EventKind.UNLINK:
            pending = self._pending_unlinks.pop(path, None)
            if pending is not None:
                pending.cancel()
            self._pending_unlinks[path] = asyncio.get_running_loop().call_later(
                ATOMIC_DELAY_SECONDS, self._flush_unlink, path
            )
            return

        if kind is EventKind.ADD:
            pending = self._pending_unlinks.pop(path, None)
            if pending is not None:
                pending.cancel()
                kind = EventKind.CHANGE

        self.emit(kind.value, *args)

    def _flush_unlink(self, path: str) -> None:
        if self._pending_unlinks.pop(path, None) is not None:
            self.emit(EventKind.UNLINK.value, path)

    def emit(self, name: str, *args: Any) -> None:
        """Invoke the handlers for ``name``. Must run on the event loop."""
        for handler in list(self._handlers.get(name, ())):
            try:
                handler(*args)
            except Exception as e:
                if name == "error":
                    raise
                self.emit("error", e)

    # Lifecycle

    def start(self) -> None:
        """Start watching for file changes."""
        if self._running:
            return

        if self._loop is None:
            self._loop = asyncio.get_running_loop()

        self._observer = Observer(**self._observer_options)
        self._observer.schedule(
            self._handler,
            str(self._root),
            recursive=self._recursive,
        )
        self._observer.start()
        self._running = True

        self.log.info(
            "file_watcher_started",
            path=str(self._root),
            include=self._include,
            recursive=self._recursive,
            ignore_patterns=self._ignore_patterns,
        )

    def stop(self) -> None:
        """Stop watching for file changes."""
        if not self._running:
            return

        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5.0)
            self._observer = None

        for pending in self._pending_unlinks.values():
            pending.cancel()
        self._pending_unlinks.clear()

        self._running = False
        self.log.info("file_watcher_stopped")

    @property
    def is_running(self) -> bool:
        """Check if the watcher is running."""
        return self._running

    def __enter__(self) -> "FileWatcher":
        """Context manager entry."""
        self.start()
        return self

    def __exit__(self, *args: Any) -> None:
        """Context manager exit."""
        self.stop()
