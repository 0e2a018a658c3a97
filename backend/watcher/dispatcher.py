"""
Monowatch Event Dispatcher.

Routes watcher notifications to package resolution, debouncing,
locking and action execution.
Requires Python 3.11+.
"""

import asyncio
import os
import traceback
from collections.abc import Callable, Coroutine, Sequence
from pathlib import Path
from typing import Any, Literal, Protocol

from utils.logger import ConsoleReporter, LoggerMixin
from watcher.debouncer import Debouncer
from watcher.lock import ExecutionLock
from watcher.runner import ActionRunner
from workspace.config import WorkspaceConfig
from workspace.models import Action, ActionEvent, EventKind, Package
from workspace.resolver import relative_to_root, resolve_package


class WatchSource(Protocol):
    """The subset of a watch primitive the dispatcher relies on."""

    def on(self, name: str, handler: Callable[..., None]) -> None: ...

    def add(self, path: str) -> None: ...

    def unwatch(self, path: str) -> None: ...


def _safe_stat(path: str) -> os.stat_result | None:
    try:
        return os.stat(path)
    except OSError:
        return None


class EventDispatcher(LoggerMixin):
    """
    Binds one handler per notification kind on a watch source.

    add/addDir/unlink/unlinkDir run their action straight away as
    independent tasks. change goes through the debouncer, and each
    firing runs under the execution lock so change actions never
    overlap. Watcher errors are reported and otherwise ignored; action
    failures are recorded and surfaced by wait_for_failure().
    """

    def __init__(
        self,
        source: WatchSource,
        root: Path,
        packages: Sequence[Package],
        config: WorkspaceConfig,
        runner: ActionRunner,
        reporter: ConsoleReporter,
        lock: ExecutionLock | None = None,
        debounce_wait_ms: int = 2000,
        debounce_max_wait_ms: int | None = 3000,
        lock_scope: Literal["global", "package"] = "global",
    ) -> None:
        self._source = source
        self._root = root
        self._packages = list(packages)
        self._config = config
        self._runner = runner
        self._reporter = reporter
        self._lock = lock or ExecutionLock()
        self._lock_scope = lock_scope
        self._debouncer = Debouncer(
            self._fire_change,
            wait_ms=debounce_wait_ms,
            max_wait_ms=debounce_max_wait_ms,
            leading=True,
        )
        self._tasks: set[asyncio.Task[None]] = set()
        self._failure: asyncio.Future[BaseException] | None = None

    def setup(self) -> None:
        """Register handlers for every notification kind."""
        self._source.on("error", self._on_error)
        self._source.on(EventKind.ADD.value, self._on_add)
        self._source.on(EventKind.ADD_DIR.value, self._on_add_dir)
        self._source.on(EventKind.CHANGE.value, self._on_change)
        self._source.on(EventKind.UNLINK.value, self._on_unlink)
        self._source.on(EventKind.UNLINK_DIR.value, self._on_unlink_dir)

    # Handlers

    def _on_error(self, error: BaseException) -> None:
        stack = "".join(traceback.format_exception(type(error), error, error.__traceback__))
        self._reporter.tagged("error", "watcher_error", "Error", str(error), stack=stack)

    def _on_add(self, path: str, stats: os.stat_result | None = None) -> None:
        self._source.add(path)
        self._dispatch(EventKind.ADD, path, stats)

    def _on_add_dir(self, path: str, stats: os.stat_result | None = None) -> None:
        self._source.add(path)
        self._dispatch(EventKind.ADD_DIR, path, stats)

    def _on_unlink(self, path: str) -> None:
        self._source.unwatch(path)
        self._dispatch(EventKind.UNLINK, path, None)

    def _on_unlink_dir(self, path: str) -> None:
        self._source.unwatch(path)
        self._dispatch(EventKind.UNLINK_DIR, path, None)

    def _on_change(self, path: str, stats: os.stat_result | None = None) -> None:
        self._debouncer.trigger(path, stats)

    # Execution

    def build_event(self, kind: EventKind, path: str, stats: os.stat_result | None = None) -> ActionEvent:
        """Resolve the owning package and build the action context."""
        package = resolve_package(path, self._packages)
        return ActionEvent(
            kind=kind,
            file_path=path,
            current_pkg=package.name,
            package_path=package.directory,
            stats=stats,
        )

    def _dispatch(self, kind: EventKind, path: str, stats: os.stat_result | None) -> None:
        action = self._config.action_for(kind)
        if action is None:
            self.log.debug("no_action_configured", kind=kind.value, path=path)
            return
        event = self.build_event(kind, path, stats)
        self._spawn_task(self._runner.run(event, action))

    def _fire_change(self, path: str, stats: os.stat_result | None) -> None:
        action = self._config.action_for(EventKind.CHANGE)
        if action is None:
            self.log.debug("no_action_configured", kind=EventKind.CHANGE.value, path=path)
            return

        event = self.build_event(EventKind.CHANGE, path, stats or _safe_stat(path))
        self._reporter.tagged(
            "info",
            "file_changed",
            "File Changed",
            relative_to_root(self._root, path),
            clear=True,
        )
        self._spawn_task(self._run_locked(event, action))

    def lock_key(self, event: ActionEvent) -> str:
        """Lock key serializing ``event``'s action."""
        if self._lock_scope == "package" and event.package_path:
            return event.package_path
        return ExecutionLock.GLOBAL_KEY

    async def _run_locked(self, event: ActionEvent, action: Action) -> None:
        async with self._lock.hold(self.lock_key(event)):
            await self._runner.run(event, action)

    def _spawn_task(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _failure_future(self) -> asyncio.Future[BaseException]:
        if self._failure is None:
            self._failure = asyncio.get_running_loop().create_future()
        return self._failure

    def _task_done(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is None:
            return
        self.log.debug("action_task_failed", error=str(error))
        failure = self._failure_future()
        if not failure.done():
            failure.set_result(error)

    # Lifecycle

    async def wait_for_failure(self) -> None:
        """Block until an action fails, then raise its exception."""
        error = await self._failure_future()
        raise error

    @property
    def failure(self) -> BaseException | None:
        """First action failure, if any."""
        if self._failure is None or not self._failure.done():
            return None
        return self._failure.result()

    async def join(self) -> None:
        """Wait for every in-flight action task, including ones they start."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def close(self) -> None:
        """Drop pending debounced changes."""
        self._debouncer.cancel()

    @property
    def in_flight(self) -> int:
        """Number of running action tasks."""
        return len(self._tasks)
