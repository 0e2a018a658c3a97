"""
Monowatch Action Runner.

Executes the action configured for an event.
Requires Python 3.11+.
"""

import asyncio
from pathlib import Path

from utils.logger import ConsoleReporter, LoggerMixin
from watcher.spawner import ProcessSpawner
from workspace.models import Action, ActionEvent, SpawnCommand, UserCallback
from workspace.resolver import relative_to_root


class ActionRunner(LoggerMixin):
    """
    Runs a user callback or spawns a command for one event.

    Exactly one "performing" entry is reported before the action and
    one "completed" or "failed" entry after it. Failures are re-raised
    to the caller; nothing is retried.
    """

    def __init__(self, root: Path, spawner: ProcessSpawner, reporter: ConsoleReporter) -> None:
        """
        Initialize the runner.

        Args:
            root: Workspace root, used for relative paths and as fallback cwd
            spawner: Spawner for SpawnCommand actions
            reporter: Sink for progress messages
        """
        self._root = root
        self._spawner = spawner
        self._reporter = reporter

    async def run(self, event: ActionEvent, action: Action) -> None:
        """
        Run ``action`` for ``event``.

        Args:
            event: Event context handed to the action
            action: UserCallback or SpawnCommand
        """
        tag = event.kind.label
        relative_path = relative_to_root(self._root, event.file_path)

        self._reporter.performing(tag, relative_path)
        try:
            if isinstance(action, UserCallback):
                await action.callback(event)
            elif isinstance(action, SpawnCommand):
                cwd = event.package_path or str(self._root)
                # Only this continuation waits; other events keep flowing.
                await asyncio.to_thread(self._spawner.spawn, action.argv, cwd)
            else:
                raise TypeError(f"Unknown action type: {type(action).__name__}")
        except Exception as e:
            self._reporter.failed(tag, relative_path, error=str(e))
            raise

        self._reporter.completed(tag, relative_path)
