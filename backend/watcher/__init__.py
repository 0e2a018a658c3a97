"""
Monowatch Watcher Package.

File system monitoring and action execution for workspace packages.
Requires Python 3.11+.
"""

from watcher.debouncer import Debouncer
from watcher.dispatcher import EventDispatcher
from watcher.file_watcher import FileWatcher
from watcher.lock import ExecutionLock
from watcher.runner import ActionRunner
from watcher.spawner import ProcessSpawner

__all__ = [
    "ActionRunner",
    "Debouncer",
    "EventDispatcher",
    "ExecutionLock",
    "FileWatcher",
    "ProcessSpawner",
]
