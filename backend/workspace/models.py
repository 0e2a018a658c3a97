"""
Monowatch Workspace Data Models.

Defines packages, filesystem events and the actions they trigger.
Requires Python 3.11+.
"""

import os
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any


class EventKind(str, Enum):
    """Kinds of filesystem notifications that can trigger an action."""

    ADD = "add"
    ADD_DIR = "addDir"
    CHANGE = "change"
    UNLINK = "unlink"
    UNLINK_DIR = "unlinkDir"

    @property
    def label(self) -> str:
        """Human-readable tag used in log entries."""
        return _LABELS[self]


_LABELS: dict[EventKind, str] = {
    EventKind.ADD: "Add",
    EventKind.ADD_DIR: "Add Dir",
    EventKind.CHANGE: "Change",
    EventKind.UNLINK: "Remove",
    EventKind.UNLINK_DIR: "Remove Dir",
}


@dataclass(frozen=True, slots=True)
class Package:
    """A workspace sub-project."""

    name: str
    directory: Path


@dataclass(frozen=True, slots=True)
class ResolvedPackage:
    """Owning package of a path; empty strings when nothing owns it."""

    name: str = ""
    directory: str = ""

    def __bool__(self) -> bool:
        return bool(self.directory)


@dataclass(slots=True)
class ActionEvent:
    """Context handed to an action for a single notification."""

    kind: EventKind
    file_path: str
    current_pkg: str
    package_path: str
    stats: os.stat_result | None = None


ActionCallback = Callable[[ActionEvent], Awaitable[Any]]


@dataclass(frozen=True, slots=True)
class UserCallback:
    """Action variant: await a user-supplied coroutine function."""

    callback: ActionCallback


@dataclass(frozen=True, slots=True)
class SpawnCommand:
    """Action variant: spawn ``argv[0]`` with ``argv[1:]`` in the package directory."""

    argv: tuple[str, ...] = field(default_factory=tuple)


Action = UserCallback | SpawnCommand
