"""
Monowatch Test Configuration.

Pytest fixtures and configuration.
Requires Python 3.11+.
"""

import os
from collections import defaultdict
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

import pytest

from utils.logger import ConsoleReporter
from watcher.spawner import ProcessSpawner
from workspace.models import Package


class FakeWatchSource:
    """In-memory stand-in for the watch primitive."""

    def __init__(self) -> None:
        self.handlers: dict[str, list[Callable[..., None]]] = defaultdict(list)
        self.watched: set[str] = set()

    def on(self, name: str, handler: Callable[..., None]) -> None:
        self.handlers[name].append(handler)

    def add(self, path: str) -> None:
        self.watched.add(path)

    def unwatch(self, path: str) -> None:
        self.watched.discard(path)

    def emit(self, name: str, *args: Any) -> None:
        for handler in self.handlers[name]:
            handler(*args)


class RecordingSpawner(ProcessSpawner):
    """Spawner that records commands instead of running them."""

    def __init__(self, error: Exception | None = None) -> None:
        super().__init__()
        self.calls: list[tuple[tuple[str, ...], str]] = []
        self._error = error

    def spawn(self, argv: Sequence[str], cwd: str | Path) -> Any:
        self.calls.append((tuple(argv), os.fspath(cwd)))
        if self._error is not None:
            raise self._error
        return None


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Create a two-package monorepo layout."""
    for name in ("pkg-a", "pkg-b"):
        src = tmp_path / "packages" / name / "src"
        src.mkdir(parents=True)
        (src.parent / "pyproject.toml").write_text(f'[project]\nname = "{name}"\n')
        (src / "index.py").write_text("VALUE = 1\n")
    return tmp_path


@pytest.fixture
def packages(workspace: Path) -> list[Package]:
    """Packages of the sample workspace."""
    return [
        Package(name="pkg-a", directory=workspace / "packages" / "pkg-a"),
        Package(name="pkg-b", directory=workspace / "packages" / "pkg-b"),
    ]


@pytest.fixture
def source() -> FakeWatchSource:
    """Fake watch source."""
    return FakeWatchSource()


@pytest.fixture
def reporter() -> ConsoleReporter:
    """Reporter that never clears the terminal."""
    return ConsoleReporter(clear_screen=False)


@pytest.fixture
def spawner() -> RecordingSpawner:
    """Spawner recording its calls."""
    return RecordingSpawner()
