"""
Monowatch Errors.

Exception hierarchy shared by configuration loading and action execution.
Requires Python 3.11+.
"""

from collections.abc import Sequence


class MonowatchError(Exception):
    """Base class for all Monowatch errors."""


class ConfigError(MonowatchError):
    """Raised when the workspace configuration cannot be loaded or is invalid."""


class SpawnError(MonowatchError):
    """Raised when a spawned command fails to start, writes to stderr, or exits non-zero."""

    def __init__(
        self,
        message: str,
        command: Sequence[str] = (),
        returncode: int | None = None,
        stderr: str = "",
    ) -> None:
        super().__init__(message)
        self.command = list(command)
        self.returncode = returncode
        self.stderr = stderr
