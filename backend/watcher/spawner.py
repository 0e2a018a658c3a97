"""
Monowatch Process Spawner.

Runs configured commands inside a package directory.
Requires Python 3.11+.
"""

import os
import subprocess
import sys
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import IO

from utils.logger import LoggerMixin
from workspace.errors import SpawnError

FORCE_COLOR_ENV = {"FORCE_COLOR": "true"}


class ProcessSpawner(LoggerMixin):
    """
    Synchronous command runner.

    The calling thread blocks until the child exits. stderr output is
    relayed to our own stderr as it arrives and treated as failure, as
    is a non-zero exit status or an OS error while starting the child.
    """

    def __init__(
        self,
        quiet: bool = False,
        env_overrides: Mapping[str, str] | None = None,
    ) -> None:
        """
        Initialize the spawner.

        Args:
            quiet: Discard all child standard streams
            env_overrides: Variables set on top of the inherited environment
        """
        self._quiet = quiet
        self._env_overrides = dict(env_overrides or {})

    def build_env(self) -> dict[str, str]:
        """Environment for a child: ours plus the overrides."""
        return {**os.environ, **self._env_overrides}

    def spawn(self, argv: Sequence[str], cwd: str | Path) -> subprocess.CompletedProcess[None]:
        """
        Run ``argv`` in ``cwd`` and wait for it.

        Args:
            argv: Executable followed by its arguments
            cwd: Working directory for the child

        Returns:
            The completed process

        Raises:
            SpawnError: If the command is empty, cannot be started,
                writes to stderr, or exits non-zero
        """
        command = list(argv)
        if not command:
            raise SpawnError("No command configured to run")

        if self._quiet:
            streams = {
                "stdin": subprocess.DEVNULL,
                "stdout": subprocess.DEVNULL,
                "stderr": subprocess.DEVNULL,
            }
        else:
            streams = {"stdin": None, "stdout": None, "stderr": subprocess.PIPE}

        self.log.debug("spawning_command", command=command, cwd=str(cwd))

        try:
            process = subprocess.Popen(
                command,
                cwd=cwd,
                env=self.build_env(),
                **streams,
            )
        except OSError as e:
            raise SpawnError(
                f"Failed to spawn {command[0]}: {e}",
                command=command,
            ) from e

        with process:
            stderr = self._relay_stderr(process.stderr) if process.stderr is not None else ""
            returncode = process.wait()

        if stderr:
            raise SpawnError(stderr.strip(), command=command, returncode=returncode, stderr=stderr)

        if returncode != 0:
            raise SpawnError(
                f"{command[0]} exited with status {returncode}",
                command=command,
                returncode=returncode,
            )

        return subprocess.CompletedProcess(command, returncode)

    @staticmethod
    def _relay_stderr(pipe: IO[bytes]) -> str:
        """Copy the child's stderr to ours line by line as it arrives, returning all of it."""
        chunks = []
        for line in pipe:
            text = line.decode("utf-8", errors="replace")
            sys.stderr.write(text)
            sys.stderr.flush()
            chunks.append(text)
        return "".join(chunks)
