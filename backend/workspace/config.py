"""
Monowatch Workspace Configuration.

Loads the user's workspace config module, merges CLI overrides and
validates the result before any watching starts.
Requires Python 3.11+.
"""

import importlib.util
import inspect
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from utils.logger import get_logger
from workspace.errors import ConfigError
from workspace.models import Action, EventKind, SpawnCommand, UserCallback

logger = get_logger("config")


class WatchOptions(BaseModel):
    """Options passed through to the watch primitive."""

    model_config = ConfigDict(extra="allow")

    ignore_patterns: list[str] | None = None
    recursive: bool | None = None


class WorkspaceConfig(BaseModel):
    """Validated, merged workspace configuration."""

    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True)

    include: list[str] = Field(default_factory=lambda: ["src"])
    packages: list[str] = Field(default_factory=lambda: ["packages/*"])
    run_scripts: list[str] = Field(default_factory=list)
    actions: dict[EventKind, Callable[..., Any]] = Field(default_factory=dict)
    no_child_process_logs: bool = False
    options: WatchOptions = Field(default_factory=WatchOptions)

    @field_validator("include", "packages", "run_scripts", mode="before")
    @classmethod
    def split_string(cls, v: str | list[str]) -> list[str]:
        """Accept a single string where a list is expected."""
        if isinstance(v, str):
            return [v]
        return v

    @field_validator("actions")
    @classmethod
    def require_async_actions(cls, v: dict[EventKind, Callable[..., Any]]) -> dict[EventKind, Callable[..., Any]]:
        """Every configured action must be a coroutine function."""
        for kind, action in v.items():
            if not inspect.iscoroutinefunction(action):
                raise ValueError(f"Action {kind.value} is not async")
        return v

    @model_validator(mode="after")
    def require_something_to_run(self) -> "WorkspaceConfig":
        """Reject configs that would never do anything."""
        if not self.run_scripts and not self.actions:
            raise ValueError("Please pass a command or a list of actions to the config file")
        return self

    def action_for(self, kind: EventKind) -> Action | None:
        """
        Resolve the action for an event kind.

        A configured callback wins; otherwise the run scripts are spawned.
        Returns None when neither exists, in which case the kind is ignored.
        """
        callback = self.actions.get(kind)
        if callback is not None:
            return UserCallback(callback)
        if self.run_scripts:
            return SpawnCommand(tuple(self.run_scripts))
        return None


def _load_module(path: Path) -> Any:
    """Execute a config file as a standalone module."""
    spec = importlib.util.spec_from_file_location("monowatch_user_config", path)
    if spec is None or spec.loader is None:
        raise ConfigError(f"Couldn't load the config file at {path}")

    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        raise ConfigError(f"Error while executing config file {path}: {e}") from e
    return module


def read_config_file(path: Path) -> dict[str, Any]:
    """
    Read the raw ``config`` object from a workspace config module.

    Args:
        path: Path to a Python file defining ``config``

    Returns:
        Raw configuration mapping
    """
    module = _load_module(path)
    raw = getattr(module, "config", None)
    if raw is None:
        raise ConfigError(f"Config file {path} does not define `config`")
    if isinstance(raw, WorkspaceConfig):
        return dict(raw)
    if not isinstance(raw, dict):
        raise ConfigError(f"`config` in {path} must be a dict or WorkspaceConfig")
    return dict(raw)


def load_workspace_config(
    root: Path,
    config_path: str | Path | None = None,
    run: Sequence[str] | None = None,
    default_name: str = "monowatch.config.py",
) -> WorkspaceConfig:
    """
    Load, merge and validate the workspace configuration.

    An explicit ``config_path`` must exist. When it is omitted, the
    default file under ``root`` is used if present, otherwise built-in
    defaults apply. A non-empty ``run`` replaces ``run_scripts``.

    Args:
        root: Workspace root
        config_path: Optional path to the config module, relative to root
        run: Command from the command line, overriding run_scripts
        default_name: Config file name looked up when no path is given

    Returns:
        Validated WorkspaceConfig
    """
    raw: dict[str, Any] = {}

    if config_path is not None:
        path = Path(config_path)
        if not path.is_absolute():
            path = root / path
        if not path.is_file():
            raise ConfigError(f"Couldn't find the config file at {path}")
        raw = read_config_file(path)
    else:
        path = root / default_name
        if path.is_file():
            raw = read_config_file(path)
        else:
            logger.debug("config_file_not_found", path=str(path))

    if run:
        raw["run_scripts"] = list(run)

    try:
        config = WorkspaceConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(str(e)) from e

    logger.debug(
        "config_loaded",
        include=config.include,
        run_scripts=config.run_scripts,
        actions=[k.value for k in config.actions],
    )
    return config
