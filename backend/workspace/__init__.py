"""
Monowatch Workspace Package.

Packages, events, actions and configuration of a watched monorepo.
Requires Python 3.11+.
"""

from workspace.config import WorkspaceConfig, load_workspace_config
from workspace.errors import ConfigError, MonowatchError, SpawnError
from workspace.models import (
    Action,
    ActionEvent,
    EventKind,
    Package,
    ResolvedPackage,
    SpawnCommand,
    UserCallback,
)
from workspace.packages import discover_packages
from workspace.resolver import resolve_package

__all__ = [
    "Action",
    "ActionEvent",
    "ConfigError",
    "EventKind",
    "MonowatchError",
    "Package",
    "ResolvedPackage",
    "SpawnCommand",
    "SpawnError",
    "UserCallback",
    "WorkspaceConfig",
    "discover_packages",
    "load_workspace_config",
    "resolve_package",
]
