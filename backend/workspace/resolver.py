"""
Monowatch Package Resolver.

Maps a filesystem path to the workspace package that owns it.
Requires Python 3.11+.
"""

import os
from collections.abc import Iterable
from pathlib import Path

from workspace.models import Package, ResolvedPackage


def normalize_path(path: str | Path) -> str:
    """Return an absolute, normalized string form of ``path``."""
    return os.path.normpath(os.path.abspath(os.fspath(path)))


def is_within(path: str | Path, directory: str | Path) -> bool:
    """Check whether ``path`` is ``directory`` itself or lies below it."""
    path_str = normalize_path(path)
    dir_str = normalize_path(directory)
    if path_str == dir_str:
        return True
    return path_str.startswith(dir_str.rstrip(os.sep) + os.sep)


def resolve_package(path: str | Path, packages: Iterable[Package]) -> ResolvedPackage:
    """
    Find the package whose directory contains ``path``.

    Every package is checked and the last match wins, so for nested
    package directories the list order decides. Discovery sorts
    packages outermost-first, which makes the innermost package win.

    Args:
        path: File or directory path reported by the watcher
        packages: Known workspace packages

    Returns:
        The owning package, or an empty ResolvedPackage if none matches
    """
    resolved = ResolvedPackage()
    for package in packages:
        if is_within(path, package.directory):
            resolved = ResolvedPackage(
                name=package.name,
                directory=normalize_path(package.directory),
            )
    return resolved


def relative_to_root(root: str | Path, path: str | Path) -> str:
    """Render ``path`` relative to the workspace root for log output."""
    return os.path.relpath(normalize_path(path), normalize_path(root))
