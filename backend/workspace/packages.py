"""
Monowatch Workspace Discovery.

Finds the packages of a monorepo from workspace glob patterns.
Requires Python 3.11+.
"""

import json
import tomllib
from collections.abc import Iterable
from pathlib import Path

from utils.logger import get_logger
from workspace.models import Package

logger = get_logger("workspace")

MANIFESTS = ("pyproject.toml", "package.json", "setup.py")


def _read_name(directory: Path) -> str | None:
    """Read the declared package name from the first manifest that has one."""
    pyproject = directory / "pyproject.toml"
    if pyproject.is_file():
        try:
            with pyproject.open("rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            logger.warning("invalid_manifest", path=str(pyproject), error=str(e))
        else:
            name = data.get("project", {}).get("name") or data.get("tool", {}).get("poetry", {}).get("name")
            if name:
                return str(name)

    package_json = directory / "package.json"
    if package_json.is_file():
        try:
            data = json.loads(package_json.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            logger.warning("invalid_manifest", path=str(package_json), error=str(e))
        else:
            if isinstance(data, dict) and data.get("name"):
                return str(data["name"])

    return None


def is_package_dir(directory: Path) -> bool:
    """Check whether a directory carries a package manifest."""
    return directory.is_dir() and any((directory / m).is_file() for m in MANIFESTS)


def discover_packages(root: Path, patterns: Iterable[str]) -> list[Package]:
    """
    Expand workspace globs into packages.

    A directory matched by any pattern is a package when it contains
    one of MANIFESTS. The name comes from the manifest, falling back to
    the directory name. Results are sorted by directory so that outer
    packages come before nested ones.

    Args:
        root: Workspace root
        patterns: Glob patterns relative to root (e.g. "packages/*")

    Returns:
        Ordered list of packages
    """
    root = root.resolve()
    found: dict[Path, Package] = {}

    for pattern in patterns:
        candidates = [root] if pattern in ("", ".") else root.glob(pattern)
        for candidate in candidates:
            directory = candidate.resolve()
            if directory in found or not is_package_dir(directory):
                continue
            name = _read_name(directory) or directory.name
            found[directory] = Package(name=name, directory=directory)

    packages = sorted(found.values(), key=lambda p: p.directory.parts)
    logger.info("packages_discovered", count=len(packages), names=[p.name for p in packages])
    return packages
