"""
Tests for Package Resolver.

Requires Python 3.11+.
"""

from pathlib import Path

from workspace.models import Package, ResolvedPackage
from workspace.resolver import is_within, relative_to_root, resolve_package


class TestResolvePackage:
    """Test cases for resolve_package."""

    def test_path_inside_single_package(self, workspace: Path, packages: list[Package]):
        """A path under one package resolves to it."""
        path = workspace / "packages" / "pkg-b" / "src" / "index.py"

        resolved = resolve_package(path, packages)

        assert resolved.name == "pkg-b"
        assert resolved.directory == str(workspace / "packages" / "pkg-b")
        assert resolved

    def test_path_outside_all_packages(self, workspace: Path, packages: list[Package]):
        """A path under no package resolves to empty strings."""
        resolved = resolve_package(workspace / "README.md", packages)

        assert resolved == ResolvedPackage("", "")
        assert not resolved

    def test_package_directory_itself(self, workspace: Path, packages: list[Package]):
        """The package directory belongs to the package."""
        resolved = resolve_package(workspace / "packages" / "pkg-a", packages)
        assert resolved.name == "pkg-a"

    def test_sibling_prefix_is_not_contained(self, tmp_path: Path):
        """pkg must not own pkg-b just because the names share a prefix."""
        packages = [Package(name="pkg", directory=tmp_path / "pkg")]

        resolved = resolve_package(tmp_path / "pkg-b" / "file.py", packages)

        assert resolved.name == ""

    def test_nested_packages_last_match_wins(self, tmp_path: Path):
        """With overlapping directories, list order decides."""
        outer = Package(name="outer", directory=tmp_path / "apps")
        inner = Package(name="inner", directory=tmp_path / "apps" / "web")
        path = tmp_path / "apps" / "web" / "main.py"

        assert resolve_package(path, [outer, inner]).name == "inner"
        assert resolve_package(path, [inner, outer]).name == "outer"

    def test_string_path(self, workspace: Path, packages: list[Package]):
        """String paths are accepted and normalized."""
        path = str(workspace / "packages" / "pkg-a" / "src" / ".." / "src" / "index.py")
        assert resolve_package(path, packages).name == "pkg-a"


class TestPathHelpers:
    """Test cases for path helpers."""

    def test_is_within(self, tmp_path: Path):
        """is_within respects component boundaries."""
        assert is_within(tmp_path / "a" / "b", tmp_path / "a")
        assert is_within(tmp_path / "a", tmp_path / "a")
        assert not is_within(tmp_path / "ab", tmp_path / "a")

    def test_relative_to_root(self, tmp_path: Path):
        """Paths render relative to the root."""
        rel = relative_to_root(tmp_path, tmp_path / "packages" / "pkg-a" / "x.py")
        assert Path(rel) == Path("packages/pkg-a/x.py")
