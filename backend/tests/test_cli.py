"""
Tests for the Command Line Interface.

Requires Python 3.11+.
"""

from pathlib import Path

import pytest

from watcher import cli


class TestParseArgs:
    """Test cases for argument parsing."""

    def test_trailing_command_after_separator(self, tmp_path: Path):
        """Everything after -- becomes the run override."""
        args = cli.parse_args(["--root", str(tmp_path), "--", "pytest", "-x"])

        assert args.run == ["pytest", "-x"]
        assert args.root == tmp_path.resolve()

    def test_no_command(self, tmp_path: Path):
        """Without a trailing command, run is empty."""
        args = cli.parse_args(["--root", str(tmp_path), "-c", "watch.py"])

        assert args.run == []
        assert args.config == "watch.py"

    def test_log_format_choices(self):
        """Only known log formats are accepted."""
        with pytest.raises(SystemExit):
            cli.parse_args(["--log-format", "xml"])


class TestMain:
    """Test cases for the entry point."""

    def test_config_error_exits_non_zero(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        """A bad configuration ends the process with status 1."""
        monkeypatch.setattr(cli, "configure_logging", lambda **kwargs: None)

        assert cli.main(["--root", str(tmp_path), "-c", "missing.py"]) == 1
