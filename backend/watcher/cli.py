"""
Monowatch Command Line Interface.

Watches a monorepo and runs actions inside the affected package.
Requires Python 3.11+.

Usage:
    monowatch --config monowatch.config.py
    monowatch --root /path/to/repo -- pytest -x
"""

import argparse
import asyncio
import sys
from pathlib import Path

from utils.config import get_settings
from utils.logger import ConsoleReporter, configure_logging, logger
from watcher.dispatcher import EventDispatcher
from watcher.file_watcher import FileWatcher
from watcher.lock import ExecutionLock
from watcher.runner import ActionRunner
from watcher.spawner import FORCE_COLOR_ENV, ProcessSpawner
from workspace.config import load_workspace_config
from workspace.errors import MonowatchError
from workspace.packages import discover_packages


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="monowatch",
        description="Watch a monorepo and run actions in the package that changed",
    )
    parser.add_argument(
        "--root",
        type=Path,
        default=Path.cwd(),
        help="Workspace root (default: current directory)",
    )
    parser.add_argument(
        "-c",
        "--config",
        default=None,
        help="Path to the workspace config module, relative to the root",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level (overrides LOG_LEVEL)",
    )
    parser.add_argument(
        "--log-format",
        choices=["console", "json"],
        default=None,
        help="Log output format (overrides LOG_FORMAT)",
    )
    parser.add_argument(
        "run",
        nargs=argparse.REMAINDER,
        help="Command to run on changes, overriding run_scripts (after --)",
    )
    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments, stripping the ``--`` separator from the command."""
    args = build_parser().parse_args(argv)
    if args.run and args.run[0] == "--":
        args.run = args.run[1:]
    args.root = args.root.resolve()
    return args


async def watch(args: argparse.Namespace) -> None:
    """
    Run the watcher until an action fails.

    Args:
        args: Parsed command line arguments
    """
    settings = get_settings()
    root: Path = args.root

    config = load_workspace_config(
        root,
        config_path=args.config,
        run=args.run,
        default_name=settings.watcher.config_file,
    )
    packages = discover_packages(root, config.packages)

    ignore_patterns = list(settings.watcher.ignore_patterns)
    if config.options.ignore_patterns:
        ignore_patterns.extend(config.options.ignore_patterns)
    recursive = config.options.recursive
    if recursive is None:
        recursive = settings.watcher.recursive

    source = FileWatcher(
        root,
        include=config.include,
        loop=asyncio.get_running_loop(),
        ignore_patterns=ignore_patterns,
        recursive=recursive,
        observer_options=config.options.model_extra,
    )
    reporter = ConsoleReporter(clear_screen=settings.watcher.clear_screen)
    spawner = ProcessSpawner(
        quiet=config.no_child_process_logs,
        env_overrides=FORCE_COLOR_ENV if settings.watcher.force_color else None,
    )
    dispatcher = EventDispatcher(
        source,
        root=root,
        packages=packages,
        config=config,
        runner=ActionRunner(root, spawner, reporter),
        reporter=reporter,
        lock=ExecutionLock(),
        debounce_wait_ms=settings.watcher.debounce_wait_ms,
        debounce_max_wait_ms=settings.watcher.debounce_max_wait_ms,
        lock_scope=settings.watcher.lock_scope,
    )
    dispatcher.setup()

    source.start()
    reporter.message(f"Watching {', '.join(config.include)} in {root}")
    try:
        await dispatcher.wait_for_failure()
    finally:
        dispatcher.close()
        source.stop()


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    args = parse_args(argv)
    configure_logging(level=args.log_level, fmt=args.log_format)

    try:
        asyncio.run(watch(args))
    except KeyboardInterrupt:
        logger.info("interrupted")
        return 0
    except MonowatchError as e:
        logger.error("monowatch_failed", error=str(e))
        return 1
    except Exception as e:
        logger.error("action_failed", error=str(e), exc_info=e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
