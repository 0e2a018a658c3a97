"""
Monowatch Structured Logging Module.

Provides consistent, structured logging throughout the application,
plus the console reporter used for action progress messages.
Requires Python 3.11+.
"""

import functools
import logging
import sys
from collections.abc import Callable
from typing import Any, Literal

import structlog
from structlog.types import Processor

from utils.config import get_settings

TagKind = Literal["log", "info", "success", "warn", "error"]

# Reporter kind -> structlog method
_KIND_LEVELS: dict[str, str] = {
    "log": "info",
    "info": "info",
    "success": "info",
    "warn": "warning",
    "error": "error",
}

CLEAR_SCREEN = "\x1bc"


def _add_app_context(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Add application context to all log entries."""
    settings = get_settings()
    event_dict["app"] = settings.app_name
    event_dict["version"] = settings.app_version
    return event_dict


def configure_logging(level: str | None = None, fmt: str | None = None) -> None:
    """
    Configure structured logging for the application.

    Call this once at application startup. Explicit arguments take
    precedence over the LOG_* settings.
    """
    settings = get_settings()
    level_name = (level or settings.logging.level).upper()
    output_format = fmt or settings.logging.format

    # Common processors for all output formats
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
        _add_app_context,
    ]

    if output_format == "json":
        processors: list[Processor] = [
            *shared_processors,
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(
                colors=settings.logging.file_path is None,
                exception_formatter=structlog.dev.plain_traceback,
            ),
        ]

    if settings.logging.file_path is not None:
        logger_factory: Any = structlog.WriteLoggerFactory(
            file=settings.logging.file_path.open("a", encoding="utf-8")
        )
    else:
        logger_factory = structlog.PrintLoggerFactory()

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level_name)),
        context_class=dict,
        logger_factory=logger_factory,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level_name),
    )

    # Suppress noisy loggers
    logging.getLogger("watchdog").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (typically __name__ of the calling module)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)


# Pre-configured logger for quick imports
logger = get_logger("monowatch")


class LoggerMixin:
    """
    Mixin class to add logging capability to any class.

    Usage:
        class MyClass(LoggerMixin):
            def my_method(self):
                self.log.info("doing something", key="value")
    """

    @property
    def log(self) -> structlog.stdlib.BoundLogger:
        """Get logger bound to this class name."""
        if not hasattr(self, "_logger"):
            self._logger = get_logger(self.__class__.__name__)
        return self._logger


def clears_screen(method: Callable[..., None]) -> Callable[..., None]:
    """Wrap a reporter method so ``clear=True`` wipes the terminal first."""

    @functools.wraps(method)
    def wrapper(self: "ConsoleReporter", *args: Any, clear: bool = False, **kwargs: Any) -> None:
        if clear and self.clear_screen:
            self.stream.write(CLEAR_SCREEN)
            self.stream.flush()
        method(self, *args, **kwargs)

    return wrapper


class ConsoleReporter(LoggerMixin):
    """
    Sink for the human-facing progress messages around each action.

    Plain messages go out at info level. Tagged messages carry a short
    tag (e.g. the event label) and a detail string, with ``kind`` kept
    on the entry so renderers can style success/warn/error differently.
    """

    def __init__(self, clear_screen: bool = False, stream: Any = None) -> None:
        self.clear_screen = clear_screen
        self.stream = stream or sys.stdout

    @clears_screen
    def message(self, text: str) -> None:
        """Emit a plain message."""
        self.log.info(text, kind="log")

    @clears_screen
    def tagged(self, kind: TagKind, event: str, tag: str, detail: str = "", **extra: Any) -> None:
        """Emit a structured message tagged with ``tag`` and styled by ``kind``."""
        method = getattr(self.log, _KIND_LEVELS[kind])
        method(event, kind=kind, tag=tag, detail=detail, **extra)

    def performing(self, tag: str, path: str) -> None:
        """Announce an action that is about to run."""
        self.tagged("info", "action_performing", tag, path)

    def completed(self, tag: str, path: str) -> None:
        """Report an action that finished successfully."""
        self.tagged("success", "action_completed", tag, path)

    def failed(self, tag: str, path: str, error: str) -> None:
        """Report an action that raised."""
        self.tagged("error", "action_failed", tag, path, error=error)
