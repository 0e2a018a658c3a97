"""
Monowatch Debouncer.

Collapses bursts of change notifications into few action firings.
Requires Python 3.11+.
"""

import asyncio
from collections.abc import Callable
from enum import Enum
from typing import Any

from utils.logger import LoggerMixin


class DebounceState(str, Enum):
    """Debouncer states."""

    IDLE = "idle"
    PENDING = "pending"


class Debouncer(LoggerMixin):
    """
    Leading/trailing debouncer with a max-wait ceiling.

    The first event of a burst fires immediately (when ``leading``).
    Later events only replace the stored payload and restart the quiet
    timer. When the quiet window passes, the stored payload fires once
    (when ``trailing``) and the debouncer goes back to idle. If events
    keep arriving, the stored payload is forced out every ``max_wait_ms``
    so a busy stream cannot delay actions indefinitely.

    All timers run on the asyncio event loop; the debouncer must only be
    used from the loop thread.
    """

    def __init__(
        self,
        callback: Callable[..., Any],
        wait_ms: int = 2000,
        max_wait_ms: int | None = 3000,
        leading: bool = True,
        trailing: bool = True,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        """
        Initialize the debouncer.

        Args:
            callback: Function called with the latest event's arguments
            wait_ms: Quiet window in milliseconds
            max_wait_ms: Longest time a stored payload may wait, None for no ceiling
            leading: Fire on the first event of a burst
            trailing: Fire the latest stored payload when the burst ends
            loop: Event loop for timers, defaults to the running loop
        """
        self._callback = callback
        self._wait = wait_ms / 1000.0
        self._max_wait = max_wait_ms / 1000.0 if max_wait_ms is not None else None
        self._leading = leading
        self._trailing = trailing
        self._loop = loop

        self._state = DebounceState.IDLE
        self._pending_args: tuple[Any, ...] | None = None
        self._quiet_timer: asyncio.TimerHandle | None = None
        self._max_timer: asyncio.TimerHandle | None = None

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def trigger(self, *args: Any) -> None:
        """
        Record an event.

        Args:
            *args: Payload passed to the callback if this event fires
        """
        if self._state is DebounceState.IDLE:
            self._state = DebounceState.PENDING
            self._start_max_timer()
            if self._leading:
                self._pending_args = None
                self._fire(args)
            else:
                self._pending_args = args
        else:
            self._pending_args = args

        self._restart_quiet_timer()

    def _restart_quiet_timer(self) -> None:
        if self._quiet_timer is not None:
            self._quiet_timer.cancel()
        self._quiet_timer = self._get_loop().call_later(self._wait, self._on_quiet)

    def _start_max_timer(self) -> None:
        if self._max_wait is None:
            return
        self._max_timer = self._get_loop().call_later(self._max_wait, self._on_max_wait)

    def _cancel_timers(self) -> None:
        if self._quiet_timer is not None:
            self._quiet_timer.cancel()
            self._quiet_timer = None
        if self._max_timer is not None:
            self._max_timer.cancel()
            self._max_timer = None

    def _on_quiet(self) -> None:
        """Quiet window elapsed: end the burst."""
        self._quiet_timer = None
        if self._max_timer is not None:
            self._max_timer.cancel()
            self._max_timer = None

        self._state = DebounceState.IDLE
        args, self._pending_args = self._pending_args, None
        if args is not None and self._trailing:
            self._fire(args)

    def _on_max_wait(self) -> None:
        """Max wait elapsed mid-burst: force out the stored payload."""
        self._max_timer = None
        args, self._pending_args = self._pending_args, None
        self._start_max_timer()
        if args is not None:
            self._fire(args)

    def _fire(self, args: tuple[Any, ...]) -> None:
        self.log.debug("debounce_fired", args=args)
        self._callback(*args)

    def flush(self) -> bool:
        """
        Fire any stored payload now and return to idle.

        Returns:
            True if a payload was fired
        """
        self._cancel_timers()
        self._state = DebounceState.IDLE
        args, self._pending_args = self._pending_args, None
        if args is None:
            return False
        self._fire(args)
        return True

    def cancel(self) -> None:
        """Drop the stored payload and timers without firing."""
        self._cancel_timers()
        self._pending_args = None
        self._state = DebounceState.IDLE

    @property
    def state(self) -> DebounceState:
        """Current state of the burst state machine."""
        return self._state

    @property
    def pending(self) -> bool:
        """Whether a payload is waiting to fire."""
        return self._pending_args is not None
