"""
Study session countdown timer.

State machine with three modes (idle, running, paused). While running, a
tick schedule calls ``tick()`` once per second; each tick removes one second.
Reaching zero is the completion event: the schedule is released, the timer
goes back to idle and the completion alert fires exactly once.

The tick schedule is an owned handle. It is released on pause, stop,
completion and ``dispose()``; ``async with SessionTimer(...)`` guarantees the
release on every exit path of the view that owns the timer.

Usage:
    async with SessionTimer(folder.id, alert) as timer:
        timer.start(25)
        ...
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Protocol

from loguru import logger

from concurso.core.errors import ValidationError
from concurso.core.models import StudySession, TimerMode
from concurso.study.alerts import CompletionAlert

DEFAULT_MINUTES = 25
MAX_MINUTES = 180
WARNING_SECONDS = 300
CRITICAL_SECONDS = 60

COMPLETION_TITLE = "Study time is over!"
COMPLETION_MESSAGE = "Your study session has ended. How about a short break?"


# =============================================================================
# Tick scheduling
# =============================================================================


class TickHandle(Protocol):
    def cancel(self) -> None: ...


class TickScheduler(Protocol):
    """Calls ``callback`` every ``interval`` seconds until the handle is cancelled."""

    def schedule(self, interval: float, callback: Callable[[], None]) -> TickHandle: ...


class _LoopTickHandle:
    def __init__(self, loop: asyncio.AbstractEventLoop, interval: float, callback: Callable[[], None]):
        self._loop = loop
        self._interval = interval
        self._callback = callback
        self._cancelled = False
        self._timer = loop.call_later(interval, self._fire)

    def _fire(self) -> None:
        if self._cancelled:
            return
        # Re-arm first so that a callback cancelling the handle stops the next call
        self._timer = self._loop.call_later(self._interval, self._fire)
        self._callback()

    def cancel(self) -> None:
        self._cancelled = True
        self._timer.cancel()


class AsyncioTickScheduler:
    """Ticks on the running event loop (``loop.call_later``)."""

    def schedule(self, interval: float, callback: Callable[[], None]) -> TickHandle:
        return _LoopTickHandle(asyncio.get_running_loop(), interval, callback)


# =============================================================================
# Session timer
# =============================================================================


class SessionTimer:
    """Countdown for one folder's study session."""

    def __init__(
        self,
        folder_id: str,
        alert: CompletionAlert,
        scheduler: TickScheduler | None = None,
        default_minutes: int = DEFAULT_MINUTES,
        max_minutes: int = MAX_MINUTES,
        on_change: Callable[[StudySession], None] | None = None,
    ):
        self.folder_id = folder_id
        self.alert = alert
        self.scheduler = scheduler or AsyncioTickScheduler()
        self.default_minutes = default_minutes
        self.max_minutes = max_minutes
        self.on_change = on_change

        self.mode = TimerMode.IDLE
        self.duration_minutes = 0
        self.remaining_seconds = 0
        self.initial_seconds = 0
        self.started_at: datetime | None = None
        self.completions = 0
        self._handle: TickHandle | None = None

    async def __aenter__(self) -> SessionTimer:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.dispose()

    # =========================================================================
    # Transitions
    # =========================================================================

    def start(self, duration_minutes: int | None = None) -> None:
        """
        Start or resume the countdown.

        When nothing is left on the clock, the duration is loaded first: the
        argument if given, else the configured duration, else the default.
        A running timer ignores the call.

        Args:
            duration_minutes: Minutes to load when starting from zero

        Raises:
            ValidationError: If duration_minutes is outside 1..max_minutes
        """
        if self.mode is TimerMode.RUNNING:
            return
        if duration_minutes is not None:
            self._check_minutes(duration_minutes)

        if self.remaining_seconds == 0:
            minutes = duration_minutes or self.duration_minutes or self.default_minutes
            self.duration_minutes = minutes
            self.remaining_seconds = minutes * 60
            self.initial_seconds = self.remaining_seconds

        self.alert.request_permission()
        self.mode = TimerMode.RUNNING
        self.started_at = datetime.now(timezone.utc)
        self._release()
        self._handle = self.scheduler.schedule(1.0, self.tick)
        logger.debug(f"Timer started for folder {self.folder_id}: {self.format_time()} left")
        self._changed()

    def pause(self) -> None:
        if self.mode is not TimerMode.RUNNING:
            return
        self._release()
        self.mode = TimerMode.PAUSED
        self._changed()

    def stop(self) -> None:
        self._release()
        self.mode = TimerMode.IDLE
        self.remaining_seconds = 0
        self.initial_seconds = 0
        self.duration_minutes = 0
        self.started_at = None
        self._changed()

    def reset(self) -> None:
        """Reload the configured duration without changing the mode."""
        minutes = self.duration_minutes or self.default_minutes
        self.duration_minutes = minutes
        self.remaining_seconds = minutes * 60
        self.initial_seconds = self.remaining_seconds
        if self.mode is TimerMode.RUNNING:
            self.started_at = datetime.now(timezone.utc)
        self._changed()

    def set_duration(self, minutes: int) -> bool:
        """
        Configure the duration used by the next start from zero.

        Returns:
            False if the timer is not idle (nothing changes)

        Raises:
            ValidationError: If minutes is outside 1..max_minutes
        """
        self._check_minutes(minutes)
        if self.mode is not TimerMode.IDLE:
            return False
        self.duration_minutes = minutes
        self._changed()
        return True

    def tick(self) -> None:
        if self.mode is not TimerMode.RUNNING:
            return
        self.remaining_seconds = max(0, self.remaining_seconds - 1)
        if self.remaining_seconds == 0:
            self._complete()
        else:
            self._changed()

    def dispose(self) -> None:
        """Release the tick schedule; the timer keeps its values."""
        self._release()

    # =========================================================================
    # Derived views
    # =========================================================================

    @property
    def is_ticking(self) -> bool:
        return self._handle is not None

    def format_time(self) -> str:
        minutes, seconds = divmod(self.remaining_seconds, 60)
        return f"{minutes:02d}:{seconds:02d}"

    @property
    def progress_percent(self) -> float:
        if self.initial_seconds == 0:
            return 0.0
        return (self.initial_seconds - self.remaining_seconds) / self.initial_seconds * 100

    @property
    def urgency(self) -> str:
        """``critical`` in the last minute, ``warning`` in the last five, else ``normal``."""
        if self.mode is TimerMode.RUNNING:
            if self.remaining_seconds <= CRITICAL_SECONDS:
                return "critical"
            if self.remaining_seconds <= WARNING_SECONDS:
                return "warning"
        return "normal"

    def snapshot(self) -> StudySession:
        return StudySession(
            folder_id=self.folder_id,
            duration_minutes=self.duration_minutes,
            remaining_seconds=self.remaining_seconds,
            mode=self.mode,
            started_at=self.started_at,
        )

    # =========================================================================
    # Internals
    # =========================================================================

    def _complete(self) -> None:
        self._release()
        self.mode = TimerMode.IDLE
        self.started_at = None
        self.completions += 1
        logger.info(f"Study session finished for folder {self.folder_id}")
        self._changed()
        self.alert.fire(COMPLETION_TITLE, COMPLETION_MESSAGE)

    def _release(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _check_minutes(self, minutes: int) -> None:
        if not 1 <= minutes <= self.max_minutes:
            raise ValidationError(f"Duration must be between 1 and {self.max_minutes} minutes")

    def _changed(self) -> None:
        if self.on_change is not None:
            self.on_change(self.snapshot())
