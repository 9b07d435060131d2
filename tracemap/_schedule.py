"""Recurring re-trigger of runs."""

from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from ._service import logger

_MINUTE_MS = 60_000
_HOUR_MS = 60 * _MINUTE_MS


class Schedule(str, Enum):
    NONE = "none"
    EVERY_1M = "1m"
    EVERY_15M = "15m"
    EVERY_30M = "30m"
    EVERY_1H = "1h"
    EVERY_6H = "6h"
    EVERY_12H = "12h"
    EVERY_24H = "24h"

    @property
    def interval_ms(self) -> Optional[int]:
        return _INTERVALS[self]

    @property
    def label(self) -> str:
        return _LABELS[self]


_INTERVALS = {
    Schedule.NONE: None,
    Schedule.EVERY_1M: _MINUTE_MS,
    Schedule.EVERY_15M: 15 * _MINUTE_MS,
    Schedule.EVERY_30M: 30 * _MINUTE_MS,
    Schedule.EVERY_1H: _HOUR_MS,
    Schedule.EVERY_6H: 6 * _HOUR_MS,
    Schedule.EVERY_12H: 12 * _HOUR_MS,
    Schedule.EVERY_24H: 24 * _HOUR_MS,
}

_LABELS = {
    Schedule.NONE: "On-demand only",
    Schedule.EVERY_1M: "Every 1 minute",
    Schedule.EVERY_15M: "Every 15 minutes",
    Schedule.EVERY_30M: "Every 30 minutes",
    Schedule.EVERY_1H: "Every 1 hour",
    Schedule.EVERY_6H: "Every 6 hours",
    Schedule.EVERY_12H: "Every 12 hours",
    Schedule.EVERY_24H: "Every 24 hours",
}


@dataclass(frozen=True)
class ScheduleConfig:
    interval_ms: Optional[int] = None

    def __post_init__(self) -> None:
        if self.interval_ms is None:
            return
        if isinstance(self.interval_ms, bool) or not isinstance(self.interval_ms, int):
            raise TypeError("interval_ms must be an int or None")
        if self.interval_ms <= 0:
            raise ValueError("interval_ms must be positive")

    @property
    def on_demand(self) -> bool:
        return self.interval_ms is None

    @classmethod
    def from_schedule(cls, schedule: "Schedule | str") -> "ScheduleConfig":
        return cls(Schedule(schedule).interval_ms)


class ScheduleManager:
    """Owns one repeating timer on an asyncio loop.

    ``configure`` always releases the pending timer before arming a new one,
    so a manager never has more than one timer outstanding. ``close`` must be
    called when the owning session goes away.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop
        self._handle: Optional[asyncio.TimerHandle] = None
        self._config = ScheduleConfig()
        self._target: Callable[[], str] = lambda: ""
        self._on_tick: Optional[Callable[[], Any]] = None
        self._tasks: set[asyncio.Future] = set()
        self._closed = False
        self.ticks = 0

    @property
    def config(self) -> ScheduleConfig:
        return self._config

    @property
    def active(self) -> bool:
        return self._handle is not None

    @property
    def closed(self) -> bool:
        return self._closed

    def configure(
        self,
        schedule: ScheduleConfig,
        target: Callable[[], str],
        on_tick: Callable[[], Any],
    ) -> None:
        if self._closed:
            raise RuntimeError("ScheduleManager is closed")
        self.cancel()
        self._config = schedule
        self._target = target
        self._on_tick = on_tick
        if schedule.on_demand:
            logger.info("Schedule set to on-demand only")
            return
        logger.info("Schedule armed every %d ms", schedule.interval_ms)
        self._arm()

    def _arm(self) -> None:
        interval_ms = self._config.interval_ms
        if interval_ms is None:
            return
        loop = self._loop or asyncio.get_running_loop()
        self._loop = loop
        self._handle = loop.call_later(interval_ms / 1000, self._fire)

    def _fire(self) -> None:
        self._handle = None
        if self._closed:
            return
        # next tick is armed from the current config before running this one
        self._arm()

        target = self._target()
        if not target or not target.strip():
            logger.debug("Scheduled tick skipped: no target")
            return
        if self._on_tick is None:
            return

        self.ticks += 1
        logger.info("Scheduled tick %d for %s", self.ticks, target)
        outcome = self._on_tick()
        if isinstance(outcome, asyncio.Future):
            # the callback already put its work in flight
            task = outcome
        elif inspect.isawaitable(outcome):
            task = asyncio.ensure_future(outcome, loop=self._loop)
        else:
            return
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Future) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("Scheduled run raised: %s", error)

    def cancel(self) -> None:
        """Release the pending timer, if any."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def close(self) -> None:
        """Cancel the timer and any tick still running. Idempotent."""
        self.cancel()
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()
        self._on_tick = None
        self._closed = True

    def __enter__(self) -> "ScheduleManager":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
