"""A session ties one controller, one schedule and one service together."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Optional

from ._config import Settings
from ._controller import RunController, Service
from ._result import RunResult
from ._schedule import Schedule, ScheduleConfig, ScheduleManager
from ._service import MeasurementService, logger
from ._state import RunState
from ._views import Projection, project


@dataclass(frozen=True)
class Snapshot:
    """Read-only view of a session at one point in time."""

    state: RunState
    sequence: int
    result: Optional[RunResult]
    views: Optional[Projection]


class TraceSession:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        service: Optional[Service] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        self.settings = settings or Settings.from_env()
        logger.setLevel(self.settings.log_level.upper())
        self.service = service or MeasurementService(self.settings)
        self.controller = RunController(
            self.service,
            keep_last_result=self.settings.keep_last_result,
        )
        self.scheduler = ScheduleManager(loop=loop)
        self.target = ""
        self._projected: Optional[tuple[RunResult, Projection]] = None

    @property
    def schedule(self) -> Schedule:
        return self.controller.schedule

    def set_schedule(self, schedule: "Schedule | str") -> None:
        """Switch the recurring schedule; any pending timer is dropped first."""
        schedule = Schedule(schedule)
        self.controller.schedule = schedule
        self.scheduler.configure(
            ScheduleConfig.from_schedule(schedule),
            target=lambda: self.target,
            on_tick=self._tick,
        )

    def _tick(self):
        return self.controller.start(self.target)

    def run(self, target: Optional[str] = None) -> Awaitable[RunState]:
        """Start a run now; the returned awaitable resolves to its outcome."""
        if target is not None:
            self.target = target
        return self.controller.start(self.target)

    def snapshot(self) -> Snapshot:
        result = self.controller.result
        views = None
        if result is not None:
            # results are immutable, so a projection can be reused until replaced
            if self._projected is None or self._projected[0] is not result:
                self._projected = (result, project(result))
            views = self._projected[1]
        return Snapshot(
            state=self.controller.state,
            sequence=self.controller.sequence,
            result=result,
            views=views,
        )

    async def aclose(self) -> None:
        self.scheduler.close()
        aclose = getattr(self.service, "aclose", None)
        if aclose is not None:
            await aclose()
        logger.debug("Session closed")

    async def __aenter__(self) -> "TraceSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
