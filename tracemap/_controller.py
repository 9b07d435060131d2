"""Run lifecycle controller."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Optional, Protocol

from ._exceptions import GENERIC_SERVICE_ERROR, TracemapError
from ._result import RunResult
from ._schedule import Schedule
from ._service import logger
from ._state import Failed, Idle, Running, RunState, Succeeded

Listener = Callable[[RunState], None]


class Service(Protocol):
    async def measure(self, target: str, schedule: str = ...) -> dict[str, Any]:
        ...


class RunController:
    """Drives runs against a measurement service.

    Every ``start`` gets a sequence number. A response is committed only if
    its sequence number is still the latest one issued, so a superseded
    request can never overwrite the state of a newer one.
    """

    def __init__(
        self,
        service: Service,
        *,
        schedule: "Schedule | str" = Schedule.NONE,
        keep_last_result: bool = True,
    ) -> None:
        self._service = service
        self._state: RunState = Idle()
        self._result: Optional[RunResult] = None
        self._sequence = 0
        self._listeners: list[Listener] = []
        self.schedule = Schedule(schedule)
        self.keep_last_result = keep_last_result

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def result(self) -> Optional[RunResult]:
        """Last committed result, kept across failures when configured."""
        return self._result

    @property
    def sequence(self) -> int:
        return self._sequence

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _commit(self, state: RunState) -> None:
        self._state = state
        if isinstance(state, Succeeded):
            self._result = state.result
        elif not self.keep_last_result:
            self._result = None
        for listener in list(self._listeners):
            listener(state)

    def start(self, target: str) -> Awaitable[RunState]:
        """Begin a run and return an awaitable for its outcome.

        The state is ``Running(target)`` as soon as this returns. Inside a
        running loop the request is already in flight as a task; otherwise it
        goes out when the returned coroutine is awaited. An empty target
        changes nothing and resolves to the current state.
        """
        target = (target or "").strip()
        if not target:
            logger.debug("Ignoring start with empty target")
            return self._settled()

        self._sequence += 1
        sequence = self._sequence
        self._commit(Running(target))
        logger.info("Run #%d started for %s", sequence, target)

        pending = self._complete(sequence, target)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return pending
        return loop.create_task(pending)

    async def _settled(self) -> RunState:
        return self._state

    async def _complete(self, sequence: int, target: str) -> RunState:
        outcome: RunState
        try:
            payload = await self._service.measure(target, self.schedule.value)
        except TracemapError as exc:
            outcome = Failed(target, exc.message)
        except asyncio.CancelledError:
            if sequence == self._sequence:
                self._commit(Failed(target, "Run cancelled"))
            raise
        except Exception:
            logger.exception("Unexpected error during run #%d", sequence)
            outcome = Failed(target, GENERIC_SERVICE_ERROR)
        else:
            outcome = Succeeded(RunResult.from_payload(target, payload))

        if sequence != self._sequence:
            logger.debug(
                "Discarding stale response #%d for %s (latest is #%d)",
                sequence,
                target,
                self._sequence,
            )
            return self._state

        if isinstance(outcome, Failed):
            logger.warning("Run #%d for %s failed: %s", sequence, target, outcome.message)
        else:
            logger.info(
                "Run #%d for %s finished with %d hops",
                sequence,
                target,
                outcome.result.hop_count,
            )
        self._commit(outcome)
        return outcome
