# tests/test_controller.py
import asyncio

from fakes import SAMPLE_PAYLOAD, FakeService
from tracemap import (
    Failed,
    Idle,
    RunController,
    Running,
    ServiceError,
    Succeeded,
    TransportFailure,
)


def test_controller_starts_idle():
    ctrl = RunController(FakeService())
    assert isinstance(ctrl.state, Idle)
    assert ctrl.result is None
    assert ctrl.sequence == 0


def test_successful_run():
    """start() goes Running -> Succeeded with a normalized result."""
    fake = FakeService(script={"8.8.8.8": [SAMPLE_PAYLOAD]})
    ctrl = RunController(fake)
    seen = []
    ctrl.subscribe(seen.append)

    state = asyncio.run(ctrl.start("  8.8.8.8 "))

    assert isinstance(state, Succeeded)
    assert state.result.hop_count == 2
    assert ctrl.state is state
    assert ctrl.result is state.result
    assert fake.calls == [("8.8.8.8", "none")]
    assert seen == [Running("8.8.8.8"), state]


def test_running_is_set_when_start_is_called():
    gate = asyncio.Event()

    async def scenario():
        fake = FakeService(script={"a": [(gate, {"hops": []})]})
        ctrl = RunController(fake)
        pending = ctrl.start("a")
        running = ctrl.state
        gate.set()
        final = await pending
        return running, final

    running, final = asyncio.run(scenario())
    assert running == Running("a")
    assert isinstance(final, Succeeded)


def test_running_is_set_before_any_loop_drives_the_request():
    fake = FakeService(script={"a": [{"hops": []}]})
    ctrl = RunController(fake)
    pending = ctrl.start("a")
    assert ctrl.state == Running("a")
    assert ctrl.sequence == 1
    assert isinstance(asyncio.run(pending), Succeeded)
    assert fake.calls == [("a", "none")]


def test_unexpected_service_error_uses_generic_message():
    fake = FakeService(script={"h": [RuntimeError("socket fd 7 exploded")]})
    state = asyncio.run(RunController(fake).start("h"))
    assert state == Failed("h", "Unknown error")


def test_empty_target_is_a_no_op():
    fake = FakeService()
    ctrl = RunController(fake)
    asyncio.run(ctrl.start("8.8.8.8"))
    before = ctrl.state

    for target in ("", "   ", None):
        assert asyncio.run(ctrl.start(target)) is before

    assert ctrl.state is before
    assert ctrl.sequence == 1
    assert len(fake.calls) == 1


def test_service_error_message_is_surfaced_verbatim():
    fake = FakeService(script={"8.8.8.8": [ServiceError(500, "rate limited")]})
    ctrl = RunController(fake)
    state = asyncio.run(ctrl.start("8.8.8.8"))
    assert state == Failed("8.8.8.8", "rate limited")


def test_transport_failure_uses_generic_message():
    fake = FakeService(script={"8.8.8.8": [TransportFailure()]})
    state = asyncio.run(RunController(fake).start("8.8.8.8"))
    assert state == Failed("8.8.8.8", "Could not connect to the backend.")


def test_no_automatic_retry_and_recovery_by_new_start():
    fake = FakeService(script={"h": [ServiceError(503), SAMPLE_PAYLOAD]})
    ctrl = RunController(fake)
    assert isinstance(asyncio.run(ctrl.start("h")), Failed)
    assert len(fake.calls) == 1
    assert isinstance(asyncio.run(ctrl.start("h")), Succeeded)
    assert len(fake.calls) == 2


def _race(first_resolves_first):
    gate_a, gate_b = asyncio.Event(), asyncio.Event()

    async def scenario():
        fake = FakeService(script={
            "A": [(gate_a, {"target": "A", "hops": [{"hop": 1}]})],
            "B": [(gate_b, {"target": "B", "hops": [{"hop": 1}, {"hop": 2}]})],
        })
        ctrl = RunController(fake)
        task_a = ctrl.start("A")
        task_b = ctrl.start("B")
        first, second = (gate_a, gate_b) if first_resolves_first else (gate_b, gate_a)
        first.set()
        await asyncio.sleep(0.01)
        between = ctrl.state
        second.set()
        await asyncio.gather(task_a, task_b)
        return ctrl, between

    return asyncio.run(scenario())


def test_superseded_response_arriving_late_is_discarded():
    ctrl, between = _race(first_resolves_first=False)
    assert between.result.target == "B"
    assert isinstance(ctrl.state, Succeeded)
    assert ctrl.state.result.target == "B"
    assert ctrl.result.hop_count == 2


def test_superseded_response_arriving_early_is_discarded():
    """A's answer lands while B is still in flight: state stays Running(B)."""
    ctrl, between = _race(first_resolves_first=True)
    assert between == Running("B")
    assert ctrl.result.target == "B"
    assert isinstance(ctrl.state, Succeeded)
    assert ctrl.state.result.target == "B"
    assert ctrl.sequence == 2


def test_superseded_failure_is_discarded():
    gate = asyncio.Event()

    async def scenario():
        fake = FakeService(script={
            "A": [(gate, ServiceError(500, "late failure"))],
            "B": [{"target": "B", "hops": []}],
        })
        ctrl = RunController(fake)
        task_a = asyncio.ensure_future(ctrl.start("A"))
        await asyncio.sleep(0)
        await ctrl.start("B")
        gate.set()
        await task_a
        return ctrl

    ctrl = asyncio.run(scenario())
    assert isinstance(ctrl.state, Succeeded)
    assert ctrl.state.result.target == "B"


def test_last_result_kept_across_failure_by_default():
    fake = FakeService(script={"h": [SAMPLE_PAYLOAD, ServiceError(500, "boom")]})
    ctrl = RunController(fake)
    asyncio.run(ctrl.start("h"))
    good = ctrl.result
    asyncio.run(ctrl.start("h"))
    assert isinstance(ctrl.state, Failed)
    assert ctrl.result is good


def test_last_result_blanked_when_not_kept():
    fake = FakeService(script={"h": [SAMPLE_PAYLOAD, ServiceError(500, "boom")]})
    ctrl = RunController(fake, keep_last_result=False)
    asyncio.run(ctrl.start("h"))
    asyncio.run(ctrl.start("h"))
    assert ctrl.result is None


def test_schedule_is_sent_with_the_request():
    fake = FakeService()
    ctrl = RunController(fake, schedule="1h")
    asyncio.run(ctrl.start("h"))
    assert fake.calls == [("h", "1h")]


def test_unsubscribe_stops_notifications():
    ctrl = RunController(FakeService())
    seen = []
    unsubscribe = ctrl.subscribe(seen.append)
    unsubscribe()
    asyncio.run(ctrl.start("h"))
    assert seen == []
