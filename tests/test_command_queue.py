# pylint: disable=missing-module-docstring,missing-function-docstring,missing-class-docstring,protected-access
# pylint: disable=unused-argument,too-few-public-methods,no-member,use-implicit-booleaness-not-comparison,line-too-long
# pylint: disable=invalid-name,too-many-statements,too-many-instance-attributes,wrong-import-position,wrong-import-order
# pylint: disable=deprecated-module,too-many-locals,too-many-lines,attribute-defined-outside-init,unexpected-keyword-arg
# pylint: disable=duplicate-code
import asyncio

import pytest

from command_queue import CommandQueue
from errors import ApplianceUnreachable, CommandTimeout
from helpers import FakeClock
from liveness import LivenessTracker
from models import BoilerStatus
from mutations import SetHeat, SetPower, SetRoomTemperature


def _queue(*, connected: bool = True, timeout_s: float = 10.0) -> CommandQueue:
    liveness = LivenessTracker(timeout_s=10.0, clock=FakeClock())
    if connected:
        liveness.record_contact()
    return CommandQueue(liveness, timeout_s=timeout_s)


@pytest.mark.asyncio
async def test_enqueue_requires_reachable_boiler():
    queue = _queue(connected=False)
    with pytest.raises(ApplianceUnreachable):
        queue.enqueue(SetPower(on=True))
    assert queue.pending_count() == 0


@pytest.mark.asyncio
async def test_drain_applies_in_fifo_order():
    queue = _queue()
    first = queue.enqueue(SetRoomTemperature(temp=20))
    second = queue.enqueue(SetRoomTemperature(temp=25))
    third = queue.enqueue(SetPower(on=True))
    assert queue.pending_count() == 3

    status, count = queue.drain_all(BoilerStatus())
    assert count == 3
    assert status.desired_room_temp == 25
    assert status.is_power_on is True
    assert queue.pending_count() == 0

    for entry in (first, second, third):
        assert entry.done()
        assert entry.future.result() is status
    assert queue.delivered == 3


@pytest.mark.asyncio
async def test_drain_does_not_touch_snapshot():
    queue = _queue()
    queue.enqueue(SetHeat(on=True))
    snapshot = BoilerStatus()
    status, _count = queue.drain_all(snapshot)
    assert status.is_heat_on is True
    assert snapshot.is_heat_on is False


@pytest.mark.asyncio
async def test_drain_empty_queue():
    queue = _queue()
    snapshot = BoilerStatus()
    status, count = queue.drain_all(snapshot)
    assert count == 0
    assert status is snapshot


@pytest.mark.asyncio
async def test_request_resolves_after_drain():
    queue = _queue()
    task = asyncio.create_task(queue.request(SetPower(on=True)))
    await asyncio.sleep(0)
    assert queue.pending_count() == 1

    queue.drain_all(BoilerStatus())
    result = await asyncio.wait_for(task, timeout=1.0)
    assert result.is_power_on is True


@pytest.mark.asyncio
async def test_request_times_out():
    queue = _queue(timeout_s=0.02)
    with pytest.raises(CommandTimeout):
        await queue.request(SetPower(on=True))
    assert queue.pending_count() == 0
    assert queue.expired == 1


@pytest.mark.asyncio
async def test_per_request_timeout_override():
    queue = _queue(timeout_s=10.0)
    with pytest.raises(CommandTimeout) as exc:
        await queue.request(SetPower(on=True), timeout_s=0.01)
    assert exc.value.timeout_s == pytest.approx(0.01)


@pytest.mark.asyncio
async def test_drained_entry_never_times_out():
    queue = _queue(timeout_s=0.02)
    entry = queue.enqueue(SetPower(on=True))
    status, _count = queue.drain_all(BoilerStatus())
    await asyncio.sleep(0.05)
    assert entry.future.result() is status
    assert queue.expired == 0


@pytest.mark.asyncio
async def test_expired_entry_is_not_drained():
    queue = _queue(timeout_s=0.01)
    entry = queue.enqueue(SetPower(on=True))
    await asyncio.sleep(0.05)
    assert isinstance(entry.future.exception(), CommandTimeout)

    status, count = queue.drain_all(BoilerStatus())
    assert count == 0
    assert status.is_power_on is False


@pytest.mark.asyncio
async def test_enqueue_after_drain_waits_for_next_exchange():
    queue = _queue()
    queue.enqueue(SetPower(on=True))
    queue.drain_all(BoilerStatus())

    late = queue.enqueue(SetHeat(on=True))
    assert not late.done()
    assert queue.pending_count() == 1

    status, count = queue.drain_all(BoilerStatus())
    assert count == 1
    assert late.future.result() is status


@pytest.mark.asyncio
async def test_drain_records_how_long_oldest_command_waited():
    queue = _queue()
    assert queue.last_wait_s is None
    first = queue.enqueue(SetPower(on=True))
    await asyncio.sleep(0.05)
    queue.enqueue(SetHeat(on=True))

    assert first.waited_s() >= 0.04
    queue.drain_all(BoilerStatus())
    assert queue.last_wait_s >= 0.04

    queue.drain_all(BoilerStatus())
    assert queue.last_wait_s >= 0.04
