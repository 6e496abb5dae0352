# pylint: disable=missing-module-docstring,missing-function-docstring,missing-class-docstring,protected-access
# pylint: disable=unused-argument,too-few-public-methods,no-member,use-implicit-booleaness-not-comparison,line-too-long
# pylint: disable=invalid-name,too-many-statements,too-many-instance-attributes,wrong-import-position,wrong-import-order
# pylint: disable=deprecated-module,too-many-locals,too-many-lines,attribute-defined-outside-init,unexpected-keyword-arg
# pylint: disable=duplicate-code
import asyncio

import pytest

from errors import ApplianceUnreachable, ChecksumMismatch, InvalidReport
from frame_codec import REGISTER_TOKEN, decode_frame, encode_frame
from helpers import SAMPLE_STATUS_PAYLOAD, make_coordinator
from models import Frame
from mutations import SetPower, SetRoomTemperature
from status_codec import decode_status


def _status_frame(payload: str = SAMPLE_STATUS_PAYLOAD, prefix: str = "re0101") -> str:
    return encode_frame(Frame(prefix=prefix, command=1, payload=payload))


@pytest.mark.asyncio
async def test_registration_reply():
    coordinator, _clock = make_coordinator(connected=False)
    raw = encode_frame(Frame(prefix="re0000", command=1, payload="SN12345"))
    reply = await coordinator.handle_inbound_frame(raw)

    frame = decode_frame(reply)
    assert frame.prefix == "re0100"
    assert frame.command == 1
    assert frame.payload == REGISTER_TOKEN
    assert coordinator.registered_serial == "SN12345"
    assert coordinator.stats.registrations == 1


@pytest.mark.asyncio
async def test_status_report_without_commands_echoes_prefix():
    coordinator, _clock = make_coordinator(connected=False)
    reply = await coordinator.handle_inbound_frame(_status_frame())

    frame = decode_frame(reply)
    assert frame.prefix == "re0101"
    status = decode_status(frame.payload)
    # clock stamped from the wall clock, everything else echoed
    assert status.current_time == "190e000903193b"
    assert frame.payload[:112 - 14] == SAMPLE_STATUS_PAYLOAD[:112 - 14]
    assert frame.payload[112:] == SAMPLE_STATUS_PAYLOAD[112:]

    assert coordinator.is_reachable() is True
    assert coordinator.current_status() == decode_status(SAMPLE_STATUS_PAYLOAD)


@pytest.mark.asyncio
async def test_status_report_with_commands_uses_command_prefix():
    coordinator, _clock = make_coordinator()
    task = asyncio.create_task(coordinator.request_mutation(SetPower(on=False)))
    room = asyncio.create_task(coordinator.request_mutation(SetRoomTemperature(temp=18)))
    await asyncio.sleep(0)

    reply = await coordinator.handle_inbound_frame(_status_frame())
    frame = decode_frame(reply)
    assert frame.prefix == "sm0101"
    sent = decode_status(frame.payload)
    assert sent.is_power_on is False
    assert sent.desired_room_temp == 18
    assert sent.desired_heat_water_temp == 18

    assert (await asyncio.wait_for(task, 1.0)).is_power_on is False
    assert (await asyncio.wait_for(room, 1.0)).desired_room_temp == 18
    assert coordinator.stats.command_replies == 1

    # stored status is what the boiler reported, not what we asked for
    assert coordinator.current_status().is_power_on is True

    reply = await coordinator.handle_inbound_frame(_status_frame())
    assert decode_frame(reply).prefix == "re0101"


@pytest.mark.asyncio
async def test_observers_see_reported_status():
    coordinator, _clock = make_coordinator()
    seen = []
    coordinator.add_observer(lambda old, new: seen.append((old, new)))

    def _broken(old, new):
        raise RuntimeError("boom")

    coordinator.add_observer(_broken)
    asyncio.create_task(coordinator.request_mutation(SetPower(on=False)))
    await asyncio.sleep(0)

    await coordinator.handle_inbound_frame(_status_frame())
    assert len(seen) == 1
    old, new = seen[0]
    assert old is None
    assert new.is_power_on is True

    await coordinator.handle_inbound_frame(_status_frame())
    assert len(seen) == 2
    assert seen[1][0] == seen[1][1]


@pytest.mark.asyncio
async def test_invalid_status_payload_rejected():
    coordinator, _clock = make_coordinator(connected=False)
    with pytest.raises(InvalidReport):
        await coordinator.handle_inbound_frame(_status_frame(SAMPLE_STATUS_PAYLOAD[:100]))
    assert coordinator.current_status() is None
    assert coordinator.is_reachable() is False
    assert coordinator.stats.rejected == 1


@pytest.mark.asyncio
async def test_bad_frame_propagates():
    coordinator, _clock = make_coordinator(connected=False)
    raw = _status_frame()
    # flip one payload character, keep the original checksum
    corrupted = raw[:10] + "1" + raw[11:]
    with pytest.raises(ChecksumMismatch):
        await coordinator.handle_inbound_frame(corrupted)
    assert coordinator.stats.rejected == 1
    assert coordinator.stats.last_error


@pytest.mark.asyncio
async def test_unknown_prefix_and_command_get_no_reply():
    coordinator, _clock = make_coordinator(connected=False)
    assert await coordinator.handle_inbound_frame(_status_frame(prefix="xx9999")) is None
    raw = encode_frame(Frame(prefix="re0101", command=2, payload=SAMPLE_STATUS_PAYLOAD))
    assert await coordinator.handle_inbound_frame(raw) is None
    assert coordinator.current_status() is None
    assert coordinator.stats.rejected == 2


@pytest.mark.asyncio
async def test_request_refused_when_boiler_silent():
    coordinator, clock = make_coordinator()
    clock.advance(11.0)
    assert coordinator.is_reachable() is False
    with pytest.raises(ApplianceUnreachable):
        await coordinator.request_mutation(SetPower(on=True))


@pytest.mark.asyncio
async def test_health_payload():
    coordinator, _clock = make_coordinator(connected=False)
    health = coordinator.get_health()
    assert health["boiler_connected"] is False
    assert health["has_status"] is False

    await coordinator.handle_inbound_frame(_status_frame())
    health = coordinator.get_health()
    assert health["boiler_connected"] is True
    assert health["has_status"] is True
    assert health["reports"] == 1
    assert health["pending_commands"] == 0
    assert health["last_command_wait_s"] is None
