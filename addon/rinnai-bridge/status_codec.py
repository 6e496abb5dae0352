#!/usr/bin/env python3
"""
Status payload codec.

The status report payload is a fixed sequence of fields (widths in
characters of the ASCII-hex transport):

    flags 2 | desired room 2 | desired heat water 2 | desired hot water 2 |
    current room 2 | current water 2 | drive status 2 | opaque1 4 |
    go out 2 | mode data 2 | opaque2 4 | reserve 2 | opaque3 70 |
    clock 14 | opaque4 40

Opaque fields are carried through verbatim; their meaning is unknown.
"""

from __future__ import annotations

import dataclasses
from datetime import datetime

from errors import FieldWidthError, OutOfRange, TrailingStatusData, TruncatedStatus
from frame_codec import TextBuilder, TextReader
from models import BoilerStatus

OPAQUE1_WIDTH = 4
OPAQUE2_WIDTH = 4
OPAQUE3_WIDTH = 70
CLOCK_WIDTH = 14
OPAQUE4_WIDTH = 40

STATUS_PAYLOAD_LENGTH = 2 * 7 + OPAQUE1_WIDTH + 2 * 2 + OPAQUE2_WIDTH + 2 \
    + OPAQUE3_WIDTH + CLOCK_WIDTH + OPAQUE4_WIDTH

# flags byte
_FLAG_POWER_ON = 0x01
_FLAG_HEAT_MODE = 0x02
_FLAG_HEAT_ON = 0x04
_FLAG_HOT_WATER_ON = 0x08
_FLAG_PRE_HEAT = 0x10
_FLAG_QUICK_HEAT = 0x20
_FLAG_HEAT_BIT6 = 0x40
_FLAG_HEAT_BIT7 = 0x80

_FLAG_FIELDS = (
    ("is_power_on", _FLAG_POWER_ON),
    ("is_heat_mode", _FLAG_HEAT_MODE),
    ("is_heat_on", _FLAG_HEAT_ON),
    ("is_hot_water_on", _FLAG_HOT_WATER_ON),
    ("is_pre_heat", _FLAG_PRE_HEAT),
    ("is_quick_heat", _FLAG_QUICK_HEAT),
    ("heat_info_bit6", _FLAG_HEAT_BIT6),
    ("heat_info_bit7", _FLAG_HEAT_BIT7),
)

# drive-status byte (bits 0-3 = combustion state)
_COMBUSTION_MASK = 0x0F
_DRIVE_FIELDS = (
    ("drive_status_bit4", 0x10),
    ("is_hot_water_using", 0x20),
    ("drive_status_bit6", 0x40),
    ("drive_status_bit7", 0x80),
)

# desired hot water byte
_HOT_WATER_TEMP_MASK = 0x7F
_HOT_WATER_HALF_FLAG = 0x80
HOT_WATER_HALF_VALUE = 0.5


def _unpack_bits(value: int, fields: tuple[tuple[str, int], ...]) -> dict[str, bool]:
    return {name: bool(value & mask) for name, mask in fields}


def _pack_bits(status: BoilerStatus, fields: tuple[tuple[str, int], ...]) -> int:
    value = 0
    for name, mask in fields:
        if getattr(status, name):
            value |= mask
    return value


def _decode_hot_water_temp(value: int) -> int | float:
    # Nastavený high bit přepíše hodnotu na 0.5 (původní 7 bitů se ztratí).
    if value & _HOT_WATER_HALF_FLAG:
        return HOT_WATER_HALF_VALUE
    return value & _HOT_WATER_TEMP_MASK


def _encode_hot_water_temp(temp: int | float) -> int:
    if temp == HOT_WATER_HALF_VALUE:
        return _HOT_WATER_HALF_FLAG
    if isinstance(temp, bool) or int(temp) != temp:
        raise OutOfRange(f"desired_hot_water_temp {temp!r} is not an integer or 0.5")
    temp = int(temp)
    if temp < 0 or temp > _HOT_WATER_TEMP_MASK:
        raise OutOfRange(f"desired_hot_water_temp {temp} outside 0-127")
    return temp


def _append_fixed(builder: TextBuilder, status: BoilerStatus, name: str, width: int) -> None:
    value = getattr(status, name)
    if len(value) != width:
        raise FieldWidthError(name, width, value)
    builder.append_string(value)


def decode_status(payload: str) -> BoilerStatus:
    """Dekóduje payload status reportu do BoilerStatus."""
    reader = TextReader(payload, short_error=TruncatedStatus, value_error=OutOfRange)

    flags = _unpack_bits(reader.read_hex(), _FLAG_FIELDS)
    desired_room_temp = reader.read_hex()
    desired_heat_water_temp = reader.read_hex()
    desired_hot_water_temp = _decode_hot_water_temp(reader.read_hex())
    current_room_temp = reader.read_hex()
    current_water_temp = reader.read_hex()

    drive = reader.read_hex()
    drive_bits = _unpack_bits(drive, _DRIVE_FIELDS)

    opaque1 = reader.read_string(OPAQUE1_WIDTH)
    is_go_out = reader.read_hex()
    mode_data = reader.read_hex()
    opaque2 = reader.read_string(OPAQUE2_WIDTH)
    reserve_data = reader.read_hex()
    opaque3 = reader.read_string(OPAQUE3_WIDTH)
    current_time = reader.read_string(CLOCK_WIDTH)
    opaque4 = reader.read_string(OPAQUE4_WIDTH)

    extra = reader.remaining()
    if extra:
        raise TrailingStatusData(
            f"status payload has {len(extra)} extra character(s), "
            f"expected {STATUS_PAYLOAD_LENGTH}"
        )

    return BoilerStatus(
        **flags,
        desired_room_temp=desired_room_temp,
        desired_heat_water_temp=desired_heat_water_temp,
        desired_hot_water_temp=desired_hot_water_temp,
        current_room_temp=current_room_temp,
        current_water_temp=current_water_temp,
        combustion_state=drive & _COMBUSTION_MASK,
        **drive_bits,
        opaque1=opaque1,
        is_go_out=is_go_out,
        mode_data=mode_data,
        opaque2=opaque2,
        reserve_data=reserve_data,
        opaque3=opaque3,
        current_time=current_time,
        opaque4=opaque4,
    )


def encode_status(status: BoilerStatus) -> str:
    """Zakóduje BoilerStatus zpět do payloadu (vždy 152 znaků)."""
    builder = TextBuilder()
    builder.append_hex(_pack_bits(status, _FLAG_FIELDS))
    builder.append_hex(status.desired_room_temp)
    builder.append_hex(status.desired_heat_water_temp)
    builder.append_hex(_encode_hot_water_temp(status.desired_hot_water_temp))
    builder.append_hex(status.current_room_temp)
    builder.append_hex(status.current_water_temp)

    combustion = int(status.combustion_state)
    if combustion < 0 or combustion > _COMBUSTION_MASK:
        raise OutOfRange(f"combustion_state {combustion} outside 0-15")
    builder.append_hex(combustion | _pack_bits(status, _DRIVE_FIELDS))

    _append_fixed(builder, status, "opaque1", OPAQUE1_WIDTH)
    builder.append_hex(status.is_go_out)
    builder.append_hex(status.mode_data)
    _append_fixed(builder, status, "opaque2", OPAQUE2_WIDTH)
    builder.append_hex(status.reserve_data)
    _append_fixed(builder, status, "opaque3", OPAQUE3_WIDTH)
    _append_fixed(builder, status, "current_time", CLOCK_WIDTH)
    _append_fixed(builder, status, "opaque4", OPAQUE4_WIDTH)
    return builder.build()


# ---------------------------------------------------------------------------
# Clock stamp
# ---------------------------------------------------------------------------
def encode_clock(now: datetime) -> str:
    """minute, hour, weekday (0=neděle), day, month, year%100, second.

    Každá hodnota 0-99 se zapisuje jako dvě hex číslice svého čísla
    (25 -> "19"), ne jako BCD. Kotel to tak přijímá.
    """
    builder = TextBuilder()
    builder.append_dec(now.minute)
    builder.append_dec(now.hour)
    builder.append_dec(now.isoweekday() % 7)
    builder.append_dec(now.day)
    builder.append_dec(now.month)
    builder.append_dec(now.year % 100)
    builder.append_dec(now.second)
    return builder.build()


def stamp_clock(status: BoilerStatus, now: datetime | None = None) -> BoilerStatus:
    """Vrátí kopii stavu s aktuálním časem v poli current_time."""
    return dataclasses.replace(
        status, current_time=encode_clock(now or datetime.now())
    )
