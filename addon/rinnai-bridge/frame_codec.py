#!/usr/bin/env python3
"""
Frame utilities for Rinnai boiler protocol frames.

Wire format (ASCII, no delimiter):

    <prefix:6><command:2hex><len:2hex><payload:len><checksum:2hex><tail:2hex="7d">

The checksum is the sum of the character codes of the payload modulo 256.
"""

from __future__ import annotations

import re

from errors import (
    BadTail,
    ChecksumMismatch,
    InvalidPrefixLength,
    MalformedFrame,
    OutOfRange,
    PayloadTooLong,
    TrailingData,
)
from models import Frame


# ---------------------------------------------------------------------------
# Protocol constants
# ---------------------------------------------------------------------------
PREFIX_LENGTH = 6
FRAME_TAIL = 0x7D
MAX_PAYLOAD_LENGTH = 0xFF

PREFIX_REGISTER = "re0000"
PREFIX_REGISTER_ACK = "re0100"
PREFIX_STATUS = "re0101"
PREFIX_COMMAND_REPLY = "sm0101"
COMMAND_EXCHANGE = 0x01

REGISTER_TOKEN = "1" * 32

_HEX_BYTE_RE = re.compile(r"[0-9a-fA-F]{2}")


def compute_checksum(payload: str) -> int:
    """Součet kódů znaků payloadu modulo 256."""
    return sum(ord(ch) for ch in payload) % 256


# ---------------------------------------------------------------------------
# Fixed-width text reader / builder
# ---------------------------------------------------------------------------
class TextReader:
    """Čte pole pevné šířky z ASCII-hex textu.

    `short_error` se vyhodí, když vstup nestačí; `value_error`, když
    hex pole neobsahuje dvě hex číslice.
    """

    def __init__(
        self,
        text: str,
        *,
        short_error: type[Exception] = MalformedFrame,
        value_error: type[Exception] = MalformedFrame,
    ):
        self.text = text
        self.position = 0
        self._short_error = short_error
        self._value_error = value_error

    def read_string(self, length: int) -> str:
        end = self.position + length
        if len(self.text) < end:
            raise self._short_error(
                f"need {length} characters at offset {self.position}, "
                f"only {len(self.text) - self.position} left"
            )
        value = self.text[self.position:end]
        self.position = end
        return value

    def read_hex(self) -> int:
        raw = self.read_string(2)
        if not _HEX_BYTE_RE.fullmatch(raw):
            raise self._value_error(
                f"invalid hex byte {raw!r} at offset {self.position - 2}"
            )
        return int(raw, 16)

    def remaining(self) -> str:
        return self.text[self.position:]


class TextBuilder:
    """Skládá pole pevné šířky do ASCII-hex textu."""

    def __init__(self, *, range_error: type[Exception] = OutOfRange):
        self._parts: list[str] = []
        self._range_error = range_error

    def _as_int(self, value: int) -> int:
        # 21.7 se nesmí tiše zaokrouhlit na 21
        try:
            number = int(value)
        except (TypeError, ValueError, OverflowError) as e:
            raise self._range_error(f"value {value!r} is not an integer") from e
        if number != value:
            raise self._range_error(f"value {value!r} is not an integer")
        return number

    def append_hex(self, value: int) -> None:
        value = self._as_int(value)
        if value < 0 or value > 0xFF:
            raise self._range_error(f"value {value} does not fit in one byte")
        self._parts.append(f"{value:02x}")

    def append_dec(self, value: int) -> None:
        # Dvouciferné desítkové číslo zapsané jako hex text (9 -> "09", 15 -> "0f")
        value = self._as_int(value)
        if value < 0 or value > 99:
            raise self._range_error(f"value {value} outside 0-99")
        self._parts.append(f"{value:02x}")

    def append_string(self, value: str) -> None:
        self._parts.append(value)

    def build(self) -> str:
        return "".join(self._parts)


# ---------------------------------------------------------------------------
# Frame encode / decode
# ---------------------------------------------------------------------------
def decode_frame(raw: str) -> Frame:
    """Parsuje jeden kompletní rámec; nic nesmí zbýt za tail bytem."""
    reader = TextReader(raw)
    prefix = reader.read_string(PREFIX_LENGTH)
    command = reader.read_hex()
    length = reader.read_hex()
    payload = reader.read_string(length)
    checksum = reader.read_hex()
    expected = compute_checksum(payload)
    if checksum != expected:
        raise ChecksumMismatch(expected, checksum)
    tail = reader.read_hex()
    if tail != FRAME_TAIL:
        raise BadTail(tail)
    extra = reader.remaining()
    if extra:
        raise TrailingData(extra)
    return Frame(prefix=prefix, command=command, payload=payload)


def encode_frame(frame: Frame) -> str:
    """Sestaví rámec; checksum se vždy přepočítá z payloadu."""
    if len(frame.prefix) != PREFIX_LENGTH:
        raise InvalidPrefixLength(frame.prefix)
    if len(frame.payload) > MAX_PAYLOAD_LENGTH:
        raise PayloadTooLong(len(frame.payload))
    builder = TextBuilder(range_error=MalformedFrame)
    builder.append_string(frame.prefix)
    builder.append_hex(frame.command)
    builder.append_hex(len(frame.payload))
    builder.append_string(frame.payload)
    builder.append_hex(compute_checksum(frame.payload))
    builder.append_hex(FRAME_TAIL)
    return builder.build()


# ---------------------------------------------------------------------------
# Frame building helpers
# ---------------------------------------------------------------------------
def build_register_ack_frame() -> str:
    """Potvrzení registrace s (fiktivním) tokenem."""
    return encode_frame(
        Frame(
            prefix=PREFIX_REGISTER_ACK,
            command=COMMAND_EXCHANGE,
            payload=REGISTER_TOKEN,
        )
    )
