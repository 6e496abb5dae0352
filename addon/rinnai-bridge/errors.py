"""Exception taxonomy for the Rinnai bridge.

Every failure here is scoped to one exchange or one command; none of them is
fatal to the process.
"""

from __future__ import annotations


class BridgeError(Exception):
    """Base class for all expected operational errors in the bridge."""

    #: Stable machine-readable identifier (HTTP/MQTT error payloads)
    code: str = "unknown"


# ---------------------------------------------------------------------------
# Wire envelope (frame) errors
# ---------------------------------------------------------------------------

class ProtocolError(BridgeError):
    """Base for wire-level failures (framing/parse)."""
    code = "protocol_error"


class MalformedFrame(ProtocolError):
    """A field could not be consumed (input too short or not hex)."""
    code = "malformed_frame"


class ChecksumMismatch(ProtocolError):
    code = "checksum_mismatch"

    def __init__(self, expected: int, received: int):
        super().__init__(
            f"checksum mismatch: computed {expected:02x}, received {received:02x}"
        )
        self.expected = expected
        self.received = received


class BadTail(ProtocolError):
    code = "bad_tail"

    def __init__(self, tail: int):
        super().__init__(f"invalid tail byte {tail:02x}")
        self.tail = tail


class TrailingData(ProtocolError):
    code = "trailing_data"

    def __init__(self, extra: str):
        super().__init__(f"{len(extra)} trailing character(s) after tail")
        self.extra = extra


class InvalidPrefixLength(ProtocolError):
    code = "invalid_prefix_length"

    def __init__(self, prefix: str):
        super().__init__(f"prefix must be 6 characters, got {prefix!r}")
        self.prefix = prefix


class PayloadTooLong(ProtocolError):
    code = "payload_too_long"

    def __init__(self, length: int):
        super().__init__(f"payload of {length} characters exceeds 255")
        self.length = length


# ---------------------------------------------------------------------------
# Status payload errors
# ---------------------------------------------------------------------------

class StatusCodecError(ProtocolError):
    """Base for status payload failures."""
    code = "status_error"


class TruncatedStatus(StatusCodecError):
    code = "truncated_status"


class OutOfRange(StatusCodecError):
    """A value does not fit its field (or is not valid hex on decode)."""
    code = "out_of_range"


class TrailingStatusData(OutOfRange):
    code = "trailing_status_data"


class FieldWidthError(OutOfRange):
    """A fixed-width text field does not have its declared width."""
    code = "field_width"

    def __init__(self, field: str, width: int, value: str):
        super().__init__(
            f"field {field} must be {width} characters, got {len(value)}"
        )
        self.field = field
        self.width = width


# ---------------------------------------------------------------------------
# Exchange / command errors
# ---------------------------------------------------------------------------

class InvalidReport(BridgeError):
    """A status report frame carried a payload the status codec rejected."""
    code = "invalid_report"


class ApplianceUnreachable(BridgeError):
    """No status report within the liveness window; commands are refused."""
    code = "appliance_unreachable"


class CommandTimeout(BridgeError):
    code = "command_timeout"

    def __init__(self, description: str, timeout_s: float):
        super().__init__(f"{description} timed out after {timeout_s}s")
        self.description = description
        self.timeout_s = timeout_s


class InvalidCommand(BridgeError, ValueError):
    """A mutation request was built with an unacceptable value."""
    code = "invalid_command"
