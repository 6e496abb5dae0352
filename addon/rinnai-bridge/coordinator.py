"""ExchangeCoordinator - one boiler exchange end to end.

inbound text -> Frame -> BoilerStatus -> liveness + observers ->
clock stamp + queued commands on a copy -> reply Frame -> text.

The coordinator never retries; a rejected exchange simply gets no reply and
the boiler polls again on its own schedule.
"""

# pylint: disable=broad-exception-caught

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from command_queue import CommandQueue
from errors import InvalidReport, ProtocolError, StatusCodecError
from frame_codec import (
    COMMAND_EXCHANGE,
    PREFIX_COMMAND_REPLY,
    PREFIX_REGISTER,
    PREFIX_STATUS,
    build_register_ack_frame,
    decode_frame,
    encode_frame,
)
from liveness import LivenessTracker
from models import BoilerStatus, ExchangeStats, Frame
from mutations import Mutation
from status_codec import decode_status, encode_status, stamp_clock

logger = logging.getLogger(__name__)

StatusObserver = Callable[[Optional[BoilerStatus], BoilerStatus], None]


class ExchangeCoordinator:
    """Vlastní poslední známý stav kotle a odpovídá na jeho rámce."""

    def __init__(
        self,
        liveness: LivenessTracker,
        queue: CommandQueue,
        *,
        wall_clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.liveness = liveness
        self.queue = queue
        self._wall_clock = wall_clock
        self._status: BoilerStatus | None = None
        self._observers: list[StatusObserver] = []
        self.registered_serial: str | None = None
        self.stats = ExchangeStats()

    # ------------------------------------------------------------------
    # Read model
    # ------------------------------------------------------------------

    def current_status(self) -> BoilerStatus | None:
        """Poslední dekódovaný stav (None, dokud nepřišel žádný report)."""
        return self._status

    def is_reachable(self) -> bool:
        return self.liveness.is_connected()

    def add_observer(self, observer: StatusObserver) -> None:
        self._observers.append(observer)

    # ------------------------------------------------------------------
    # Command intake
    # ------------------------------------------------------------------

    async def request_mutation(
        self, mutation: Mutation, timeout_s: float | None = None
    ) -> BoilerStatus:
        """Zařadí změnu do další odpovědi kotli a počká na její odeslání."""
        return await self.queue.request(mutation, timeout_s)

    # ------------------------------------------------------------------
    # Exchange handling
    # ------------------------------------------------------------------

    async def handle_inbound_frame(self, raw: str) -> str | None:
        """Zpracuje jeden rámec od kotle; vrací text odpovědi nebo None.

        Codec errors propagate to the listener, which logs them and answers
        with an empty body.
        """
        logger.debug("BOILER: received %s", raw)
        try:
            frame = decode_frame(raw)
        except ProtocolError as e:
            self._note_rejected(e)
            raise

        if frame.command != COMMAND_EXCHANGE:
            self._note_rejected(f"unexpected command {frame.command:02x}")
            logger.error("BOILER: invalid packet (command %02x) %s", frame.command, raw)
            return None

        if frame.prefix == PREFIX_REGISTER:
            reply = self._handle_registration(frame)
        elif frame.prefix == PREFIX_STATUS:
            reply = self._handle_status_report(frame)
        else:
            self._note_rejected(f"unexpected prefix {frame.prefix}")
            logger.error("BOILER: invalid packet (prefix %s) %s", frame.prefix, raw)
            return None

        logger.debug("BOILER: send %s", reply)
        return reply

    def _handle_registration(self, frame: Frame) -> str:
        self.registered_serial = frame.payload
        self.stats.registrations += 1
        logger.info("BOILER: registered serial %s", frame.payload)
        return build_register_ack_frame()

    def _handle_status_report(self, frame: Frame) -> str:
        try:
            status = decode_status(frame.payload)
        except StatusCodecError as e:
            self._note_rejected(e)
            raise InvalidReport(f"invalid status report: {e}") from e

        old_status = self._status
        self._status = status
        self.liveness.record_contact()
        self.stats.reports += 1
        self._notify(old_status, status)

        reply_status = stamp_clock(status, self._wall_clock())
        reply_status, drained = self.queue.drain_all(reply_status)

        prefix = frame.prefix
        if drained:
            prefix = PREFIX_COMMAND_REPLY
            self.stats.command_replies += 1

        return encode_frame(
            Frame(
                prefix=prefix,
                command=frame.command,
                payload=encode_status(reply_status),
            )
        )

    def _notify(self, old: BoilerStatus | None, new: BoilerStatus) -> None:
        if old is not None:
            for key in sorted(new.changed_fields(old)):
                logger.info(
                    "BOILER: property changed %s %s => %s",
                    key,
                    getattr(old, key),
                    getattr(new, key),
                )
        for observer in list(self._observers):
            try:
                observer(old, new)
            except Exception as e:
                logger.warning("BOILER: status observer failed: %s", e)

    def _note_rejected(self, reason: object) -> None:
        self.stats.rejected += 1
        self.stats.last_error = str(reason)

    def get_health(self) -> dict[str, object]:
        """Payload pro /api/health."""
        return {
            "ok": True,
            "boiler_connected": self.is_reachable(),
            "boiler_contact_age_s": self.liveness.contact_age(),
            "registered_serial": self.registered_serial,
            "has_status": self._status is not None,
            "pending_commands": self.queue.pending_count(),
            "last_command_wait_s": self.queue.last_wait_s,
            "reports": self.stats.reports,
            "command_replies": self.stats.command_replies,
            "rejected": self.stats.rejected,
            "last_error": self.stats.last_error,
        }
