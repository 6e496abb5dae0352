"""CommandQueue - pending mutation requests waiting for the next status exchange.

The boiler only accepts instructions inside the reply to its own status
report.  Callers enqueue a mutation and await its future; the coordinator
drains the whole queue once per successful exchange.  An entry that is not
drained before its deadline is removed and fails with CommandTimeout.

Every entry is resolved exactly once: either by a drain or by its expiry,
never both.  Claiming happens under ``_lock``; futures are resolved on the
event loop that owns them.
"""

# pylint: disable=broad-exception-caught

from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections import deque

from config import COMMAND_TIMEOUT_S
from errors import ApplianceUnreachable, CommandTimeout
from liveness import LivenessTracker
from models import BoilerStatus
from mutations import Mutation, apply_mutation

logger = logging.getLogger(__name__)


class QueuedCommand:
    """One queued mutation with its completion future and deadline timer."""

    def __init__(
        self,
        mutation: Mutation,
        future: asyncio.Future[BoilerStatus],
        timeout_s: float,
    ):
        self.mutation = mutation
        self.future = future
        self.timeout_s = float(timeout_s)
        self.created_at = time.monotonic()
        self.timer: asyncio.TimerHandle | None = None

    def describe(self) -> str:
        return self.mutation.describe()

    def done(self) -> bool:
        return self.future.done()

    def waited_s(self) -> float:
        """Jak dlouho příkaz čeká ve frontě."""
        return time.monotonic() - self.created_at


class CommandQueue:
    """FIFO fronta příkazů pro kotel."""

    def __init__(
        self,
        liveness: LivenessTracker,
        timeout_s: float = COMMAND_TIMEOUT_S,
    ) -> None:
        self._liveness = liveness
        self.timeout_s = float(timeout_s)
        self._entries: deque[QueuedCommand] = deque()
        self._lock = threading.Lock()
        self.delivered = 0
        self.expired = 0
        self.last_wait_s: float | None = None

    def pending_count(self) -> int:
        with self._lock:
            return len(self._entries)

    def enqueue(
        self, mutation: Mutation, timeout_s: float | None = None
    ) -> QueuedCommand:
        """Zařadí příkaz; kotel musí být dostupný, jinak ApplianceUnreachable.

        Must be called from the running event loop.
        """
        if not self._liveness.is_connected():
            raise ApplianceUnreachable("boiler has not reported recently")

        loop = asyncio.get_running_loop()
        timeout = self.timeout_s if timeout_s is None else float(timeout_s)
        entry = QueuedCommand(mutation, loop.create_future(), timeout)
        with self._lock:
            entry.timer = loop.call_later(timeout, self._expire, entry)
            self._entries.append(entry)
            depth = len(self._entries)
        logger.info("CONTROL: queued %s (depth=%s)", entry.describe(), depth)
        return entry

    async def request(
        self, mutation: Mutation, timeout_s: float | None = None
    ) -> BoilerStatus:
        """Zařadí příkaz a počká na odeslání kotli (nebo timeout)."""
        entry = self.enqueue(mutation, timeout_s)
        return await entry.future

    def _expire(self, entry: QueuedCommand) -> None:
        with self._lock:
            try:
                self._entries.remove(entry)
            except ValueError:
                # Already claimed by a drain.
                return
        self.expired += 1
        logger.warning(
            "CONTROL: %s timed out after %.1fs (limit %ss)",
            entry.describe(),
            entry.waited_s(),
            entry.timeout_s,
        )
        if not entry.future.done():
            entry.future.set_exception(
                CommandTimeout(entry.describe(), entry.timeout_s)
            )

    def drain_all(self, snapshot: BoilerStatus) -> tuple[BoilerStatus, int]:
        """Aplikuje všechny čekající příkazy v pořadí zařazení na kopii `snapshot`.

        Returns the mutated status and the number of drained entries.  Entries
        enqueued after the claim stay queued for the next drain.
        """
        with self._lock:
            claimed = list(self._entries)
            self._entries.clear()

        status = snapshot
        applied: list[QueuedCommand] = []
        for entry in claimed:
            if entry.timer is not None:
                entry.timer.cancel()
            try:
                status = apply_mutation(status, entry.mutation)
            except Exception as e:
                logger.error("CONTROL: %s failed: %s", entry.describe(), e)
                if not entry.future.done():
                    entry.future.set_exception(e)
                continue
            applied.append(entry)

        for entry in applied:
            if not entry.future.done():
                entry.future.set_result(status)
        self.delivered += len(applied)
        if claimed:
            # nejstarší příkaz je první (FIFO)
            self.last_wait_s = claimed[0].waited_s()
            logger.info(
                "CONTROL: drained %s command(s) into reply (oldest waited %.1fs)",
                len(claimed),
                self.last_wait_s,
            )
        return status, len(claimed)
