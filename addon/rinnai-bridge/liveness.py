"""Liveness tracker - is the boiler still polling us?"""

from __future__ import annotations

import time
from typing import Callable

from config import LIVENESS_TIMEOUT_S


class LivenessTracker:
    """Pamatuje si čas posledního úspěšně dekódovaného status reportu."""

    def __init__(
        self,
        timeout_s: float = LIVENESS_TIMEOUT_S,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.timeout_s = float(timeout_s)
        self._clock = clock
        # Jediný skalár; přiřazení je atomické, zámek netřeba.
        self._last_contact: float | None = None

    @property
    def last_contact(self) -> float | None:
        return self._last_contact

    def record_contact(self, now: float | None = None) -> None:
        self._last_contact = self._clock() if now is None else now

    def is_connected(self, now: float | None = None) -> bool:
        last = self._last_contact
        if last is None:
            return False
        if now is None:
            now = self._clock()
        return (now - last) < self.timeout_s

    def contact_age(self, now: float | None = None) -> float | None:
        """Stáří posledního kontaktu v sekundách (None = ještě nebyl)."""
        last = self._last_contact
        if last is None:
            return None
        if now is None:
            now = self._clock()
        return max(0.0, now - last)
