"""Shared test helper functions."""

from datetime import datetime

from command_queue import CommandQueue
from coordinator import ExchangeCoordinator
from liveness import LivenessTracker

# power + heat on + hot water on, 22/22/42 desired, 20/40 current,
# idle combustion with hot water in use
SAMPLE_STATUS_PAYLOAD = (
    "0d"        # flags
    "16"        # desired room
    "16"        # desired heat water
    "2a"        # desired hot water
    "14"        # current room
    "28"        # current water
    "21"        # drive status
    "ffff"      # opaque1
    "00"        # go out
    "00"        # mode data
    "0000"      # opaque2
    "00"        # reserve
    + "0" * 70  # opaque3
    + "0" * 14  # clock
    + "0" * 40  # opaque4
)


FIXED_NOW = datetime(2025, 3, 9, 14, 25, 59)


class FakeClock:
    """Monotonic clock driven by the test."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_coordinator(*, connected: bool = True, timeout_s: float = 10.0):
    """Coordinator with a fake liveness clock; returns (coordinator, clock)."""
    clock = FakeClock()
    liveness = LivenessTracker(timeout_s=10.0, clock=clock)
    if connected:
        liveness.record_contact()
    queue = CommandQueue(liveness, timeout_s=timeout_s)
    coordinator = ExchangeCoordinator(liveness, queue, wall_clock=lambda: FIXED_NOW)
    return coordinator, clock
