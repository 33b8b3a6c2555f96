"""Wall-clock driven 60 Hz countdown timers."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable

Clock = Callable[[], float]

TIMER_FREQUENCY = 60
TIMER_PERIOD = 1.0 / TIMER_FREQUENCY


def default_clock() -> float:
    return time.monotonic()


@dataclass
class DecayTimer:
    """8-bit counter that loses one unit per elapsed 1/60 second.

    The decay depends only on the timestamps handed to :meth:`tick`, never on
    how often it is called.
    """

    value: int = 0
    last_tick: float = 0.0

    def load(self, value: int, now: float) -> None:
        self.value = value & 0xFF
        self.last_tick = now

    def tick(self, now: float) -> bool:
        """Decrement once if a full period has elapsed; return whether it did."""

        if self.value == 0:
            return False
        if now - self.last_tick < TIMER_PERIOD:
            return False
        self.value -= 1
        self.last_tick = now
        return True


__all__ = ["Clock", "DecayTimer", "TIMER_FREQUENCY", "TIMER_PERIOD", "default_clock"]
