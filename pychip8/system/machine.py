"""CHIP-8 machine assembly."""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Optional

from pychip8.cpu import Machine
from pychip8.cpu.core import StepObserver, ToneCallback
from pychip8.cpu.timers import Clock, default_clock


@dataclass
class MachineConfig:
    """Runtime configuration for a CHIP-8 machine."""

    clock: Clock = default_clock
    seed: Optional[int] = None
    tone_callback: Optional[ToneCallback] = None
    observer: Optional[StepObserver] = None
    program: Optional[bytes] = None


def create_machine(config: MachineConfig) -> Machine:
    """Instantiate a reset CHIP-8 machine with the requested collaborators."""

    machine = Machine(
        clock=config.clock,
        rng=random.Random(),
        seed=config.seed,
        tone_callback=config.tone_callback,
        observer=config.observer,
    )
    if config.program:
        machine.load(config.program)
    return machine
