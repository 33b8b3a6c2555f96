"""CPU package for the CHIP-8 interpreter."""

from .core import (
    CapacityError,
    Machine,
    MachineError,
    StackOverflowError,
    StackUnderflowError,
)
from .timers import DecayTimer
from . import opcodes

__all__ = [
    "Machine",
    "MachineError",
    "CapacityError",
    "StackOverflowError",
    "StackUnderflowError",
    "DecayTimer",
    "opcodes",
]
