"""Raw CHIP-8 program image loader.

A program image is a headerless run of big-endian instruction words that is
copied verbatim to the load origin.
"""

from __future__ import annotations

from pathlib import Path
from typing import BinaryIO

from pychip8.cpu import Machine
from pychip8.cpu.core import PROGRAM_START
from pychip8.utils import debug_enabled, debug_log

from .program import ProgramImage


class RomFormatError(RuntimeError):
    """Raised when a program image cannot be used at all."""


def load_rom(
    stream: BinaryIO,
    machine: Machine,
    *,
    origin: int = PROGRAM_START,
    name: str = "",
) -> ProgramImage:
    """Load a program image from ``stream`` into ``machine`` and return metadata.

    Raises :class:`RomFormatError` for an empty image and lets the machine's
    ``CapacityError`` propagate when the image does not fit.
    """

    payload = stream.read()
    if not payload:
        raise RomFormatError("Program image is empty")

    machine.load(payload, origin)

    program = ProgramImage(name=name, origin=origin, length=len(payload))
    if debug_enabled("loader"):
        debug_log(
            "loader",
            "program=%s bytes=%d range=%03x-%03x",
            name or "-",
            program.length,
            program.origin,
            program.end,
        )
    return program


def load_rom_from_path(path: Path, machine: Machine, *, origin: int = PROGRAM_START) -> ProgramImage:
    """Load a program image from the filesystem."""

    with path.open("rb") as handle:
        return load_rom(handle, machine, origin=origin, name=path.stem)
