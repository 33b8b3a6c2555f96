"""Loaders for CHIP-8 program images."""

from __future__ import annotations

from .program import ProgramImage
from .rom import RomFormatError, load_rom, load_rom_from_path

__all__ = [
    "ProgramImage",
    "RomFormatError",
    "load_rom",
    "load_rom_from_path",
]
