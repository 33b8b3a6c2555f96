"""Tests for the raw program image loader."""

from __future__ import annotations

import io

import pytest

from pychip8.cpu import CapacityError, Machine
from pychip8.cpu.core import MAX_PROGRAM_SIZE
from pychip8.loader import RomFormatError, load_rom, load_rom_from_path


def test_load_rom_writes_at_program_start() -> None:
    machine = Machine(seed=0)
    program = load_rom(io.BytesIO(b"\x00\xE0\x12\x00"), machine, name="clear")

    assert machine.memory[0x200:0x204] == b"\x00\xE0\x12\x00"
    assert program.name == "clear"
    assert program.origin == 0x200
    assert program.length == 4
    assert program.end == 0x203


def test_load_rom_rejects_empty_image() -> None:
    machine = Machine(seed=0)
    with pytest.raises(RomFormatError):
        load_rom(io.BytesIO(b""), machine)


def test_load_rom_rejects_oversized_image() -> None:
    machine = Machine(seed=0)
    with pytest.raises(CapacityError):
        load_rom(io.BytesIO(bytes(MAX_PROGRAM_SIZE + 1)), machine)


def test_load_rom_from_path_uses_file_stem(tmp_path) -> None:
    rom_path = tmp_path / "pong.ch8"
    rom_path.write_bytes(b"\x6A\x02")
    machine = Machine(seed=0)

    program = load_rom_from_path(rom_path, machine)

    assert program.name == "pong"
    assert machine.memory[0x200:0x202] == b"\x6A\x02"
