"""Opcode metadata for the CHIP-8 instruction set."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final, Iterable, Iterator, List, Sequence


@dataclass(frozen=True)
class Instruction:
    """Metadata describing a single CHIP-8 instruction pattern.

    An opcode matches when ``opcode & mask == match``.
    """

    mask: int
    match: int
    mnemonic: str
    handler: str

    def __post_init__(self) -> None:
        if not 0 <= self.mask <= 0xFFFF:
            raise ValueError(f"mask out of range: {self.mask}")
        if self.match & ~self.mask:
            raise ValueError(f"match {self.match:#06x} has bits outside mask {self.mask:#06x}")

    @property
    def group(self) -> int:
        return (self.match >> 12) & 0x0F

    def matches(self, opcode: int) -> bool:
        return (opcode & self.mask) == self.match


class OpcodeTable:
    """Instruction table bucketed by the top nibble of the opcode.

    Patterns inside a bucket are tried in registration order, so exact
    patterns must be registered before any catch-all in the same group.
    """

    _GROUPS: Final[int] = 0x10

    def __init__(self) -> None:
        self._groups: List[List[Instruction]] = [[] for _ in range(self._GROUPS)]

    def register(self, instruction: Instruction) -> None:
        bucket = self._groups[instruction.group]
        for existing in bucket:
            if existing.mask == instruction.mask and existing.match == instruction.match:
                raise ValueError(
                    f"pattern {instruction.match:#06x} already registered as {existing.mnemonic}")
        bucket.append(instruction)

    def register_all(self, instructions: Iterable[Instruction]) -> None:
        for instruction in instructions:
            self.register(instruction)

    def freeze(self) -> "FrozenOpcodeTable":
        return FrozenOpcodeTable(tuple(tuple(bucket) for bucket in self._groups))


@dataclass(frozen=True)
class FrozenOpcodeTable:
    groups: Sequence[Sequence[Instruction]]

    def decode(self, opcode: int) -> Instruction | None:
        """Return the instruction matching ``opcode`` or ``None`` if undefined."""

        for instruction in self.groups[(opcode >> 12) & 0x0F]:
            if instruction.matches(opcode):
                return instruction
        return None

    def __iter__(self) -> Iterator[Instruction]:
        for bucket in self.groups:
            yield from bucket


def build_instruction_table(instructions: Iterable[Instruction]) -> FrozenOpcodeTable:
    """Build the nibble-bucketed lookup table."""

    table = OpcodeTable()
    table.register_all(instructions)
    return table.freeze()


DEFAULT_INSTRUCTIONS: Sequence[Instruction] = (
    Instruction(0xFFFF, 0x00E0, "CLS", "op_cls"),
    Instruction(0xFFFF, 0x00EE, "RET", "op_ret"),
    # Legacy machine-code call; every other 0nnn word lands here.
    Instruction(0xF000, 0x0000, "SYS", "op_nop"),
    Instruction(0xF000, 0x1000, "JP", "op_jp"),
    Instruction(0xF000, 0x2000, "CALL", "op_call"),
    Instruction(0xF000, 0x3000, "SE", "op_se_byte"),
    Instruction(0xF000, 0x4000, "SNE", "op_sne_byte"),
    Instruction(0xF00F, 0x5000, "SE", "op_se_reg"),
    Instruction(0xF000, 0x6000, "LD", "op_ld_byte"),
    Instruction(0xF000, 0x7000, "ADD", "op_add_byte"),
    Instruction(0xF00F, 0x8000, "LD", "op_ld_reg"),
    Instruction(0xF00F, 0x8001, "OR", "op_or"),
    Instruction(0xF00F, 0x8002, "AND", "op_and"),
    Instruction(0xF00F, 0x8003, "XOR", "op_xor"),
    Instruction(0xF00F, 0x8004, "ADD", "op_add_reg"),
    Instruction(0xF00F, 0x8005, "SUB", "op_sub"),
    Instruction(0xF00F, 0x8006, "SHR", "op_shr"),
    Instruction(0xF00F, 0x8007, "SUBN", "op_subn"),
    Instruction(0xF00F, 0x800E, "SHL", "op_shl"),
    Instruction(0xF00F, 0x9000, "SNE", "op_sne_reg"),
    Instruction(0xF000, 0xA000, "LD", "op_ld_i"),
    Instruction(0xF000, 0xB000, "JP", "op_jp_v0"),
    Instruction(0xF000, 0xC000, "RND", "op_rnd"),
    Instruction(0xF000, 0xD000, "DRW", "op_drw"),
    Instruction(0xF0FF, 0xE09E, "SKP", "op_skp"),
    Instruction(0xF0FF, 0xE0A1, "SKNP", "op_sknp"),
    Instruction(0xF0FF, 0xF007, "LD", "op_ld_vx_dt"),
    Instruction(0xF0FF, 0xF00A, "LD", "op_ld_vx_key"),
    Instruction(0xF0FF, 0xF015, "LD", "op_ld_dt_vx"),
    Instruction(0xF0FF, 0xF018, "LD", "op_ld_st_vx"),
    Instruction(0xF0FF, 0xF01E, "ADD", "op_add_i"),
    Instruction(0xF0FF, 0xF029, "LD", "op_ld_font"),
    Instruction(0xF0FF, 0xF033, "LD", "op_ld_bcd"),
    Instruction(0xF0FF, 0xF055, "LD", "op_store_registers"),
    Instruction(0xF0FF, 0xF065, "LD", "op_load_registers"),
)


OPCODE_TABLE: FrozenOpcodeTable = build_instruction_table(DEFAULT_INSTRUCTIONS)


__all__ = [
    "Instruction",
    "OpcodeTable",
    "FrozenOpcodeTable",
    "build_instruction_table",
    "DEFAULT_INSTRUCTIONS",
    "OPCODE_TABLE",
]
