"""Lightweight execution trace buffer for diagnostics."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Sequence

from .debug import debug_log


@dataclass
class TraceEntry:
    pc: int
    opcode: int | None
    mnemonic: str
    v: tuple[int, ...]
    i: int
    sp: int
    dt: int
    st: int
    drew: bool
    lit_pixels: int = 0
    note: str = ""


class TraceRecorder:
    """Ring buffer that stores recent machine snapshots.

    ``record_step`` matches the machine's step observer signature, so a
    recorder can be installed directly as ``MachineConfig.observer``.
    """

    def __init__(self, capacity: int = 256) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._capacity = capacity
        self._entries: List[TraceEntry | None] = [None] * capacity
        self._index = 0
        self._size = 0

    def record_step(
        self,
        state,
        opcode: int | None,
        mnemonic: str = "",
        display: bytes | None = None,
        *,
        note: str = "",
    ) -> None:
        entry = TraceEntry(
            pc=state.pc & 0xFFFF,
            opcode=None if opcode is None else opcode & 0xFFFF,
            mnemonic=mnemonic,
            v=tuple(value & 0xFF for value in state.v),
            i=state.i & 0xFFFF,
            sp=state.sp & 0xFF,
            dt=state.delay_timer & 0xFF,
            st=state.sound_timer & 0xFF,
            drew=display is not None,
            lit_pixels=sum(display) if display is not None else 0,
            note=note,
        )
        self._append(entry)

    def entries(self, limit: int | None = None) -> Iterable[TraceEntry]:
        count = self._size if limit is None else min(self._size, max(limit, 0))
        for offset in range(count):
            index = (self._index - count + offset) % self._capacity
            entry = self._entries[index]
            if entry is not None:
                yield entry

    def format_entries(self, limit: int | None = None) -> Sequence[str]:
        lines: list[str] = []
        for entry in self.entries(limit):
            opcode = "----" if entry.opcode is None else f"{entry.opcode:04X}"
            mnemonic = entry.mnemonic or "?"
            flags: list[str] = []
            if entry.drew:
                flags.append(f"DRAW({entry.lit_pixels})")
            if entry.note:
                flags.append(entry.note)
            flag_repr = ",".join(flags) if flags else "-"
            registers = " ".join(f"{value:02X}" for value in entry.v)
            line = (
                f"pc={entry.pc:04X} opcode={opcode} {mnemonic:<4} "
                f"I={entry.i:04X} SP={entry.sp:02X} DT={entry.dt:02X} ST={entry.st:02X} "
                f"V=[{registers}] flags={flag_repr}"
            )
            lines.append(line)
        return lines

    def dump(self, category: str, limit: int | None = None) -> None:
        for line in self.format_entries(limit):
            debug_log(category, line)

    def _append(self, entry: TraceEntry) -> None:
        self._entries[self._index] = entry
        self._index = (self._index + 1) % self._capacity
        if self._size < self._capacity:
            self._size += 1
