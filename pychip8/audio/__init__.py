"""Audio output for the CHIP-8 tone signal."""

from __future__ import annotations

from .beeper import SquareWaveBeeper, TerminalBell

__all__ = ["SquareWaveBeeper", "TerminalBell"]
