"""CHIP-8 virtual machine interpreter.

The interpreter core lives in :mod:`pychip8.cpu`; the remaining subpackages
provide program loading, keypad input, rendering, audio and the pygame
frontend used by ``run.py``.
"""

from __future__ import annotations

from . import audio, cpu, io, loader, system, ui, utils, video

__all__: list[str] = [
    "cpu",
    "system",
    "video",
    "audio",
    "io",
    "loader",
    "ui",
    "utils",
]
