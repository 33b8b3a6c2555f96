"""Input helpers for the CHIP-8 interpreter."""

from __future__ import annotations

from .keyboard import KEYPAD_LAYOUT, Keypad

__all__ = ["KEYPAD_LAYOUT", "Keypad"]
