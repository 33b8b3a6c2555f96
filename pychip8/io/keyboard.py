"""Hexadecimal keypad state and the physical key translation table."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, Mapping

from pychip8.utils import debug_enabled, debug_log


# Octo convention:
#
#   1 2 3 4        1 2 3 C
#   q w e r   ->   4 5 6 D
#   a s d f        7 8 9 E
#   z x c v        A 0 B F
KEYPAD_LAYOUT: Mapping[str, int] = {
    "1": 0x1,
    "2": 0x2,
    "3": 0x3,
    "4": 0xC,
    "q": 0x4,
    "w": 0x5,
    "e": 0x6,
    "r": 0xD,
    "a": 0x7,
    "s": 0x8,
    "d": 0x9,
    "f": 0xE,
    "z": 0xA,
    "x": 0x0,
    "c": 0xB,
    "v": 0xF,
}


ALIAS_TABLE: Mapping[str, str] = {
    "[1]": "1",
    "[2]": "2",
    "[3]": "3",
    "[4]": "4",
}


@dataclass
class Keypad:
    """Sixteen-key hexadecimal keypad."""

    _state: list[bool] = field(default_factory=lambda: [False] * 16)
    _active: Dict[int, int] = field(default_factory=dict)
    _listeners: list[Callable[[int, bool], None]] = field(default_factory=list)

    def press(self, key_name: str) -> None:
        index = self._lookup(key_name)
        if index is None:
            if debug_enabled("input"):
                debug_log("input", "unmapped_press=%s", key_name)
            return
        before = self._state[index]
        self._state[index] = True
        self._active[index] = self._active.get(index, 0) + 1
        if debug_enabled("input"):
            debug_log("input", "key_press key=%X", index)
        if not before:
            self._notify_listeners(index, True)

    def release(self, key_name: str) -> None:
        index = self._lookup(key_name)
        if index is None:
            if debug_enabled("input"):
                debug_log("input", "unmapped_release=%s", key_name)
            return
        count = self._active.get(index, 0)
        before = self._state[index]
        if count <= 1:
            self._state[index] = False
            self._active.pop(index, None)
        else:
            self._active[index] = count - 1
        if debug_enabled("input"):
            debug_log("input", "key_release key=%X count=%d", index, self._active.get(index, 0))
        if before and not self._state[index]:
            self._notify_listeners(index, False)

    def reset(self) -> None:
        """Release every key, notifying listeners for keys that were down."""

        released = [index for index, down in enumerate(self._state) if down]
        self._state[:] = [False] * len(self._state)
        self._active.clear()
        for index in released:
            self._notify_listeners(index, False)

    def snapshot(self) -> tuple[bool, ...]:
        return tuple(self._state)

    def apply_to(self, machine) -> None:
        """Copy the keypad state into ``machine.keys``."""

        machine.keys[:] = self._state

    def add_listener(self, listener: Callable[[int, bool], None]) -> None:
        self._listeners.append(listener)

    def _lookup(self, key_name: str) -> int | None:
        name = key_name.lower()
        name = ALIAS_TABLE.get(name, name)
        return KEYPAD_LAYOUT.get(name)

    def _notify_listeners(self, index: int, pressed: bool) -> None:
        for listener in tuple(self._listeners):
            listener(index, pressed)
