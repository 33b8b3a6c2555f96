"""Core CHIP-8 interpreter: machine state and the fetch-decode-execute cycle."""

from __future__ import annotations

import random
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from pychip8.utils import debug_enabled, debug_log

from .font import FONT_BASE, FONT_SET, GLYPH_BYTES
from .opcodes import OPCODE_TABLE, FrozenOpcodeTable, Instruction
from .timers import Clock, DecayTimer, default_clock


class MachineError(Exception):
    """Base error for interpreter failures."""


class CapacityError(MachineError):
    """Raised when a program image does not fit in memory."""


class StackOverflowError(MachineError):
    """Raised when a call is made with the return stack already full."""


class StackUnderflowError(MachineError):
    """Raised when a return is executed with an empty return stack."""


MEMORY_SIZE = 0x1000
ADDRESS_MASK = 0x0FFF
PROGRAM_START = 0x200
MAX_PROGRAM_SIZE = MEMORY_SIZE - PROGRAM_START
REGISTER_COUNT = 16
STACK_DEPTH = 16
KEY_COUNT = 16
DISPLAY_WIDTH = 64
DISPLAY_HEIGHT = 32
DISPLAY_SIZE = DISPLAY_WIDTH * DISPLAY_HEIGHT
FLAG_REGISTER = 0xF
SPRITE_WIDTH = 8

ToneCallback = Callable[[], None]
StepObserver = Callable[["Machine", int, str, Optional[bytes]], None]


def _x(opcode: int) -> int:
    return (opcode >> 8) & 0x0F


def _y(opcode: int) -> int:
    return (opcode >> 4) & 0x0F


def _kk(opcode: int) -> int:
    return opcode & 0x00FF


def _nnn(opcode: int) -> int:
    return opcode & 0x0FFF


def _n(opcode: int) -> int:
    return opcode & 0x000F


@dataclass
class Machine:
    """CHIP-8 machine state together with the instruction handlers.

    ``clock`` returns seconds from a monotonic source and drives the timers.
    ``tone_callback`` fires once per sound-timer decrement. ``observer`` is
    called after every step with the opcode, its mnemonic and, for draw
    instructions, a copy of the display.
    """

    clock: Clock = default_clock
    rng: random.Random = field(default_factory=random.Random)
    seed: int | None = None
    tone_callback: ToneCallback | None = None
    observer: StepObserver | None = None
    instruction_table: FrozenOpcodeTable = field(default=OPCODE_TABLE)

    memory: bytearray = field(init=False, repr=False)
    v: bytearray = field(init=False)
    i: int = field(init=False, default=0)
    pc: int = field(init=False, default=PROGRAM_START)
    stack: list[int] = field(init=False)
    sp: int = field(init=False, default=0)
    display: bytearray = field(init=False, repr=False)
    keys: list[bool] = field(init=False)
    current_opcode: int = field(init=False, default=0)
    delay: DecayTimer = field(init=False)
    sound: DecayTimer = field(init=False)

    def __post_init__(self) -> None:
        self.reset()

    # ------------------------------------------------------------------
    # Lifecycle

    def reset(self) -> None:
        """Clear all state, install the font and reseed the random source."""

        now = self.clock()
        self.memory = bytearray(MEMORY_SIZE)
        self.v = bytearray(REGISTER_COUNT)
        self.i = 0
        self.pc = PROGRAM_START
        self.stack = [0] * STACK_DEPTH
        self.sp = 0
        self.display = bytearray(DISPLAY_SIZE)
        self.keys = [False] * KEY_COUNT
        self.current_opcode = 0
        self.delay = DecayTimer(0, now)
        self.sound = DecayTimer(0, now)
        self.load_font()
        self.rng.seed(self.seed if self.seed is not None else time.time_ns())

    def load_font(self) -> None:
        self.memory[FONT_BASE : FONT_BASE + len(FONT_SET)] = FONT_SET

    def load(self, data: bytes, origin: int = PROGRAM_START) -> None:
        """Copy ``data`` verbatim into memory starting at ``origin``."""

        payload = bytes(data)
        end = origin + len(payload)
        if origin < 0 or end > MEMORY_SIZE:
            raise CapacityError(
                f"program of {len(payload)} bytes at {origin:#05x} exceeds "
                f"{MEMORY_SIZE} bytes of memory"
            )
        self.memory[origin:end] = payload
        if debug_enabled("loader"):
            debug_log("loader", "loaded %d bytes at %03x", len(payload), origin)

    # ------------------------------------------------------------------
    # Timers

    @property
    def delay_timer(self) -> int:
        return self.delay.value

    @delay_timer.setter
    def delay_timer(self, value: int) -> None:
        self.delay.value = value & 0xFF

    @property
    def sound_timer(self) -> int:
        return self.sound.value

    @sound_timer.setter
    def sound_timer(self, value: int) -> None:
        self.sound.value = value & 0xFF

    @property
    def last_delay_tick(self) -> float:
        return self.delay.last_tick

    @property
    def last_sound_tick(self) -> float:
        return self.sound.last_tick

    def _update_timers(self) -> None:
        now = self.clock()
        if self.delay.tick(now) and debug_enabled("timer"):
            debug_log("timer", "delay=%d", self.delay.value)
        if self.sound.tick(now):
            if debug_enabled("timer"):
                debug_log("timer", "sound=%d tone", self.sound.value)
            if self.tone_callback is not None:
                self.tone_callback()

    # ------------------------------------------------------------------
    # Execution

    def step(self) -> None:
        """Fetch, decode and execute one instruction, then update the timers."""

        pc_before = self.pc
        opcode = self._fetch()
        self.current_opcode = opcode
        instruction = self._decode(opcode)
        mnemonic = "???" if instruction is None else instruction.mnemonic
        if debug_enabled("cpu"):
            debug_log("cpu", "pc=%03x opcode=%04x %s", pc_before, opcode, mnemonic)

        if instruction is None:
            self.op_nop(opcode)
        else:
            handler = getattr(self, instruction.handler)
            handler(opcode)

        self._update_timers()

        if self.observer is not None:
            snapshot = bytes(self.display) if instruction is not None and instruction.handler == "op_drw" else None
            self.observer(self, opcode, mnemonic, snapshot)

    def _fetch(self) -> int:
        address = self.pc & ADDRESS_MASK
        high = self.memory[address]
        low = self.memory[(address + 1) & ADDRESS_MASK]
        return (high << 8) | low

    def _decode(self, opcode: int) -> Instruction | None:
        return self.instruction_table.decode(opcode)

    def _advance(self) -> None:
        self.pc = (self.pc + 2) & 0xFFFF

    def _skip_if(self, condition: bool) -> None:
        self.pc = (self.pc + (4 if condition else 2)) & 0xFFFF

    # ------------------------------------------------------------------
    # Instruction handlers

    def op_nop(self, _: int) -> None:
        self._advance()

    def op_cls(self, _: int) -> None:
        self.display[:] = bytes(DISPLAY_SIZE)
        self._advance()

    def op_ret(self, _: int) -> None:
        if self.sp == 0:
            raise StackUnderflowError(f"return with empty stack at pc={self.pc:#05x}")
        self.sp -= 1
        self.pc = self.stack[self.sp]
        self._advance()

    def op_jp(self, opcode: int) -> None:
        self.pc = _nnn(opcode)

    def op_call(self, opcode: int) -> None:
        if self.sp >= STACK_DEPTH:
            raise StackOverflowError(f"call nesting exceeds {STACK_DEPTH} at pc={self.pc:#05x}")
        self.stack[self.sp] = self.pc
        self.sp += 1
        self.pc = _nnn(opcode)

    def op_se_byte(self, opcode: int) -> None:
        self._skip_if(self.v[_x(opcode)] == _kk(opcode))

    def op_sne_byte(self, opcode: int) -> None:
        self._skip_if(self.v[_x(opcode)] != _kk(opcode))

    def op_se_reg(self, opcode: int) -> None:
        self._skip_if(self.v[_x(opcode)] == self.v[_y(opcode)])

    def op_sne_reg(self, opcode: int) -> None:
        self._skip_if(self.v[_x(opcode)] != self.v[_y(opcode)])

    def op_ld_byte(self, opcode: int) -> None:
        self.v[_x(opcode)] = _kk(opcode)
        self._advance()

    def op_add_byte(self, opcode: int) -> None:
        x = _x(opcode)
        self.v[x] = (self.v[x] + _kk(opcode)) & 0xFF
        self._advance()

    def op_ld_reg(self, opcode: int) -> None:
        self.v[_x(opcode)] = self.v[_y(opcode)]
        self._advance()

    def op_or(self, opcode: int) -> None:
        self.v[_x(opcode)] |= self.v[_y(opcode)]
        self._advance()

    def op_and(self, opcode: int) -> None:
        self.v[_x(opcode)] &= self.v[_y(opcode)]
        self._advance()

    def op_xor(self, opcode: int) -> None:
        self.v[_x(opcode)] ^= self.v[_y(opcode)]
        self._advance()

    # The flag is written after the result so VF as a destination keeps the flag.

    def op_add_reg(self, opcode: int) -> None:
        x = _x(opcode)
        total = self.v[x] + self.v[_y(opcode)]
        self.v[x] = total & 0xFF
        self.v[FLAG_REGISTER] = 1 if total > 0xFF else 0
        self._advance()

    def op_sub(self, opcode: int) -> None:
        x = _x(opcode)
        minuend = self.v[x]
        subtrahend = self.v[_y(opcode)]
        self.v[x] = (minuend - subtrahend) & 0xFF
        self.v[FLAG_REGISTER] = 0 if minuend < subtrahend else 1
        self._advance()

    def op_subn(self, opcode: int) -> None:
        x = _x(opcode)
        minuend = self.v[_y(opcode)]
        subtrahend = self.v[x]
        self.v[x] = (minuend - subtrahend) & 0xFF
        self.v[FLAG_REGISTER] = 0 if minuend < subtrahend else 1
        self._advance()

    def op_shr(self, opcode: int) -> None:
        source = self.v[_y(opcode)]
        self.v[_x(opcode)] = source >> 1
        self.v[FLAG_REGISTER] = source & 0x01
        self._advance()

    def op_shl(self, opcode: int) -> None:
        source = self.v[_y(opcode)]
        self.v[_x(opcode)] = (source << 1) & 0xFF
        self.v[FLAG_REGISTER] = (source >> 7) & 0x01
        self._advance()

    def op_ld_i(self, opcode: int) -> None:
        self.i = _nnn(opcode)
        self._advance()

    def op_jp_v0(self, opcode: int) -> None:
        self.pc = (self.v[0] + _nnn(opcode)) & 0xFFFF

    def op_rnd(self, opcode: int) -> None:
        self.v[_x(opcode)] = self.rng.randrange(0x100) & _kk(opcode)
        self._advance()

    def op_drw(self, opcode: int) -> None:
        origin_x = self.v[_x(opcode)]
        origin_y = self.v[_y(opcode)]
        collision = 0
        for row in range(_n(opcode)):
            bits = self.memory[(self.i + row) & ADDRESS_MASK]
            for col in range(SPRITE_WIDTH):
                if not bits & (0x80 >> col):
                    continue
                # No horizontal wrap: an overflowing column spills into the next row.
                index = origin_x + col + (origin_y + row) * DISPLAY_WIDTH
                if index >= DISPLAY_SIZE:
                    continue
                if self.display[index]:
                    collision = 1
                self.display[index] ^= 1
        self.v[FLAG_REGISTER] = collision
        self._advance()

    def op_skp(self, opcode: int) -> None:
        self._skip_if(bool(self.keys[self.v[_x(opcode)] & 0x0F]))

    def op_sknp(self, opcode: int) -> None:
        self._skip_if(not self.keys[self.v[_x(opcode)] & 0x0F])

    def op_ld_vx_dt(self, opcode: int) -> None:
        self.v[_x(opcode)] = self.delay.value
        self._advance()

    def op_ld_vx_key(self, opcode: int) -> None:
        pressed = None
        for index in range(KEY_COUNT):
            if self.keys[index]:
                pressed = index
        if pressed is None:
            return
        self.v[_x(opcode)] = pressed
        self._advance()

    def op_ld_dt_vx(self, opcode: int) -> None:
        self.delay.load(self.v[_x(opcode)], self.clock())
        self._advance()

    def op_ld_st_vx(self, opcode: int) -> None:
        self.sound.load(self.v[_x(opcode)], self.clock())
        self._advance()

    def op_add_i(self, opcode: int) -> None:
        total = self.i + self.v[_x(opcode)]
        self.i = total & 0xFFFF
        self.v[FLAG_REGISTER] = 1 if total > ADDRESS_MASK else 0
        self._advance()

    def op_ld_font(self, opcode: int) -> None:
        self.i = FONT_BASE + self.v[_x(opcode)] * GLYPH_BYTES
        self._advance()

    def op_ld_bcd(self, opcode: int) -> None:
        value = self.v[_x(opcode)]
        self.memory[self.i & ADDRESS_MASK] = value // 100
        self.memory[(self.i + 1) & ADDRESS_MASK] = (value // 10) % 10
        self.memory[(self.i + 2) & ADDRESS_MASK] = value % 10
        self._advance()

    def op_store_registers(self, opcode: int) -> None:
        for index in range(_x(opcode) + 1):
            self.memory[(self.i + index) & ADDRESS_MASK] = self.v[index]
        self._advance()

    def op_load_registers(self, opcode: int) -> None:
        for index in range(_x(opcode) + 1):
            self.v[index] = self.memory[(self.i + index) & ADDRESS_MASK]
        self._advance()

    # ------------------------------------------------------------------
    # Framebuffer helpers

    def pixel(self, x: int, y: int) -> int:
        return self.display[y * DISPLAY_WIDTH + x]

    def display_rows(self) -> list[bytes]:
        return [
            bytes(self.display[row * DISPLAY_WIDTH : (row + 1) * DISPLAY_WIDTH])
            for row in range(DISPLAY_HEIGHT)
        ]
