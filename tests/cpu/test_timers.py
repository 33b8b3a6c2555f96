"""Tests for the wall-clock timer model."""

from __future__ import annotations

from pychip8.cpu import DecayTimer, Machine
from pychip8.cpu.timers import TIMER_PERIOD


class FakeClock:
    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_timer_machine(clock: FakeClock, register_value: int, set_opcode: int, tones: list[int] | None = None) -> Machine:
    machine = Machine(clock=clock, seed=0)
    if tones is not None:
        machine.tone_callback = lambda: tones.append(machine.sound_timer)
    program = [0x6000 | register_value, set_opcode, 0x1204]
    machine.load(b"".join(word.to_bytes(2, "big") for word in program))
    machine.step()
    machine.step()
    return machine


def test_decay_timer_waits_a_full_period() -> None:
    timer = DecayTimer()
    timer.load(2, 0.0)

    assert timer.tick(TIMER_PERIOD / 2) is False
    assert timer.value == 2
    assert timer.tick(TIMER_PERIOD) is True
    assert timer.value == 1
    assert timer.last_tick == TIMER_PERIOD


def test_decay_timer_stops_at_zero() -> None:
    timer = DecayTimer()
    timer.load(1, 0.0)

    assert timer.tick(1.0) is True
    assert timer.tick(2.0) is False
    assert timer.value == 0


def test_delay_timer_follows_wall_clock_not_steps() -> None:
    clock = FakeClock()
    machine = make_timer_machine(clock, 5, 0xF015)
    assert machine.delay_timer == 5

    steps = 0
    while machine.delay_timer > 0:
        clock.advance(0.001)
        machine.step()
        steps += 1
        assert steps < 1000

    elapsed = clock.now
    assert 5 / 60 <= elapsed <= 5 / 60 + 0.01
    assert steps > 5


def test_delay_timer_holds_without_elapsed_time() -> None:
    clock = FakeClock()
    machine = make_timer_machine(clock, 5, 0xF015)

    for _ in range(100):
        machine.step()

    assert machine.delay_timer == 5


def test_delay_timer_readable_by_program() -> None:
    clock = FakeClock()
    machine = make_timer_machine(clock, 9, 0xF015)
    clock.advance(TIMER_PERIOD * 1.5)
    machine.step()

    machine.memory[0x204:0x206] = (0xF307).to_bytes(2, "big")
    machine.step()

    assert machine.v[3] == 8


def test_loading_timer_resets_tick_timestamp() -> None:
    clock = FakeClock(10.0)
    machine = Machine(clock=clock, seed=0)
    clock.advance(5.0)
    machine.load(b"\x60\x03\xF0\x15\xF0\x18")
    machine.step()
    machine.step()
    assert machine.last_delay_tick == 15.0
    machine.step()
    assert machine.last_sound_tick == 15.0


def test_sound_timer_emits_one_tone_per_decrement() -> None:
    clock = FakeClock()
    tones: list[int] = []
    machine = make_timer_machine(clock, 3, 0xF018, tones)

    for _ in range(10):
        clock.advance(TIMER_PERIOD + 0.001)
        machine.step()

    assert machine.sound_timer == 0
    assert tones == [2, 1, 0]


def test_timers_keep_running_while_waiting_for_key() -> None:
    clock = FakeClock()
    machine = Machine(clock=clock, seed=0)
    machine.load(b"\x60\x02\xF0\x15\xF1\x0A")
    machine.step()
    machine.step()

    for _ in range(3):
        clock.advance(TIMER_PERIOD + 0.001)
        machine.step()

    assert machine.pc == 0x204
    assert machine.delay_timer == 0
