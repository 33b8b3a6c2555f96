"""Chip8App wiring checks that do not need a display."""

from __future__ import annotations

import sys
from types import SimpleNamespace

import pytest

from pychip8.cpu.core import MAX_PROGRAM_SIZE
from pychip8.ui.app import AppConfig, Chip8App


def _app(tmp_path, **kwargs) -> Chip8App:
    rom_path = tmp_path / "game.ch8"
    rom_path.write_bytes(b"\x12\x00")
    return Chip8App(AppConfig(rom_path=rom_path, seed=7, **kwargs))


def test_app_load_program(tmp_path) -> None:
    app = _app(tmp_path)
    machine = app._create_machine()

    program = app._load_program(machine, tmp_path / "game.ch8")

    assert program.name == "game"
    assert machine.memory[0x200:0x202] == b"\x12\x00"


@pytest.mark.parametrize(
    "payload",
    [None, b"", bytes(MAX_PROGRAM_SIZE + 1)],
    ids=["missing", "empty", "oversized"],
)
def test_app_load_program_errors(tmp_path, payload) -> None:
    app = _app(tmp_path)
    machine = app._create_machine()
    path = tmp_path / "broken.ch8"
    if payload is not None:
        path.write_bytes(payload)

    with pytest.raises(RuntimeError):
        app._load_program(machine, path)


def test_app_rejects_non_positive_rates(tmp_path) -> None:
    with pytest.raises(ValueError):
        _app(tmp_path, cycles_per_second=0)
    with pytest.raises(ValueError):
        _app(tmp_path, frame_rate=0)


def test_cycles_for_frame_carries_fractions(tmp_path) -> None:
    app = _app(tmp_path)
    frames = [app._cycles_for_frame() for _ in range(60)]

    assert sum(frames) == 500
    assert set(frames) <= {8, 9}


def test_tone_callback_counts_pulses(tmp_path) -> None:
    app = _app(tmp_path)
    machine = app._create_machine()
    app._load_program(machine, tmp_path / "game.ch8")

    app._handle_tone()
    app._handle_tone()

    assert app._tone_count == 2


def test_key_names_reach_machine(tmp_path) -> None:
    app = _app(tmp_path)
    machine = app._create_machine()

    app._handle_key_name("w", pressed=True)
    assert machine.keys[0x5] is True

    app._handle_key_name("w", pressed=False)
    assert machine.keys[0x5] is False


def test_step_machine_runs_requested_cycles(tmp_path) -> None:
    app = _app(tmp_path)
    machine = app._create_machine()
    app._load_program(machine, tmp_path / "game.ch8")

    assert app._step_machine(machine, 9) == 9
    assert machine.pc == 0x200


def test_step_machine_reports_faults(tmp_path) -> None:
    app = _app(tmp_path)
    machine = app._create_machine()
    machine.load(b"\x00\xEE")

    with pytest.raises(RuntimeError, match="pc="):
        app._step_machine(machine, 1)


def test_focus_loss_releases_machine_keys(tmp_path) -> None:
    app = _app(tmp_path)
    machine = app._create_machine()
    app._handle_key_name("w", pressed=True)

    app._keypad.reset()

    assert not any(machine.keys)


class _FakeSink:
    def __init__(self) -> None:
        self.closed = False

    def pulse(self) -> None:
        pass

    def shutdown(self) -> None:
        self.closed = True


def _fake_pygame(calls: list[str]):
    return SimpleNamespace(
        FULLSCREEN=1,
        init=lambda: calls.append("init"),
        quit=lambda: calls.append("quit"),
        mixer=SimpleNamespace(pre_init=lambda *args: None),
        display=SimpleNamespace(
            set_caption=lambda title: calls.append(f"caption:{title}"),
            set_mode=lambda size, flags: object(),
        ),
    )


def test_run_shuts_down_when_the_loop_fails(tmp_path, monkeypatch) -> None:
    calls: list[str] = []
    sink = _FakeSink()
    monkeypatch.setitem(sys.modules, "pygame", _fake_pygame(calls))
    app = _app(tmp_path)
    monkeypatch.setattr(app, "_create_tone_sink", lambda pygame: sink)

    def failing_loop(*args) -> None:
        raise RuntimeError("Machine fault at pc=200: boom")

    monkeypatch.setattr(app, "_run_loop", failing_loop)

    with pytest.raises(RuntimeError, match="boom"):
        app.run()

    assert sink.closed
    assert calls == ["init", "caption:CHIP-8 - game", "quit"]
    assert app._running is False


def test_dump_memory_reads_hex_arguments(tmp_path, capsys) -> None:
    app = _app(tmp_path)
    machine = app._create_machine()
    machine.memory[0x200:0x204] = b"\xDE\xAD\xBE\xEF"

    app._dump_memory(machine, "200 4")

    assert capsys.readouterr().out == "200: DE AD BE EF\n"


def test_dump_memory_clamps_negative_start(tmp_path, capsys) -> None:
    app = _app(tmp_path)
    machine = app._create_machine()

    app._dump_memory(machine, "-5 10")

    lines = capsys.readouterr().out.splitlines()
    assert lines[0].startswith("000: F0 90 90 90 F0")
    assert len(lines) == 1


def test_dump_memory_rejects_garbage(tmp_path, capsys) -> None:
    app = _app(tmp_path)
    machine = app._create_machine()

    app._dump_memory(machine, "zz")

    assert "Usage" in capsys.readouterr().out


def test_dump_cpu_shows_keys_and_program(tmp_path, capsys) -> None:
    app = _app(tmp_path)
    machine = app._create_machine()
    app._program = app._load_program(machine, tmp_path / "game.ch8")
    app._handle_key_name("v", pressed=True)

    app._dump_cpu(machine)

    out = capsys.readouterr().out
    assert "Keys: " + "." * 15 + "F" in out
    assert "Program: game 200-201 (2 bytes)" in out


def test_fault_is_recorded_in_trace(tmp_path, monkeypatch) -> None:
    from pychip8.utils.debug import ENV_VARIABLE, reload_categories

    monkeypatch.setenv(ENV_VARIABLE, "trace")
    reload_categories()
    try:
        app = _app(tmp_path)
        machine = app._create_machine()
        machine.load(b"\x00\xEE")

        with pytest.raises(RuntimeError):
            app._step_machine(machine, 1)

        entries = list(app._trace_recorder.entries())
        assert entries[-1].note == "fault:StackUnderflowError"
    finally:
        monkeypatch.delenv(ENV_VARIABLE)
        reload_categories()
