from types import SimpleNamespace

from pychip8.utils.trace import TraceRecorder


def _state(pc: int, **kwargs):
    defaults = {"v": bytes(16), "i": 0x000, "sp": 0, "delay_timer": 0, "sound_timer": 0}
    defaults.update(kwargs)
    return SimpleNamespace(pc=pc, **defaults)


def test_trace_recorder_overwrites_old_entries():
    recorder = TraceRecorder(capacity=2)

    recorder.record_step(_state(0x200), 0x6005, "LD")
    recorder.record_step(_state(0x202, i=0x050), 0xA050, "LD")
    recorder.record_step(_state(0x204, sp=1), 0xD015, "DRW", bytes([1, 0, 1, 1]))

    lines = list(recorder.format_entries())
    assert len(lines) == 2
    assert "pc=0202" in lines[0]
    assert "I=0050" in lines[0]
    assert "pc=0204" in lines[1]
    assert "flags=DRAW(3)" in lines[1]


def test_trace_recorder_handles_empty_opcode():
    recorder = TraceRecorder(1)
    recorder.record_step(_state(0x300), None, note="fault")
    lines = list(recorder.format_entries())
    assert len(lines) == 1
    assert "opcode=----" in lines[0]
    assert "flags=fault" in lines[0]


def test_trace_recorder_works_as_machine_observer():
    from pychip8.cpu import Machine

    recorder = TraceRecorder(8)
    machine = Machine(seed=0, observer=recorder.record_step)
    machine.load(b"\x60\x07\x00\xE0")
    machine.step()
    machine.step()

    last = list(recorder.entries())[-1]
    assert last.opcode == 0x00E0
    assert last.mnemonic == "CLS"
    assert last.v[0] == 0x07
    assert len(list(recorder.entries())) == 2

