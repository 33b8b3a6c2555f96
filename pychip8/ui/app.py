"""Pygame frontend for the CHIP-8 interpreter."""

from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from pychip8.audio import SquareWaveBeeper, TerminalBell
from pychip8.cpu import CapacityError, Machine, MachineError
from pychip8.cpu.core import DISPLAY_HEIGHT, DISPLAY_WIDTH
from pychip8.io import Keypad
from pychip8.loader import ProgramImage, RomFormatError, load_rom_from_path
from pychip8.system import MachineConfig, create_machine
from pychip8.utils import TraceRecorder, debug_enabled, debug_log
from pychip8.video import DEFAULT_PALETTE, Renderer
from pychip8.video.palette import RGBColor


@dataclass
class AppConfig:
    """Configuration for the CHIP-8 frontend."""

    rom_path: Optional[Path] = None
    scale: int = 10
    fullscreen: bool = False
    cycles_per_second: int = 500
    frame_rate: int = 60
    palette: Sequence[RGBColor] = DEFAULT_PALETTE
    enable_audio: bool = True
    seed: Optional[int] = None


class Chip8App:
    """Thin wrapper around the pygame event loop."""

    def __init__(self, config: AppConfig) -> None:
        if config.cycles_per_second <= 0:
            raise ValueError("cycles_per_second must be positive")
        if config.frame_rate <= 0:
            raise ValueError("frame_rate must be positive")
        self._config = config
        self._running = False
        self._keypad = Keypad()
        self._keypad.add_listener(self._on_keypad_change)
        self._machine: Machine | None = None
        self._program: ProgramImage | None = None
        self._tone_sink = None
        self._tone_count = 0
        self._cycle_credit = 0.0
        self._perf_enabled = debug_enabled("perf")
        self._perf_frame = 0
        self._pygame = None
        self._trace_recorder: TraceRecorder | None = None
        if debug_enabled("trace"):
            self._trace_recorder = TraceRecorder(512)

    def run(self) -> None:
        try:
            import pygame  # type: ignore
        except Exception as exc:  # pragma: no cover - optional dependency
            raise RuntimeError("pygame is required to run the UI") from exc

        if not self._config.rom_path:
            raise RuntimeError("Program image is required; pass a ROM path")

        machine = self._create_machine()
        self._program = self._load_program(machine, self._config.rom_path)

        pygame.mixer.pre_init(44_100, -16, 1, 512)
        pygame.init()
        title = f"CHIP-8 - {self._program.name}" if self._program.name else "CHIP-8"
        pygame.display.set_caption(title)
        self._pygame = pygame
        self._tone_sink = self._create_tone_sink(pygame)

        renderer = Renderer(self._config.palette)
        surface_size = (DISPLAY_WIDTH * self._config.scale, DISPLAY_HEIGHT * self._config.scale)
        flags = pygame.FULLSCREEN if self._config.fullscreen else 0
        screen = pygame.display.set_mode(surface_size, flags)

        self._running = True
        try:
            self._run_loop(pygame, machine, renderer, screen)
        finally:
            self._running = False
            if self._tone_sink is not None:
                self._tone_sink.shutdown()
            pygame.quit()

    def _run_loop(self, pygame, machine: Machine, renderer: Renderer, screen) -> None:
        clock = pygame.time.Clock()
        while self._running:
            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    self._running = False
                elif event.type == pygame.WINDOWFOCUSLOST:
                    # Held keys get no KEYUP once focus is gone.
                    self._keypad.reset()
                elif event.type == pygame.KEYDOWN and event.key == pygame.K_ESCAPE:
                    self._enter_debug_shell(machine)
                elif event.type == pygame.KEYDOWN:
                    self._handle_key_event(pygame, event.key, pressed=True)
                elif event.type == pygame.KEYUP:
                    self._handle_key_event(pygame, event.key, pressed=False)

            frame_start_time = time.perf_counter()
            executed = self._step_machine(machine, self._cycles_for_frame())

            frame = renderer.render(machine.display, scale=self._config.scale)
            screen.blit(frame.to_surface(), (0, 0))
            pygame.display.flip()

            frame_duration = time.perf_counter() - frame_start_time
            if self._perf_enabled and frame_duration > 0:
                self._perf_frame += 1
                debug_log(
                    "perf",
                    "frame=%d steps=%d frame_ms=%.3f effective_hz=%.1f",
                    self._perf_frame,
                    executed,
                    frame_duration * 1000.0,
                    executed / frame_duration,
                )

            clock.tick(self._config.frame_rate)

    # ------------------------------------------------------------------
    # Machine wiring

    def _create_machine(self) -> Machine:
        observer = self._trace_recorder.record_step if self._trace_recorder is not None else None
        machine = create_machine(
            MachineConfig(
                seed=self._config.seed,
                tone_callback=self._handle_tone,
                observer=observer,
            )
        )
        self._keypad.apply_to(machine)
        self._machine = machine
        return machine

    def _load_program(self, machine: Machine, program_path: Path) -> ProgramImage:
        try:
            return load_rom_from_path(program_path, machine)
        except FileNotFoundError as exc:
            raise RuntimeError(f"Program file not found: {program_path}") from exc
        except CapacityError as exc:
            raise RuntimeError(f"Program {program_path} does not fit in memory: {exc}") from exc
        except RomFormatError as exc:
            raise RuntimeError(f"Failed to load program {program_path}: {exc}") from exc

    def _cycles_for_frame(self) -> int:
        """Return how many steps the next frame owes, carrying fractions forward."""

        self._cycle_credit += self._config.cycles_per_second / self._config.frame_rate
        cycles = int(self._cycle_credit)
        self._cycle_credit -= cycles
        return cycles

    def _step_machine(self, machine: Machine, cycles: int) -> int:
        executed = 0
        try:
            while executed < cycles:
                machine.step()
                executed += 1
        except MachineError as exc:
            self._running = False
            if self._trace_recorder is not None:
                self._trace_recorder.record_step(
                    machine, machine.current_opcode, note=f"fault:{type(exc).__name__}"
                )
                self._trace_recorder.dump("trace", limit=32)
            raise RuntimeError(f"Machine fault at pc={machine.pc:03X}: {exc}") from exc
        return executed

    def _create_tone_sink(self, pygame):
        if not self._config.enable_audio:
            return None
        mixer_state = pygame.mixer.get_init()
        if mixer_state is None:
            try:
                pygame.mixer.init(44_100, -16, 1)
            except pygame.error as exc:  # pragma: no cover - best-effort path
                if debug_enabled("audio"):
                    debug_log("audio", "mixer_init_failed=%s", exc)
            mixer_state = pygame.mixer.get_init()
        if mixer_state is None:
            if debug_enabled("audio"):
                debug_log("audio", "mixer_unavailable fallback=bell")
            return TerminalBell()
        try:
            return SquareWaveBeeper(sample_rate=mixer_state[0])
        except RuntimeError as exc:
            if debug_enabled("audio"):
                debug_log("audio", "beeper_init_failed=%s fallback=bell", exc)
            return TerminalBell()

    def _handle_tone(self) -> None:
        self._tone_count += 1
        if debug_enabled("audio"):
            debug_log("audio", "tone count=%d", self._tone_count)
        if self._tone_sink is not None:
            self._tone_sink.pulse()

    # ------------------------------------------------------------------
    # Input

    def _handle_key_event(self, pygame, key_code: int, *, pressed: bool) -> None:
        name = pygame.key.name(key_code)
        if debug_enabled("input"):
            debug_log("input", "event=%s pressed=%s", name, pressed)
        self._handle_key_name(name, pressed=pressed)

    def _handle_key_name(self, name: str, *, pressed: bool) -> None:
        if pressed:
            self._keypad.press(name)
        else:
            self._keypad.release(name)

    def _on_keypad_change(self, index: int, pressed: bool) -> None:
        if debug_enabled("input"):
            debug_log("input", "keypad key=%X pressed=%s", index, pressed)
        if self._machine is not None:
            self._keypad.apply_to(self._machine)

    # ------------------------------------------------------------------
    # Debug shell

    def _enter_debug_shell(self, machine: Machine) -> None:
        print("\n=== CHIP-8 Debug Menu ===")
        print("Enter command: [c]pu, [m]em, [d]isplay, [t]race, [q]uit, [Enter] resume")

        paused = True
        while paused and self._running:
            try:
                command = input("debug> ").strip().lower()
            except (EOFError, KeyboardInterrupt):
                print("Resuming emulator.")
                break

            if command == "" or command in {"resume"}:
                paused = False
            elif command in {"c", "cpu"}:
                self._dump_cpu(machine)
            elif command in {"d", "display"}:
                self._dump_display(machine)
            elif command in {"t", "trace"}:
                self._dump_trace()
            elif command.startswith("m"):
                spec = command.split(maxsplit=1)[1] if " " in command else ""
                self._dump_memory(machine, spec if spec else None)
            elif command in {"q", "quit", "exit"}:
                print("Exiting emulator.")
                self._running = False
                paused = False
            else:
                print("Commands: [Enter]=resume, [c]pu, [m]em, [d]isplay, [t]race, [q]uit")

        if self._pygame is not None:
            self._pygame.event.clear()

    def _dump_cpu(self, machine: Machine) -> None:
        print(
            "PC={:03X} I={:03X} SP={:X} DT={:02X} ST={:02X} OP={:04X}".format(
                machine.pc,
                machine.i,
                machine.sp,
                machine.delay_timer,
                machine.sound_timer,
                machine.current_opcode,
            )
        )
        print(" ".join(f"V{index:X}={value:02X}" for index, value in enumerate(machine.v)))
        stack = " ".join(f"{address:03X}" for address in machine.stack[: machine.sp])
        print(f"Stack: {stack or '-'}")
        held = self._keypad.snapshot()
        keys = "".join(f"{index:X}" if down else "." for index, down in enumerate(held))
        print(f"Keys: {keys}")
        if self._program is not None:
            print(
                f"Program: {self._program.name or '-'} "
                f"{self._program.origin:03X}-{self._program.end:03X} ({self._program.length} bytes)"
            )

    def _dump_display(self, machine: Machine) -> None:
        for row in machine.display_rows():
            print("".join("#" if cell else "." for cell in row))

    def _dump_trace(self, limit: int = 64) -> None:
        if self._trace_recorder is None:
            print("Trace recorder is disabled. Set CHIP8_DEBUG=trace to enable it.")
            return
        lines = list(self._trace_recorder.format_entries(limit))
        if not lines:
            print("Trace buffer is empty.")
            return
        print("Last trace entries:")
        for line in lines:
            print(f"  {line}")

    def _dump_memory(self, machine: Machine, spec: str | None = None) -> None:
        """Hex dump memory. Both arguments are hexadecimal, with or without ``0x``."""

        length = 0x80
        if spec:
            parts = spec.split()
            try:
                start = int(parts[0], 16)
                if len(parts) > 1:
                    length = int(parts[1], 16)
            except ValueError:
                print("Usage: m [start_hex] [length_hex]")
                return
        else:
            start = machine.pc & 0x0FF0

        if length <= 0:
            print("Length must be positive.")
            return

        start = min(max(start, 0), len(machine.memory) - 1)
        end = min(start + length, len(machine.memory))
        for addr in range(start, end, 16):
            chunk = machine.memory[addr : min(addr + 16, end)]
            hex_part = " ".join(f"{value:02X}" for value in chunk)
            print(f"{addr:03X}: {hex_part}")
