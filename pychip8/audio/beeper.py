"""Tone sinks for the sound timer."""

from __future__ import annotations

import sys
from array import array
from typing import Optional, TextIO

from pychip8.cpu.timers import TIMER_PERIOD


class SquareWaveBeeper:
    """Play a short square-wave burst per tone event using pygame's mixer."""

    def __init__(
        self,
        *,
        sample_rate: int = 44_100,
        frequency: float = 440.0,
        volume: float = 0.35,
    ) -> None:
        try:
            import pygame  # type: ignore
        except Exception as exc:  # pragma: no cover - optional dependency
            raise RuntimeError("pygame is required for audio output") from exc

        if pygame.mixer.get_init() is None:
            raise RuntimeError("pygame mixer must be initialised before creating SquareWaveBeeper")

        self._pygame = pygame
        self._sample_rate = max(1, sample_rate)
        self._frequency = max(1.0, frequency)
        self._volume = max(0.0, min(1.0, volume))
        # One timer period of sound per decrement keeps consecutive ticks contiguous.
        self._burst_ms = max(1, int(round(TIMER_PERIOD * 1000)) + 1)
        self._sound: Optional[pygame.mixer.Sound] = self._build_sound()
        self._channel: Optional[pygame.mixer.Channel] = None

    # ------------------------------------------------------------------
    # Public API

    def pulse(self) -> None:
        """Sound (or extend) the tone for one timer period."""

        if self._sound is None:
            return
        channel = self._channel
        if channel is None or not channel.get_busy():
            channel = self._pygame.mixer.find_channel(True)
            if channel is None:
                return
            self._channel = channel
        channel.play(self._sound, loops=-1, maxtime=self._burst_ms)
        channel.set_volume(self._volume)

    def shutdown(self) -> None:
        """Stop any active tone and release resources."""

        if self._channel is not None:
            self._channel.stop()
        self._channel = None
        self._sound = None

    # ------------------------------------------------------------------
    # Internals

    def _build_sound(self) -> Optional["pygame.mixer.Sound"]:
        period_samples = max(2, int(round(self._sample_rate / self._frequency)))
        half = period_samples // 2
        amplitude = 12_000

        buffer = array("h")
        for index in range(period_samples):
            buffer.append(amplitude if index < half else -amplitude)

        try:
            return self._pygame.mixer.Sound(buffer=buffer.tobytes())
        except self._pygame.error:  # pragma: no cover - pygame error path
            return None


class TerminalBell:
    """Fallback tone sink that rings the terminal bell."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream if stream is not None else sys.stdout

    def pulse(self) -> None:
        self._stream.write("\a")
        self._stream.flush()

    def shutdown(self) -> None:
        return None


__all__ = ["SquareWaveBeeper", "TerminalBell"]
