"""Framebuffer to RGB pixel conversion."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from pychip8.cpu.core import DISPLAY_HEIGHT, DISPLAY_WIDTH

from .palette import MONOCHROME, RGBColor, validate_palette


@dataclass
class RenderResult:
    """Packed RGB frame produced by :class:`Renderer`."""

    width: int
    height: int
    pixels: bytearray

    def get_pixel(self, x: int, y: int) -> RGBColor:
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"pixel ({x}, {y}) outside {self.width}x{self.height} frame")
        offset = (y * self.width + x) * 3
        return (self.pixels[offset], self.pixels[offset + 1], self.pixels[offset + 2])

    def to_surface(self):
        try:
            import pygame  # type: ignore
        except Exception as exc:  # pragma: no cover - optional dependency
            raise RuntimeError("pygame is required to build a surface") from exc
        return pygame.image.frombuffer(bytes(self.pixels), (self.width, self.height), "RGB")


class Renderer:
    """Expand the 64x32 one-bit framebuffer into scaled RGB pixels."""

    def __init__(self, palette: Sequence[RGBColor] = MONOCHROME) -> None:
        self._background, self._foreground = validate_palette(palette)

    def render(self, display: Sequence[int], *, scale: int = 1) -> RenderResult:
        if scale <= 0:
            raise ValueError("scale must be positive")
        if len(display) != DISPLAY_WIDTH * DISPLAY_HEIGHT:
            raise ValueError(
                f"display must hold {DISPLAY_WIDTH * DISPLAY_HEIGHT} cells, got {len(display)}")

        width = DISPLAY_WIDTH * scale
        height = DISPLAY_HEIGHT * scale
        background = bytes(self._background)
        foreground = bytes(self._foreground)
        pixels = bytearray()
        for row in range(DISPLAY_HEIGHT):
            line = bytearray()
            start = row * DISPLAY_WIDTH
            for cell in display[start : start + DISPLAY_WIDTH]:
                line += (foreground if cell else background) * scale
            pixels += bytes(line) * scale
        return RenderResult(width, height, pixels)
