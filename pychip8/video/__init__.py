"""Video rendering helpers for the CHIP-8 interpreter."""

from __future__ import annotations

from .palette import DEFAULT_PALETTE, MONOCHROME, validate_palette
from .renderer import RenderResult, Renderer

__all__ = [
    "Renderer",
    "RenderResult",
    "DEFAULT_PALETTE",
    "MONOCHROME",
    "validate_palette",
]
