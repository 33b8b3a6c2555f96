"""Program metadata structures for CHIP-8 loaders."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ProgramImage:
    """Holds metadata about a program image copied into memory."""

    name: str = ""
    origin: int = 0
    length: int = 0

    @property
    def end(self) -> int:
        """Last address occupied by the image."""

        return self.origin + self.length - 1
