"""Minimal SGR styling.

A ``Style`` is a callable ``str -> str`` so it slots into theme dataclasses
wherever a styling function is expected.
"""

from __future__ import annotations

from dataclasses import dataclass

RESET = "\x1b[0m"


@dataclass(frozen=True)
class Style:
    """Foreground/background colour (ANSI 0-15) plus bold."""

    fg: int | None = None
    bg: int | None = None
    bold: bool = False

    def _codes(self) -> list[str]:
        codes: list[str] = []
        if self.bold:
            codes.append("1")
        if self.fg is not None:
            codes.append(_colour(self.fg, background=False))
        if self.bg is not None:
            codes.append(_colour(self.bg, background=True))
        return codes

    def __call__(self, text: str) -> str:
        if not text:
            return text
        codes = self._codes()
        if not codes:
            return text
        return f"\x1b[{';'.join(codes)}m{text}{RESET}"


def _colour(index: int, *, background: bool) -> str:
    if 0 <= index <= 7:
        return str((40 if background else 30) + index)
    if 8 <= index <= 15:
        return str((100 if background else 90) + index - 8)
    return f"{48 if background else 38};5;{index}"


def plain(text: str) -> str:
    """Identity style."""
    return text
