"""Deterministic prompt-to-color assignment.

Every user sees the same color for the same prompt, so the hash must be
reproducible bit-for-bit across processes and implementations: a ``* 31``
rolling hash over UTF-16 code units with 32-bit signed wraparound.
"""

from __future__ import annotations

from typing import Sequence

from ..core.errors import InvalidPaletteError

__all__ = [
    "HUNK_COLORS",
    "ColorAssigner",
    "get_color_index",
    "prompt_hash",
]

_UINT32_MASK = 0xFFFFFFFF
_INT32_MIN = -0x80000000

# 40 readable colors for AI hunks.
HUNK_COLORS: tuple[str, ...] = (
    "rgba(96, 165, 250, 0.8)",  # blue
    "rgba(167, 139, 250, 0.8)",  # purple
    "rgba(251, 146, 60, 0.8)",  # orange
    "rgba(244, 114, 182, 0.8)",  # pink
    "rgba(250, 204, 21, 0.8)",  # yellow
    "rgba(56, 189, 248, 0.8)",  # sky blue
    "rgba(249, 115, 22, 0.8)",  # deep orange
    "rgba(168, 85, 247, 0.8)",  # violet
    "rgba(236, 72, 153, 0.8)",  # hot pink
    "rgba(34, 197, 94, 0.8)",  # green
    "rgba(59, 130, 246, 0.8)",  # bright blue
    "rgba(139, 92, 246, 0.8)",  # purple violet
    "rgba(234, 179, 8, 0.8)",  # gold
    "rgba(236, 72, 85, 0.8)",  # red
    "rgba(20, 184, 166, 0.8)",  # teal
    "rgba(251, 191, 36, 0.8)",  # amber
    "rgba(192, 132, 252, 0.8)",  # light purple
    "rgba(147, 197, 253, 0.8)",  # light blue
    "rgba(252, 165, 165, 0.8)",  # light red
    "rgba(134, 239, 172, 0.8)",  # light green
    "rgba(253, 224, 71, 0.8)",  # bright yellow
    "rgba(165, 180, 252, 0.8)",  # indigo
    "rgba(253, 186, 116, 0.8)",  # light orange
    "rgba(249, 168, 212, 0.8)",  # light pink
    "rgba(94, 234, 212, 0.8)",  # cyan
    "rgba(199, 210, 254, 0.8)",  # pale indigo
    "rgba(254, 240, 138, 0.8)",  # pale yellow
    "rgba(191, 219, 254, 0.8)",  # pale blue
    "rgba(254, 202, 202, 0.8)",  # pale red
    "rgba(187, 247, 208, 0.8)",  # pale green
    "rgba(167, 243, 208, 0.8)",  # pale teal
    "rgba(253, 230, 138, 0.8)",  # pale amber
    "rgba(216, 180, 254, 0.8)",  # pale purple
    "rgba(254, 215, 170, 0.8)",  # pale orange
    "rgba(251, 207, 232, 0.8)",  # pale pink
    "rgba(129, 140, 248, 0.8)",  # medium indigo
    "rgba(248, 113, 113, 0.8)",  # medium red
    "rgba(74, 222, 128, 0.8)",  # medium green
    "rgba(45, 212, 191, 0.8)",  # medium teal
    "rgba(251, 146, 189, 0.8)",  # medium pink
)


def _utf16_code_units(text: str):
    for char in text:
        code_point = ord(char)
        if code_point <= 0xFFFF:
            yield code_point
            continue
        offset = code_point - 0x10000
        yield 0xD800 + (offset >> 10)
        yield 0xDC00 + (offset & 0x3FF)


def prompt_hash(prompt_id: str) -> int:
    """Return the signed 32-bit rolling hash of ``prompt_id``."""

    value = 0
    for unit in _utf16_code_units(prompt_id):
        value = (value * 31 + unit) & _UINT32_MASK
    if value & 0x80000000:
        value -= 0x100000000
    return value


def get_color_index(prompt_id: str, palette_size: int = len(HUNK_COLORS)) -> int:
    """Map ``prompt_id`` onto ``[0, palette_size)``."""

    if palette_size <= 0:
        raise InvalidPaletteError("palette_size must be positive")
    value = prompt_hash(prompt_id)
    # abs() of INT32_MIN does not fit in 32 bits.
    if value == _INT32_MIN:
        return 0
    return abs(value) % palette_size


class ColorAssigner:
    """Resolves prompt identifiers to entries of a fixed, ordered palette."""

    __slots__ = ("_palette",)

    def __init__(self, palette: Sequence[str] = HUNK_COLORS) -> None:
        colors = tuple(palette)
        if not colors:
            raise InvalidPaletteError("palette must contain at least one color")
        self._palette = colors

    @property
    def palette(self) -> tuple[str, ...]:
        return self._palette

    @property
    def size(self) -> int:
        return len(self._palette)

    def index_for(self, prompt_id: str) -> int:
        return get_color_index(prompt_id, len(self._palette))

    def color_for(self, prompt_id: str) -> str:
        return self._palette[self.index_for(prompt_id)]
