"""Structured helpers for representing line spans."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Iterator


@dataclass(slots=True, frozen=True)
class LineRange(Sequence[int]):
    """Inclusive span of 1-indexed lines used for selections and viewports."""

    start_line: int
    end_line: int

    def __post_init__(self) -> None:
        start = self._coerce_line(self.start_line, "start_line")
        end = self._coerce_line(self.end_line, "end_line")
        if end < start:
            start, end = end, start
        object.__setattr__(self, "start_line", start)
        object.__setattr__(self, "end_line", end)

    @staticmethod
    def _coerce_line(value: Any, label: str) -> int:
        try:
            number = int(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"LineRange {label} must be an integer") from exc
        if number < 1:
            return 1
        return number

    def __len__(self) -> int:
        return 2

    def __getitem__(self, index: int | slice) -> int | tuple[int, ...]:
        if isinstance(index, slice):
            return self.to_tuple()[index]
        if index == 0:
            return self.start_line
        if index == 1:
            return self.end_line
        raise IndexError("LineRange index out of range")

    def __iter__(self) -> Iterator[int]:
        yield self.start_line
        yield self.end_line

    @property
    def line_count(self) -> int:
        """Return the number of lines covered by the span (inclusive)."""

        return (self.end_line - self.start_line) + 1

    @property
    def is_multi_line(self) -> bool:
        return self.end_line != self.start_line

    def contains(self, line: int) -> bool:
        return self.start_line <= line <= self.end_line

    def lines(self) -> range:
        """Return every line number in the span, top to bottom."""

        return range(self.start_line, self.end_line + 1)

    def to_tuple(self) -> tuple[int, int]:
        return (self.start_line, self.end_line)

    @classmethod
    def from_value(cls, value: Any) -> LineRange | None:
        """Coerce ``value`` into a :class:`LineRange`; ``None`` passes through."""

        if value is None or isinstance(value, LineRange):
            return value
        if isinstance(value, Mapping):
            start = value.get("start_line", value.get("start"))
            end = value.get("end_line", value.get("end"))
            if start is None or end is None:
                raise ValueError("LineRange mappings require start and end keys")
            return cls(start, end)
        if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
            seq = list(value)
            if len(seq) != 2:
                raise ValueError("LineRange sequences must have exactly two entries")
            return cls(seq[0], seq[1])
        if isinstance(value, int):
            return cls(value, value)
        raise TypeError("Unsupported LineRange input")


__all__ = ["LineRange"]
