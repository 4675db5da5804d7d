"""Column spans used by diagnostics and quick fixes."""

from __future__ import annotations

from dataclasses import dataclass

__all__ = ["TextRange"]


@dataclass(slots=True, frozen=True)
class TextRange:
    """Half-open ``[start, end)`` span of character offsets within one line."""

    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start < 0 or self.end < self.start:
            raise ValueError(f"Invalid span [{self.start}, {self.end})")

    @property
    def length(self) -> int:
        return self.end - self.start

    def within(self, upper: int) -> bool:
        """Return ``True`` when the span ends at or before ``upper``."""

        return self.end <= upper

    def overlaps(self, other: TextRange) -> bool:
        return self.start < other.end and other.start < self.end

    def shifted(self, offset: int) -> TextRange:
        return TextRange(self.start + offset, self.end + offset)

    def replace_in(self, text: str, replacement: str) -> str:
        """Return ``text`` with this span replaced by ``replacement``."""

        return f"{text[:self.start]}{replacement}{text[self.end:]}"
