"""Dataclasses representing the documents Minty lints."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol, runtime_checkable

from ..utils.file_io import read_file

__all__ = ["LineSource", "TextDocument"]


@runtime_checkable
class LineSource(Protocol):
    """Minimal read interface the diagnostic mapper needs from a live document."""

    @property
    def line_count(self) -> int:
        ...

    def line_at(self, line_number: int) -> str:
        ...


@dataclass(slots=True)
class TextDocument:
    """Mutable text document addressed by 0-based lines.

    Lines are split on ``"\\n"``; a trailing ``"\\r"`` is not part of a line's
    text, mirroring how editors expose line contents. ``encoding`` and ``bom``
    record how the document was stored on disk so it can be written back the
    same way.
    """

    uri: str
    text: str = ""
    language: str = "plaintext"
    version: int = 1
    encoding: str = "utf-8"
    bom: bool = False
    content_hash: str = field(default="", init=False)
    _lines: list[str] = field(default_factory=list, init=False, repr=False)

    def __post_init__(self) -> None:
        self._reindex()

    @classmethod
    def from_path(cls, path: Path | str, *, language: str | None = None) -> TextDocument:
        """Load a document from disk, keeping its newlines and encoding."""

        target = Path(path)
        decoded = read_file(target)
        return cls(
            uri=str(target),
            text=decoded.text,
            language=language or target.suffix.lstrip(".") or "plaintext",
            encoding=decoded.encoding,
            bom=decoded.bom,
        )

    @property
    def file_name(self) -> str:
        return self.uri

    @property
    def line_count(self) -> int:
        return len(self._lines)

    @property
    def lines(self) -> tuple[str, ...]:
        return tuple(self._lines)

    def line_at(self, line_number: int) -> str:
        """Return the text of line ``line_number`` without its line ending.

        Raises:
            IndexError: If the line does not exist.
        """

        if not 0 <= line_number < len(self._lines):
            raise IndexError(f"Line {line_number} is outside 0..{len(self._lines) - 1}")
        return self._lines[line_number]

    def line_offset(self, line_number: int) -> int:
        """Return the absolute offset at which line ``line_number`` starts."""

        self.line_at(line_number)
        offset = 0
        for _ in range(line_number):
            offset = self.text.index("\n", offset) + 1
        return offset

    def update_text(self, new_text: str) -> None:
        """Replace the document text and bump its version."""

        self.text = new_text
        self.version += 1
        self._reindex()

    def _reindex(self) -> None:
        self._lines = [line.removesuffix("\r") for line in self.text.split("\n")]
        self.content_hash = hashlib.sha1(self.text.encode("utf-8")).hexdigest()
