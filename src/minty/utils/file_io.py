"""Reading and writing source files without disturbing their encoding."""

from __future__ import annotations

import codecs
import hashlib
import locale
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

__all__ = [
    "DecodedFile",
    "FileSignature",
    "read_file",
    "read_text",
    "write_text",
    "snapshot_file",
    "file_has_changed",
]

# Longest marks first so a UTF-32 LE mark is not taken for UTF-16 LE.
_BOMS: tuple[tuple[bytes, str], ...] = (
    (codecs.BOM_UTF32_LE, "utf-32-le"),
    (codecs.BOM_UTF32_BE, "utf-32-be"),
    (codecs.BOM_UTF8, "utf-8"),
    (codecs.BOM_UTF16_LE, "utf-16-le"),
    (codecs.BOM_UTF16_BE, "utf-16-be"),
)


@dataclass(slots=True, frozen=True)
class DecodedFile:
    """Text of a file plus what is needed to write it back byte-compatibly."""

    text: str
    encoding: str = "utf-8"
    bom: bool = False


@dataclass(slots=True, frozen=True)
class FileSignature:
    path: Path
    digest: str
    size: int
    mtime_ns: int


def read_file(path: Path | str) -> DecodedFile:
    raw = Path(path).read_bytes()
    for mark, encoding in _BOMS:
        if raw.startswith(mark):
            return DecodedFile(raw[len(mark) :].decode(encoding), encoding, bom=True)
    for encoding in _fallback_encodings():
        try:
            return DecodedFile(raw.decode(encoding), encoding)
        except UnicodeDecodeError:
            continue
    return DecodedFile(raw.decode("latin-1"), "latin-1")


def read_text(path: Path | str) -> str:
    """Return the decoded text of ``path`` with any byte order mark removed."""

    return read_file(path).text


def write_text(path: Path | str, content: str, *, encoding: str = "utf-8", bom: bool = False) -> Path:
    """Replace ``path`` atomically with ``content`` in the given encoding."""

    target = Path(path)
    payload = content.encode(encoding)
    if bom:
        payload = _bom_for(encoding) + payload
    target.parent.mkdir(parents=True, exist_ok=True)
    descriptor, temp_name = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.", suffix=".tmp")
    try:
        with os.fdopen(descriptor, "wb") as handle:
            handle.write(payload)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(temp_name, target)
    except BaseException:
        Path(temp_name).unlink(missing_ok=True)
        raise
    return target


def snapshot_file(path: Path | str) -> FileSignature:
    target = Path(path)
    stat = target.stat()
    return FileSignature(target, _digest(target), stat.st_size, stat.st_mtime_ns)


def file_has_changed(signature: FileSignature) -> bool:
    """Return ``True`` if the file was modified or removed since ``signature`` was taken."""

    try:
        stat = signature.path.stat()
    except FileNotFoundError:
        return True
    if (stat.st_size, stat.st_mtime_ns) != (signature.size, signature.mtime_ns):
        return True
    return _digest(signature.path) != signature.digest


def _digest(path: Path) -> str:
    return hashlib.sha256(path.read_bytes()).hexdigest()


def _bom_for(encoding: str) -> bytes:
    name = codecs.lookup(encoding).name
    for mark, candidate in _BOMS:
        if codecs.lookup(candidate).name == name:
            return mark
    raise ValueError(f"Encoding {encoding!r} has no byte order mark")


def _fallback_encodings() -> list[str]:
    return list(dict.fromkeys(["utf-8", locale.getpreferredencoding(False) or "utf-8"]))
