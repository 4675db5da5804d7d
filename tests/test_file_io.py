"""Tests for file helpers, text ranges, documents and logging setup."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from minty.core.ranges import TextRange
from minty.editor.document_model import TextDocument
from minty.utils import logging as logging_utils
from minty.utils.file_io import file_has_changed, read_file, read_text, snapshot_file, write_text


class TestFileIO:
    def test_read_text_strips_bom(self, tmp_path: Path) -> None:
        path = tmp_path / "bom.txt"
        path.write_bytes(b"\xef\xbb\xbfhello")

        assert read_text(path) == "hello"

    def test_read_text_keeps_newlines(self, tmp_path: Path) -> None:
        path = tmp_path / "crlf.txt"
        path.write_bytes(b"a\r\nb")

        assert read_text(path) == "a\r\nb"

    @pytest.mark.parametrize(
        ("raw", "encoding", "bom"),
        [
            (b"plain", "utf-8", False),
            (b"caf\xe9", "latin-1", False),
            (b"\xff\xfeh\x00i\x00", "utf-16-le", True),
            (b"\xfe\xff\x00h\x00i", "utf-16-be", True),
        ],
    )
    def test_read_file_detects_encoding(self, tmp_path: Path, raw: bytes, encoding: str, bom: bool) -> None:
        path = tmp_path / "enc.txt"
        path.write_bytes(raw)

        decoded = read_file(path)

        assert (decoded.encoding, decoded.bom) == (encoding, bom)
        write_text(path, decoded.text, encoding=decoded.encoding, bom=decoded.bom)
        assert path.read_bytes() == raw

    def test_write_text_is_atomic_replace(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "out.txt"

        write_text(path, "one")
        write_text(path, "two")

        assert path.read_text(encoding="utf-8") == "two"
        assert [p.name for p in path.parent.iterdir()] == ["out.txt"]

    def test_change_detection(self, tmp_path: Path) -> None:
        path = tmp_path / "watch.txt"
        path.write_text("one", encoding="utf-8")
        signature = snapshot_file(path)

        assert not file_has_changed(signature)
        path.write_text("three", encoding="utf-8")
        assert file_has_changed(signature)
        path.unlink()
        assert file_has_changed(signature)


class TestTextRange:
    def test_rejects_inverted_span(self) -> None:
        with pytest.raises(ValueError):
            TextRange(5, 2)

    def test_replace_in(self) -> None:
        assert TextRange(2, 10).replace_in("  bar(baz)", "qux(baz)") == "  qux(baz)"

    def test_overlaps_and_shifted(self) -> None:
        assert TextRange(0, 4).overlaps(TextRange(2, 6))
        assert not TextRange(0, 2).overlaps(TextRange(2, 6))
        assert TextRange(1, 3).shifted(10) == TextRange(11, 13)
        assert TextRange(4, 6).length == 2

    def test_within(self) -> None:
        assert TextRange(0, 3).within(3)
        assert not TextRange(2, 4).within(3)


class TestTextDocument:
    def test_from_path(self, tmp_path: Path) -> None:
        path = tmp_path / "main.py"
        path.write_text("a = 1\nb = 2\n", encoding="utf-8")

        document = TextDocument.from_path(path)

        assert document.uri == str(path)
        assert document.language == "py"
        assert document.lines == ("a = 1", "b = 2", "")

    def test_line_at_bounds(self) -> None:
        document = TextDocument(uri="a", text="x")

        with pytest.raises(IndexError):
            document.line_at(1)

    def test_update_text_bumps_version_and_hash(self) -> None:
        document = TextDocument(uri="a", text="x")
        digest = document.content_hash

        document.update_text("y")

        assert document.version == 2
        assert document.content_hash != digest
        assert document.line_count == 1


def test_setup_logging_writes_rotating_file(tmp_path: Path) -> None:
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        _check_log_file(tmp_path)
    finally:
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()
        for handler in saved_handlers:
            root.addHandler(handler)
        root.setLevel(saved_level)


def _check_log_file(tmp_path: Path) -> None:
    log_path = logging_utils.setup_logging(logging.DEBUG, log_dir=tmp_path, console=False, force=True)

    logging.getLogger("minty.test").info("hello log")
    for handler in logging.getLogger().handlers:
        handler.flush()

    assert log_path == tmp_path / "minty.log"
    assert logging_utils.get_log_path() == log_path
    assert "hello log" in log_path.read_text(encoding="utf-8")
    assert logging.getLogger("httpx").level == logging.WARNING
