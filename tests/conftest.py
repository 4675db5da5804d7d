"""Shared pytest fixtures."""

from __future__ import annotations

import pytest

from minty.editor.document_model import TextDocument


@pytest.fixture
def sample_document() -> TextDocument:
    return TextDocument(uri="/project/src/app.js", text="foo() {\n  bar(baz)\n}", language="js")


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    for name in (
        "MINTY_API_KEY",
        "MINTY_BASE_URL",
        "MINTY_MODEL",
        "MINTY_ORGANIZATION",
        "MINTY_LINE_POLICY",
        "MINTY_DEBUG_LOGGING",
        "MINTY_REQUEST_TIMEOUT",
        "MINTY_TEMPERATURE",
        "MINTY_TOOL_TIMEOUT",
        "MINTY_MAX_TOOL_ITERATIONS",
        "MINTY_MAX_ATTEMPTS",
        "MINTY_SETTINGS_PATH",
        "MINTY_DEBUG",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("MINTY_LOG_DIR", str(tmp_path / "logs"))
