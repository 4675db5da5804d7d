"""Tests for the read_file tool and its file resolver."""

from __future__ import annotations

from pathlib import Path

import pytest

from minty.ai.errors import InvalidToolArguments, UnknownToolError
from minty.ai.tools.read_file import LocalFileResolver, ReadFileTool
from minty.ai.tools.registry import ToolRegistry, ToolSpec, build_lint_tools
from tests.helpers import MemoryResolver


class TestLocalFileResolver:
    @pytest.mark.asyncio
    async def test_reads_relative_to_document_directory(self, tmp_path: Path) -> None:
        (tmp_path / "lib").mkdir()
        (tmp_path / "lib" / "helper.js").write_text("export {}", encoding="utf-8")
        document = tmp_path / "main.js"

        content = await LocalFileResolver().read("lib/helper.js", str(document))

        assert content == "export {}"

    @pytest.mark.asyncio
    async def test_parent_directory_paths(self, tmp_path: Path) -> None:
        (tmp_path / "shared.sh").write_text("echo hi\n", encoding="utf-8")
        (tmp_path / "src").mkdir()

        content = await LocalFileResolver().read("../shared.sh", str(tmp_path / "src" / "run.sh"))

        assert content == "echo hi\n"

    @pytest.mark.asyncio
    async def test_missing_file_returns_none(self, tmp_path: Path) -> None:
        assert await LocalFileResolver().read("nope.js", str(tmp_path / "main.js")) is None

    @pytest.mark.asyncio
    async def test_directory_returns_none(self, tmp_path: Path) -> None:
        (tmp_path / "lib").mkdir()

        assert await LocalFileResolver().read("lib", str(tmp_path / "main.js")) is None

    @pytest.mark.asyncio
    async def test_oversized_file_returns_none(self, tmp_path: Path) -> None:
        (tmp_path / "big.txt").write_text("x" * 100, encoding="utf-8")

        assert await LocalFileResolver(max_bytes=10).read("big.txt", str(tmp_path / "main.js")) is None


class TestReadFileTool:
    @pytest.mark.asyncio
    async def test_content_message(self) -> None:
        tool = ReadFileTool("/p/main.js", MemoryResolver({"helper.js": "\nbody\n"}))

        result = await tool(filePath="helper.js")

        assert result == "Current file being linted: /p/main.js\nRequested file: helper.js\nContent of helper.js:\n\n\nbody"

    @pytest.mark.asyncio
    async def test_unreadable_message(self) -> None:
        tool = ReadFileTool("/p/main.js", MemoryResolver())

        result = await tool(filePath="helper.js")

        assert result.endswith(
            'The file "helper.js" could not be read. It may not exist or may not be accessible.'
        )

    @pytest.mark.asyncio
    @pytest.mark.parametrize("arguments", [{}, {"filePath": 3}, {"filePath": ""}, {"path": "helper.js"}])
    async def test_arguments_are_validated_against_schema(self, arguments: dict) -> None:
        tool = ReadFileTool("/p/main.js", MemoryResolver({"helper.js": "body"}))

        with pytest.raises(InvalidToolArguments) as excinfo:
            await tool(**arguments)

        assert "read_file arguments are invalid" in excinfo.value.message


class TestToolRegistry:
    def test_lint_tools_declare_read_file(self) -> None:
        registry = build_lint_tools("/p/main.js", MemoryResolver())

        (spec,) = registry.openai_tools()

        assert registry.names() == ["read_file"]
        assert spec["type"] == "function"
        assert spec["function"]["name"] == "read_file"
        assert spec["function"]["description"] == "Read the contents of a file relative to the current file"
        assert spec["function"]["parameters"]["required"] == ["filePath"]

    @pytest.mark.asyncio
    async def test_unknown_tool(self) -> None:
        registry = build_lint_tools("/p/main.js", MemoryResolver())

        with pytest.raises(UnknownToolError) as excinfo:
            await registry.execute("write_file", {})

        assert str(excinfo.value) == "Unknown tool write_file"

    @pytest.mark.asyncio
    async def test_sync_impl(self) -> None:
        registry = ToolRegistry([ToolSpec(name="echo", impl=lambda text="": text.upper())])

        assert await registry.execute("echo", {"text": "hi"}) == "HI"

    def test_name_required(self) -> None:
        with pytest.raises(ValueError):
            ToolRegistry([ToolSpec(name="", impl=print)])
