"""Tests for orchestration/pipeline/tools.py."""

from __future__ import annotations

import asyncio
import time
from typing import Any, Mapping

import pytest

from minty.ai.errors import InvalidToolArguments, UnknownToolError
from minty.ai.orchestration.pipeline.tools import (
    ToolExecutor,
    ToolOutcome,
    append_tool_turns,
    parse_tool_arguments,
    render_tool_result,
    resolve_tool_call,
    resolve_tool_calls,
)
from minty.ai.orchestration.types import Message, ModelResponse, ParsedToolCall, Transcript


# -----------------------------------------------------------------------------
# Test Fixtures and Helpers
# -----------------------------------------------------------------------------


class MockToolExecutor:
    """Mock tool executor for testing."""

    def __init__(
        self,
        results: dict[str, Any] | None = None,
        errors: dict[str, Exception] | None = None,
        delay_seconds: float = 0.0,
    ) -> None:
        self.results = results or {}
        self.errors = errors or {}
        self.delay_seconds = delay_seconds
        self.calls: list[tuple[str, dict[str, Any], str]] = []

    async def execute(
        self,
        name: str,
        arguments: Mapping[str, Any],
        *,
        call_id: str = "",
    ) -> Any:
        self.calls.append((name, dict(arguments), call_id))

        if self.delay_seconds > 0:
            await asyncio.sleep(self.delay_seconds)

        if name in self.errors:
            raise self.errors[name]

        return self.results.get(name, f"Result for {name}")


class EchoExecutor:
    """Returns the ``filePath`` argument so results can be traced to requests."""

    async def execute(self, name: str, arguments: Mapping[str, Any], *, call_id: str = "") -> Any:
        await asyncio.sleep(0)
        return f"read {arguments['filePath']}"


def make_tool_call(
    name: str = "test_tool",
    arguments: str = "{}",
    call_id: str = "call_1",
    index: int = 0,
) -> ParsedToolCall:
    """Helper to create a ParsedToolCall."""
    return ParsedToolCall(
        call_id=call_id,
        name=name,
        arguments=arguments,
        index=index,
    )


# -----------------------------------------------------------------------------
# Formatting and argument parsing
# -----------------------------------------------------------------------------


class TestRenderToolResult:
    """Tests for render_tool_result."""

    def test_strings_pass_through(self) -> None:
        assert render_tool_result("hello") == "hello"

    def test_none_and_bools(self) -> None:
        assert render_tool_result(None) == "null"
        assert render_tool_result(True) == "true"
        assert render_tool_result(False) == "false"

    def test_mappings_become_json(self) -> None:
        assert render_tool_result({"a": 1}) == '{\n  "a": 1\n}'


class TestParseToolArguments:
    """Tests for parse_tool_arguments."""

    def test_empty_arguments(self) -> None:
        assert parse_tool_arguments("") == {}
        assert parse_tool_arguments("  ") == {}
        assert parse_tool_arguments("{}") == {}

    def test_object(self) -> None:
        assert parse_tool_arguments('{"filePath": "a.js"}') == {"filePath": "a.js"}

    def test_invalid_json(self) -> None:
        with pytest.raises(InvalidToolArguments):
            parse_tool_arguments("{not json")

    def test_non_object(self) -> None:
        with pytest.raises(InvalidToolArguments):
            parse_tool_arguments("[1, 2]")


# -----------------------------------------------------------------------------
# Execution
# -----------------------------------------------------------------------------


class TestResolveToolCall:
    """Tests for resolve_tool_call."""

    @pytest.mark.asyncio
    async def test_success(self) -> None:
        executor = MockToolExecutor(results={"test_tool": "done"})
        call = make_tool_call(arguments='{"x": 1}')

        outcome = await resolve_tool_call(call, executor)

        assert outcome.ok
        assert outcome.call is call
        assert outcome.content == "done"
        assert executor.calls == [("test_tool", {"x": 1}, "call_1")]

    @pytest.mark.asyncio
    async def test_unknown_tool_becomes_error_outcome(self) -> None:
        executor = MockToolExecutor(errors={"ghost": UnknownToolError(tool_name="ghost")})

        outcome = await resolve_tool_call(make_tool_call(name="ghost"), executor)

        assert not outcome.ok
        assert outcome.content == "Error: Unknown tool ghost"

    @pytest.mark.asyncio
    async def test_bad_arguments_skip_the_executor(self) -> None:
        executor = MockToolExecutor()

        outcome = await resolve_tool_call(make_tool_call(arguments="{oops"), executor)

        assert not outcome.ok
        assert outcome.content.startswith("Error: Invalid arguments:")
        assert executor.calls == []

    @pytest.mark.asyncio
    async def test_timeout(self) -> None:
        executor = MockToolExecutor(delay_seconds=0.5)

        outcome = await resolve_tool_call(make_tool_call(), executor, timeout_seconds=0.01)

        assert not outcome.ok
        assert "timed out" in (outcome.error or "")

    @pytest.mark.asyncio
    async def test_generic_exception(self) -> None:
        executor = MockToolExecutor(errors={"test_tool": RuntimeError()})

        outcome = await resolve_tool_call(make_tool_call(), executor)

        assert outcome.error == "RuntimeError"


class TestResolveToolCalls:
    """Tests for resolve_tool_calls."""

    @pytest.mark.asyncio
    async def test_no_tool_calls(self) -> None:
        assert await resolve_tool_calls((), MockToolExecutor()) == []

    @pytest.mark.asyncio
    async def test_calls_run_concurrently(self) -> None:
        executor = MockToolExecutor(delay_seconds=0.2)
        calls = (
            make_tool_call(call_id="a", index=0),
            make_tool_call(call_id="b", index=1),
            make_tool_call(call_id="c", index=2),
        )

        started = time.perf_counter()
        outcomes = await resolve_tool_calls(calls, executor)
        elapsed = time.perf_counter() - started

        assert [outcome.call.call_id for outcome in outcomes] == ["a", "b", "c"]
        assert all(outcome.ok for outcome in outcomes)
        assert elapsed < 0.55

    def test_mock_conforms_to_protocol(self) -> None:
        assert isinstance(MockToolExecutor(), ToolExecutor)


# -----------------------------------------------------------------------------
# Transcript building
# -----------------------------------------------------------------------------


class TestAppendToolTurns:
    """Tests for turning outcomes into tool turns."""

    def test_outcome_message(self) -> None:
        call = make_tool_call(name="read_file", call_id="xyz")

        message = ToolOutcome(call=call, content="body").to_message()

        assert message.role == "tool"
        assert message.tool_call_id == "xyz"
        assert message.name == "read_file"
        assert message.content == "body"

    def test_turns_follow_request_order(self) -> None:
        calls = (make_tool_call(call_id="a", index=0), make_tool_call(call_id="b", index=1))
        response = ModelResponse(content=None, tool_calls=calls)
        transcript = Transcript((Message.user("hi"),)).extend(response.to_message())
        outcomes = [ToolOutcome(call=calls[0], content="first"), ToolOutcome.failed(calls[1], "boom")]

        updated = append_tool_turns(transcript, outcomes)

        assert len(updated) == 4
        assert [(m.tool_call_id, m.content) for m in updated.messages[2:]] == [("a", "first"), ("b", "Error: boom")]
        assert len(transcript) == 2

    @pytest.mark.asyncio
    async def test_repeated_call_ids_keep_their_own_results(self) -> None:
        calls = (
            make_tool_call(name="read_file", arguments='{"filePath": "one.js"}', call_id="dup", index=0),
            make_tool_call(name="read_file", arguments='{"filePath": "two.js"}', call_id="dup", index=1),
        )

        outcomes = await resolve_tool_calls(calls, EchoExecutor())
        updated = append_tool_turns(Transcript(), outcomes)

        assert [(m.tool_call_id, m.content) for m in updated] == [("dup", "read one.js"), ("dup", "read two.js")]
