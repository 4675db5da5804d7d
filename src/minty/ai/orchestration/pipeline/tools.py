"""Pipeline stage: Tools.

Resolves the tool calls of one assistant turn and turns each outcome into a
tool turn answering the request it came from.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Protocol, Sequence, runtime_checkable

from ...errors import InvalidToolArguments
from ..types import Message, ParsedToolCall, Transcript

__all__ = [
    "ToolExecutor",
    "ToolOutcome",
    "resolve_tool_call",
    "resolve_tool_calls",
    "append_tool_turns",
    "render_tool_result",
    "parse_tool_arguments",
]

LOGGER = logging.getLogger(__name__)


@runtime_checkable
class ToolExecutor(Protocol):
    """Runs a tool by name with decoded arguments.

    Unknown names should raise :class:`~minty.ai.errors.UnknownToolError`.
    """

    async def execute(
        self,
        name: str,
        arguments: Mapping[str, Any],
        *,
        call_id: str = "",
    ) -> Any:
        ...


@dataclass(slots=True, frozen=True)
class ToolOutcome:
    """The answer to one tool call.

    ``content`` is the text of the tool turn; when the call failed it is the
    ``"Error: ..."`` text the model sees and ``error`` holds the cause.
    """

    call: ParsedToolCall
    content: str
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failed(cls, call: ParsedToolCall, error: str) -> ToolOutcome:
        return cls(call=call, content=f"Error: {error}", error=error)

    def to_message(self) -> Message:
        return Message.tool(content=self.content, tool_call_id=self.call.call_id, name=self.call.name)


def render_tool_result(result: Any) -> str:
    """Strings pass through; anything else is sent as JSON."""
    if isinstance(result, str):
        return result
    return json.dumps(result, ensure_ascii=False, indent=2, default=str)


def parse_tool_arguments(arguments: str) -> dict[str, Any]:
    """Decode the JSON arguments of a tool call; blank means no arguments.

    Raises:
        InvalidToolArguments: If the arguments are not a JSON object.
    """
    if not arguments.strip():
        return {}
    try:
        parsed = json.loads(arguments)
    except json.JSONDecodeError as exc:
        raise InvalidToolArguments(message=f"Invalid JSON in tool arguments: {exc}") from exc
    if not isinstance(parsed, dict):
        raise InvalidToolArguments(message=f"Arguments must be a JSON object, got {type(parsed).__name__}")
    return parsed


async def resolve_tool_call(
    call: ParsedToolCall,
    executor: ToolExecutor,
    *,
    timeout_seconds: float | None = None,
) -> ToolOutcome:
    """Run one tool call; failures become error outcomes instead of raising."""
    try:
        arguments = parse_tool_arguments(call.arguments)
        pending = executor.execute(call.name, arguments, call_id=call.call_id)
        if timeout_seconds:
            result = await asyncio.wait_for(pending, timeout=timeout_seconds)
        else:
            result = await pending
    except asyncio.TimeoutError:
        LOGGER.warning("Tool %s timed out after %.1fs", call.name, timeout_seconds)
        return ToolOutcome.failed(call, f"Tool execution timed out after {timeout_seconds}s")
    except Exception as exc:
        reason = str(exc) or type(exc).__name__
        LOGGER.warning("Tool %s failed: %s", call.name, reason)
        return ToolOutcome.failed(call, reason)
    return ToolOutcome(call=call, content=render_tool_result(result))


async def resolve_tool_calls(
    calls: Sequence[ParsedToolCall],
    executor: ToolExecutor,
    *,
    timeout_seconds: float | None = None,
) -> list[ToolOutcome]:
    """Resolve ``calls`` concurrently; outcomes come back in request order."""
    return list(
        await asyncio.gather(
            *(resolve_tool_call(call, executor, timeout_seconds=timeout_seconds) for call in calls)
        )
    )


def append_tool_turns(transcript: Transcript, outcomes: Sequence[ToolOutcome]) -> Transcript:
    """Return ``transcript`` extended with one tool turn per outcome, in order."""
    return transcript.extend(*(outcome.to_message() for outcome in outcomes))
