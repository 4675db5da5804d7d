"""Pipeline stages for the lint conversation.

- execute: send the transcript to the model and parse the assistant turn
- tools: resolve tool calls and append the tool turns
"""

from .execute import (
    ModelClient,
    execute_model,
    parse_completion,
    parse_tool_calls,
)

from .tools import (
    ToolExecutor,
    ToolOutcome,
    append_tool_turns,
    parse_tool_arguments,
    render_tool_result,
    resolve_tool_call,
    resolve_tool_calls,
)

__all__ = [
    # execute.py exports
    "ModelClient",
    "execute_model",
    "parse_completion",
    "parse_tool_calls",
    # tools.py exports
    "ToolExecutor",
    "ToolOutcome",
    "append_tool_turns",
    "parse_tool_arguments",
    "render_tool_result",
    "resolve_tool_call",
    "resolve_tool_calls",
]
