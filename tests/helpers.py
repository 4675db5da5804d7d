"""Shared test helpers and stub classes.

This module contains reusable test stubs that are used across multiple test files.
Import from here instead of duplicating these classes in individual test files.
"""

from __future__ import annotations

import json
from typing import Any, Iterable, Mapping, Sequence


def tool_call(name: str = "read_file", arguments: Mapping[str, Any] | str | None = None, call_id: str = "call_1") -> dict[str, Any]:
    """Build a raw tool call entry shaped like the OpenAI SDK payload."""
    if arguments is None:
        arguments = {}
    encoded = arguments if isinstance(arguments, str) else json.dumps(arguments)
    return {"id": call_id, "type": "function", "function": {"name": name, "arguments": encoded}}


def make_completion(
    content: Any = None,
    tool_calls: Sequence[Mapping[str, Any]] = (),
    *,
    role: str = "assistant",
    finish_reason: str | None = None,
) -> dict[str, Any]:
    """Build a chat completion mapping with a single choice."""
    message: dict[str, Any] = {"role": role, "content": content}
    if tool_calls:
        message["tool_calls"] = list(tool_calls)
    return {
        "model": "stub-model",
        "choices": [
            {
                "index": 0,
                "message": message,
                "finish_reason": finish_reason or ("tool_calls" if tool_calls else "stop"),
            }
        ],
        "usage": {"prompt_tokens": 10, "completion_tokens": 5},
    }


class StubModelClient:
    """Model client stub replaying scripted completions.

    Entries that are exceptions are raised instead of returned. Every call
    records a copy of the messages it was sent.
    """

    def __init__(self, responses: Iterable[Any]) -> None:
        self._responses = list(responses)
        self.calls: list[dict[str, Any]] = []
        self.closed = False

    async def complete_chat(
        self,
        messages: Sequence[Mapping[str, Any]],
        *,
        tools: Sequence[Mapping[str, Any]] | None = None,
        tool_choice: Any = None,
        temperature: float | None = None,
        model: str | None = None,
        **kwargs: Any,
    ) -> Any:
        self.calls.append(
            {
                "messages": [dict(message) for message in messages],
                "tools": tools,
                "tool_choice": tool_choice,
                "temperature": temperature,
                "model": model,
            }
        )
        if not self._responses:
            raise AssertionError("StubModelClient ran out of scripted responses")
        response = self._responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response

    async def aclose(self) -> None:
        self.closed = True


class RepeatingModelClient(StubModelClient):
    """Model client stub that always returns the same completion."""

    def __init__(self, response: Any) -> None:
        super().__init__([])
        self._response = response

    async def complete_chat(self, messages: Sequence[Mapping[str, Any]], **kwargs: Any) -> Any:
        self.calls.append({"messages": [dict(message) for message in messages], **kwargs})
        return self._response


class MemoryResolver:
    """File resolver serving files from a dict keyed by relative path."""

    def __init__(self, files: Mapping[str, str] | None = None) -> None:
        self.files = dict(files or {})
        self.requests: list[tuple[str, str]] = []

    async def read(self, relative_path: str, base_document_path: str) -> str | None:
        self.requests.append((relative_path, base_document_path))
        return self.files.get(relative_path)
