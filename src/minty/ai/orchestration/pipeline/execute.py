"""Send the transcript to the model and read back the assistant turn."""

from __future__ import annotations

import logging
import uuid
from typing import Any, Mapping, Protocol, Sequence, runtime_checkable

from ...errors import ProtocolViolation
from ..types import ModelResponse, ParsedToolCall, Transcript

__all__ = [
    "ModelClient",
    "execute_model",
    "parse_completion",
    "parse_tool_calls",
]

LOGGER = logging.getLogger(__name__)


@runtime_checkable
class ModelClient(Protocol):
    """Anything that returns one chat completion per call.

    :class:`~minty.ai.client.AIClient` is the real implementation; stubs may
    return a mapping shaped like an OpenAI ``ChatCompletion`` instead.
    """

    async def complete_chat(
        self,
        messages: Sequence[Mapping[str, Any]],
        *,
        tools: Sequence[Mapping[str, Any]] | None = None,
        tool_choice: str | Mapping[str, Any] | None = None,
        temperature: float | None = None,
        model: str | None = None,
        **kwargs: Any,
    ) -> Any:
        ...


def _field(source: Any, name: str, default: Any = None) -> Any:
    if source is None:
        return default
    if isinstance(source, Mapping):
        return source.get(name, default)
    return getattr(source, name, default)


def parse_tool_calls(raw_calls: Sequence[Any] | None) -> tuple[ParsedToolCall, ...]:
    """Convert SDK tool call objects (or dicts) to ParsedToolCall objects."""
    results: list[ParsedToolCall] = []
    for index, raw in enumerate(raw_calls or ()):
        function = _field(raw, "function")
        name = _field(function, "name") or "unknown"
        arguments = _field(function, "arguments")
        call_id = _field(raw, "id") or f"call_{index}_{uuid.uuid4().hex[:8]}"
        results.append(
            ParsedToolCall(
                call_id=str(call_id),
                name=str(name),
                arguments=arguments if isinstance(arguments, str) else "{}",
                index=index,
            )
        )
    return tuple(results)


def parse_completion(completion: Any) -> ModelResponse:
    """Parse a chat completion into a structured ModelResponse.

    Raises:
        ProtocolViolation: If the completion carries no assistant message.
    """
    choices = _field(completion, "choices") or ()
    if not choices:
        raise ProtocolViolation(message="Model returned no choices")
    choice = choices[0]
    message = _field(choice, "message")
    if message is None:
        raise ProtocolViolation(message="Model returned a choice without a message")
    role = _field(message, "role", "assistant")
    if role != "assistant":
        raise ProtocolViolation(
            message=f"Model returned a '{role}' message instead of an assistant turn",
            role=str(role),
        )

    usage = _field(completion, "usage")
    try:
        content = _field(message, "content")
        return ModelResponse(
            content=content,
            tool_calls=parse_tool_calls(_field(message, "tool_calls")),
            finish_reason=_field(choice, "finish_reason"),
            prompt_tokens=int(_field(usage, "prompt_tokens", 0) or 0),
            completion_tokens=int(_field(usage, "completion_tokens", 0) or 0),
            model=_field(completion, "model"),
        )
    except TypeError as exc:
        raise ProtocolViolation(message=f"Unexpected content format in model message: {exc}") from exc


async def execute_model(
    transcript: Transcript,
    client: ModelClient,
    *,
    tools: Sequence[Mapping[str, Any]] | None = None,
    tool_choice: str | Mapping[str, Any] | None = "auto",
    temperature: float | None = None,
    model: str | None = None,
) -> ModelResponse:
    """Send the full transcript to the model and return its assistant turn.

    Transport errors raised by the client are propagated unchanged.
    """
    completion = await client.complete_chat(
        transcript.to_chat_params(),
        tools=list(tools) if tools else None,
        tool_choice=tool_choice if tools else None,
        temperature=temperature,
        model=model,
    )
    response = parse_completion(completion)
    LOGGER.debug(
        "Model turn: %d tool call(s), finish_reason=%s",
        len(response.tool_calls),
        response.finish_reason,
    )
    return response
