"""Value types shared by the conversation runner and its pipeline stages.

Everything here is frozen, so a transcript handed to one stage can never be
changed underneath another.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator, Literal, Mapping, Sequence, Union

from openai.types.chat import ChatCompletionMessageParam

__all__ = [
    "ContentPart",
    "MessageContent",
    "MessageRole",
    "Message",
    "ParsedToolCall",
    "ModelResponse",
    "Transcript",
    "ConversationConfig",
]


@dataclass(slots=True, frozen=True)
class ContentPart:
    """One typed piece of a multi-part message body.

    ``text`` is set for text parts; ``data`` keeps the other keys of
    non-text parts (refusals, images) so they survive a round trip.
    """

    type: str
    text: str | None = None
    data: Mapping[str, Any] = field(default_factory=dict)

    @property
    def is_text(self) -> bool:
        return self.type == "text" and self.text is not None

    def to_param(self) -> dict[str, Any]:
        param = {**self.data, "type": self.type}
        if self.text is not None:
            param["text"] = self.text
        return param

    @classmethod
    def from_value(cls, value: Any) -> ContentPart:
        if isinstance(value, ContentPart):
            return value
        if isinstance(value, Mapping):
            text = value.get("text")
            return cls(
                type=str(value.get("type", "")),
                text=text if isinstance(text, str) else None,
                data={key: item for key, item in value.items() if key not in ("type", "text")},
            )
        kind = getattr(value, "type", None)
        if kind is None:
            raise TypeError(f"Unsupported content part: {type(value).__name__}")
        text = getattr(value, "text", None)
        return cls(type=str(kind), text=text if isinstance(text, str) else None)


# Plain text, typed parts, or None for assistant turns that only call tools
MessageContent = Union[str, tuple[ContentPart, ...], None]


def coerce_content(value: Any) -> MessageContent:
    """Bring SDK objects, dicts or lists into the :data:`MessageContent` shape."""
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, tuple) and all(isinstance(part, ContentPart) for part in value):
        return value
    if isinstance(value, Sequence) and not isinstance(value, (bytes, bytearray)):
        return tuple(ContentPart.from_value(part) for part in value)
    raise TypeError(f"Unsupported message content: {type(value).__name__}")


MessageRole = Literal["system", "user", "assistant", "tool"]


@dataclass(slots=True, frozen=True)
class Message:
    """A single transcript turn.

    ``name`` and ``tool_call_id`` are only meaningful on tool turns and
    ``tool_calls`` only on assistant turns. ``metadata`` stays local and is
    never sent to the model.
    """

    role: MessageRole
    content: MessageContent
    name: str | None = None
    tool_call_id: str | None = None
    tool_calls: tuple[ParsedToolCall, ...] = ()
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "content", coerce_content(self.content))
        object.__setattr__(self, "tool_calls", tuple(self.tool_calls))

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)

    def to_chat_param(self) -> ChatCompletionMessageParam:
        """Render the turn as a chat-completions request message."""
        content: Any = self.content
        if isinstance(content, tuple):
            content = [part.to_param() for part in content]
        param: dict[str, Any] = {"role": self.role, "content": content}
        if self.name is not None and self.role != "tool":
            param["name"] = self.name
        if self.tool_call_id is not None:
            param["tool_call_id"] = self.tool_call_id
        if self.tool_calls:
            param["tool_calls"] = [call.to_param() for call in self.tool_calls]
        return param  # type: ignore[return-value]

    @classmethod
    def system(cls, content: str, **metadata: Any) -> Message:
        return cls(role="system", content=content, metadata=metadata)

    @classmethod
    def user(cls, content: str, **metadata: Any) -> Message:
        return cls(role="user", content=content, metadata=metadata)

    @classmethod
    def assistant(
        cls,
        content: MessageContent | Sequence[Any],
        tool_calls: Sequence[ParsedToolCall] = (),
        **metadata: Any,
    ) -> Message:
        return cls(role="assistant", content=content, tool_calls=tuple(tool_calls), metadata=metadata)  # type: ignore[arg-type]

    @classmethod
    def tool(cls, content: str, tool_call_id: str, name: str | None = None, **metadata: Any) -> Message:
        return cls(role="tool", content=content, tool_call_id=tool_call_id, name=name, metadata=metadata)


@dataclass(slots=True, frozen=True)
class ParsedToolCall:
    """A function call requested by the assistant.

    ``call_id`` is opaque and echoed back on the answering tool turn;
    ``arguments`` is the raw JSON text; ``index`` is the call's position in
    the assistant turn.
    """

    call_id: str
    name: str
    arguments: str
    index: int = 0

    def to_param(self) -> dict[str, Any]:
        return {
            "id": self.call_id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments},
        }


@dataclass(slots=True, frozen=True)
class ModelResponse:
    """The assistant turn of one completion plus its usage numbers."""

    content: MessageContent
    tool_calls: tuple[ParsedToolCall, ...] = ()
    finish_reason: str | None = None
    prompt_tokens: int = 0
    completion_tokens: int = 0
    model: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "content", coerce_content(self.content))
        object.__setattr__(self, "tool_calls", tuple(self.tool_calls))

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)

    def to_message(self) -> Message:
        return Message.assistant(self.content, tool_calls=self.tool_calls)


@dataclass(slots=True, frozen=True)
class Transcript:
    """Ordered conversation history for one lint invocation.

    Transcripts only grow: :meth:`extend` returns a new transcript with the
    extra turns appended and never rewrites existing ones.
    """

    messages: tuple[Message, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "messages", tuple(self.messages))

    def __len__(self) -> int:
        return len(self.messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(self.messages)

    def __getitem__(self, index: int) -> Message:
        return self.messages[index]

    @property
    def last(self) -> Message | None:
        return self.messages[-1] if self.messages else None

    @property
    def is_terminal(self) -> bool:
        """``True`` when the last turn is an assistant turn without tool calls."""
        last = self.last
        return last is not None and last.role == "assistant" and not last.has_tool_calls

    def extend(self, *messages: Message) -> Transcript:
        return Transcript(self.messages + messages)

    def to_chat_params(self) -> list[ChatCompletionMessageParam]:
        return [message.to_chat_param() for message in self.messages]

    @classmethod
    def start(cls, system_prompt: str, user_prompt: str) -> Transcript:
        return cls((Message.system(system_prompt), Message.user(user_prompt)))


@dataclass(slots=True, frozen=True)
class ConversationConfig:
    """Knobs for one conversation.

    ``max_iterations`` caps model calls (at least one); ``model_name`` of
    ``None`` means the client's default model.
    """

    max_iterations: int = 8
    temperature: float = 0.1
    tool_choice: str = "auto"
    tool_timeout_seconds: float = 30.0
    model_name: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "max_iterations", max(1, int(self.max_iterations)))
