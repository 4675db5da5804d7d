"""Conversation Runner: drives the tool-calling loop of one lint invocation.

The runner sends the transcript to the model, resolves any tool calls the
assistant turn carries, appends the tool turns and repeats until the model
answers without tool calls or the iteration cap is reached.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Sequence

from ..errors import InvalidToolArguments, LoopExceeded
from .pipeline.execute import ModelClient, execute_model
from .pipeline.tools import ToolExecutor, ToolOutcome, append_tool_turns, parse_tool_arguments, resolve_tool_calls
from .types import ConversationConfig, ModelResponse, Transcript

__all__ = [
    "ConversationRunner",
    "ConversationResult",
    "ToolCallback",
]

LOGGER = logging.getLogger(__name__)


# Called with (call_id, tool name, decoded arguments) before a tool runs
ToolCallback = Callable[[str, str, Mapping[str, Any]], None]


@dataclass(slots=True, frozen=True)
class ConversationResult:
    """Outcome of a completed conversation.

    Attributes:
        transcript: The full transcript, ending with the terminal turn.
        model_calls: Number of model requests issued.
        tool_calls: Number of tool resolutions performed.
        prompt_tokens: Prompt tokens reported across all model calls.
        completion_tokens: Completion tokens reported across all model calls.
        run_id: Identifier used in log lines for this conversation.
    """

    transcript: Transcript
    model_calls: int
    tool_calls: int
    prompt_tokens: int = 0
    completion_tokens: int = 0
    run_id: str = ""


class ConversationRunner:
    """Runs the request/response loop until the model produces a plain answer.

    Example:
        >>> runner = ConversationRunner(ai_client, registry, tools=registry.openai_tools())
        >>> result = await runner.run(transcript)
        >>> result.transcript.last.content
    """

    def __init__(
        self,
        client: ModelClient,
        tool_executor: ToolExecutor,
        *,
        config: ConversationConfig | None = None,
        tools: Sequence[Mapping[str, Any]] | None = None,
    ) -> None:
        self._client = client
        self._tool_executor = tool_executor
        self._config = config or ConversationConfig()
        self._tools = tuple(tools) if tools else ()

    @property
    def config(self) -> ConversationConfig:
        return self._config

    async def run(
        self,
        transcript: Transcript,
        *,
        tool_callback: ToolCallback | None = None,
        run_id: str | None = None,
    ) -> ConversationResult:
        """Drive the conversation starting from ``transcript``.

        Raises:
            LoopExceeded: If the model still requests tools after
                ``config.max_iterations`` model calls.
            TransportFailure: Propagated from the model client.
            ProtocolViolation: If the model reply is not an assistant turn.
        """
        run_id = run_id or uuid.uuid4().hex[:12]
        limit = self._config.max_iterations
        tool_calls = prompt_tokens = completion_tokens = 0

        LOGGER.debug("Starting conversation %s with max_iterations=%d", run_id, limit)
        for iteration in range(1, limit + 1):
            response = await execute_model(
                transcript,
                self._client,
                tools=self._tools,
                tool_choice=self._config.tool_choice,
                temperature=self._config.temperature,
                model=self._config.model_name,
            )
            prompt_tokens += response.prompt_tokens
            completion_tokens += response.completion_tokens
            transcript = transcript.extend(response.to_message())

            if not response.has_tool_calls:
                LOGGER.info(
                    "Conversation %s finished after %d model call(s) and %d tool call(s); tokens: %d prompt, %d completion",
                    run_id,
                    iteration,
                    tool_calls,
                    prompt_tokens,
                    completion_tokens,
                )
                return ConversationResult(
                    transcript=transcript,
                    model_calls=iteration,
                    tool_calls=tool_calls,
                    prompt_tokens=prompt_tokens,
                    completion_tokens=completion_tokens,
                    run_id=run_id,
                )

            outcomes = await self._resolve_tools(response, tool_callback)
            tool_calls += len(outcomes)
            transcript = append_tool_turns(transcript, outcomes)

        LOGGER.warning("Conversation %s reached max iterations (%d)", run_id, limit)
        raise LoopExceeded(
            message=f"The model did not produce a final answer within {limit} turns",
            max_iterations=limit,
            details={"run_id": run_id, "tool_calls": tool_calls},
        )

    async def _resolve_tools(
        self,
        response: ModelResponse,
        tool_callback: ToolCallback | None,
    ) -> list[ToolOutcome]:
        LOGGER.debug("Resolving %d tool call(s)", len(response.tool_calls))
        if tool_callback is not None:
            for call in response.tool_calls:
                try:
                    arguments = parse_tool_arguments(call.arguments)
                except InvalidToolArguments:
                    arguments = {}
                try:
                    tool_callback(call.call_id, call.name, arguments)
                except Exception:
                    LOGGER.debug("Tool callback raised exception", exc_info=True)

        return await resolve_tool_calls(
            response.tool_calls,
            self._tool_executor,
            timeout_seconds=self._config.tool_timeout_seconds,
        )
