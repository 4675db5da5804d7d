"""Chat-completions client for OpenAI-compatible endpoints."""

from __future__ import annotations

import inspect
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping

import httpx
from openai import APIConnectionError, APIError, AsyncOpenAI, RateLimitError
from openai.types.chat import ChatCompletion, ChatCompletionToolChoiceOptionParam, ChatCompletionToolParam
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from .errors import TransportFailure

LOGGER = logging.getLogger(__name__)

# Failures worth another attempt when max_attempts > 1
TRANSIENT_ERRORS: tuple[type[BaseException], ...] = (
    APIConnectionError,
    RateLimitError,
    httpx.TimeoutException,
)


@dataclass(slots=True)
class ClientSettings:
    """Connection settings for :class:`AIClient`.

    ``max_attempts`` includes the first request; with the default of 1 a
    failed call is reported straight away.
    """

    api_key: str
    model: str = "gpt-4o"
    base_url: str | None = None
    organization: str | None = None
    request_timeout: float | None = 90.0
    max_attempts: int = 1
    retry_min_seconds: float = 0.5
    retry_max_seconds: float = 6.0
    default_headers: Mapping[str, str] | None = None
    debug_logging: bool = False


class AIClient:
    """Sends one chat completion per call, optionally retrying transient failures."""

    def __init__(self, settings: ClientSettings, *, client: AsyncOpenAI | None = None) -> None:
        self.settings = settings
        self._sdk = client or AsyncOpenAI(
            api_key=settings.api_key,
            base_url=settings.base_url or None,
            organization=settings.organization,
            timeout=settings.request_timeout,
            # tenacity owns retries
            max_retries=0,
            default_headers=dict(settings.default_headers or {}) or None,
        )

    async def complete_chat(
        self,
        messages: Iterable[Mapping[str, Any]],
        *,
        tools: Iterable[ChatCompletionToolParam] | None = None,
        tool_choice: ChatCompletionToolChoiceOptionParam | None = None,
        temperature: float | None = None,
        model: str | None = None,
        **extra: Any,
    ) -> ChatCompletion:
        """Return the completion for ``messages``.

        ``tool_choice`` is only sent together with a non-empty ``tools`` list.

        Raises:
            ValueError: If ``messages`` is empty.
            TransportFailure: If the request still fails after the last attempt.
        """
        request: Dict[str, Any] = {
            "model": model or self.settings.model,
            "messages": [dict(message) for message in messages],
        }
        if not request["messages"]:
            raise ValueError("At least one message is required to start a chat")
        tool_list = list(tools or ())
        if tool_list:
            request["tools"] = tool_list
            if tool_choice:
                request["tool_choice"] = tool_choice
        if temperature is not None:
            request["temperature"] = temperature
        request.update((key, value) for key, value in extra.items() if value is not None)

        LOGGER.debug("Chat completion on %s with %d message(s)", request["model"], len(request["messages"]))
        if self.settings.debug_logging:
            LOGGER.debug("Request body:\n%s", json.dumps(request, ensure_ascii=False, indent=2, default=str))

        retrying = AsyncRetrying(
            reraise=True,
            stop=stop_after_attempt(max(1, self.settings.max_attempts)),
            wait=wait_exponential(multiplier=self.settings.retry_min_seconds, max=self.settings.retry_max_seconds),
            retry=retry_if_exception_type(TRANSIENT_ERRORS),
        )
        try:
            async for attempt in retrying:
                with attempt:
                    return await self._sdk.chat.completions.create(**request)
        except (APIError, httpx.HTTPError) as exc:
            details: Dict[str, Any] = {"type": type(exc).__name__}
            if getattr(exc, "status_code", None) is not None:
                details["status_code"] = exc.status_code  # type: ignore[attr-defined]
            raise TransportFailure(message=f"Chat completion request failed: {exc}", details=details) from exc
        raise TransportFailure(message="Chat completion request made no attempts")  # pragma: no cover

    async def aclose(self) -> None:
        """Release the HTTP resources held by the SDK client."""
        close = getattr(self._sdk, "close", None)
        if close is None:
            return
        outcome = close()
        if inspect.isawaitable(outcome):
            await outcome
