"""Exceptions raised by the lint pipeline.

Fatal errors abort a lint invocation and leave the document untouched.
Non-fatal errors are handled inside the pipeline: unknown tools become
explanatory tool turns and unmappable findings are dropped with a warning.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar

__all__ = [
    "ErrorCode",
    "LintError",
    "TransportFailure",
    "ClientNotConfiguredError",
    "ProtocolViolation",
    "MalformedResponse",
    "LoopExceeded",
    "UnmappableFinding",
    "OutOfRangeLine",
    "UnknownToolError",
    "InvalidToolArguments",
]


class ErrorCode:
    """Identifiers carried in ``LintError.error_code``."""

    TRANSPORT_FAILURE = "transport_failure"
    PROTOCOL_VIOLATION = "protocol_violation"
    MALFORMED_RESPONSE = "malformed_response"
    LOOP_EXCEEDED = "loop_exceeded"
    OUT_OF_RANGE_LINE = "out_of_range_line"
    CLIENT_NOT_CONFIGURED = "client_not_configured"
    INTERNAL_ERROR = "internal_error"
    UNMAPPABLE_FINDING = "unmappable_finding"
    UNKNOWN_TOOL = "unknown_tool"
    INVALID_ARGUMENTS = "invalid_arguments"


@dataclass
class LintError(Exception):
    """Root of the pipeline's exceptions.

    Subclasses set ``code``, ``default_message`` and ``default_suggestion``;
    the instance fields fall back to them when left empty.
    """

    message: str = ""
    details: dict[str, Any] = field(default_factory=dict)
    suggestion: str = ""
    error_code: str = ""

    code: ClassVar[str] = ErrorCode.INTERNAL_ERROR
    default_message: ClassVar[str] = "Lint failed"
    default_suggestion: ClassVar[str] = ""
    fatal: ClassVar[bool] = True

    def __post_init__(self) -> None:
        self.error_code = self.error_code or self.code
        self.message = self.message or self.default_message
        self.suggestion = self.suggestion or self.default_suggestion
        Exception.__init__(self, self.message)

    def to_dict(self) -> dict[str, Any]:
        """Return the error as a JSON-ready mapping for reports and logs."""
        payload: dict[str, Any] = {"error": self.error_code, "message": self.message}
        if self.details:
            payload["details"] = dict(self.details)
        if self.suggestion:
            payload["suggestion"] = self.suggestion
        return payload

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"


@dataclass
class TransportFailure(LintError):
    """The model request failed or timed out."""

    code = ErrorCode.TRANSPORT_FAILURE
    default_message = "The model request failed"
    default_suggestion = "Check the API key, base URL and network connectivity"


@dataclass
class ClientNotConfiguredError(LintError):
    """A lint was requested before an API key was available."""

    code = ErrorCode.CLIENT_NOT_CONFIGURED
    default_message = "OpenAI client is not initialized. Please set your API key."
    default_suggestion = "Run `minty set-api-key` or export MINTY_API_KEY"


@dataclass
class ProtocolViolation(LintError):
    """The model reply or the transcript has an unexpected shape."""

    role: str | None = None

    code = ErrorCode.PROTOCOL_VIOLATION
    default_message = "Unexpected final message from the model"

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        if self.role is not None:
            payload["role"] = self.role
        return payload


@dataclass
class MalformedResponse(LintError):
    """The final answer is not a JSON array."""

    raw_response: str | None = None

    code = ErrorCode.MALFORMED_RESPONSE
    default_message = "Failed to parse the model response"


@dataclass
class LoopExceeded(LintError):
    """The model was still asking for tools when the iteration cap was hit."""

    max_iterations: int = 0

    code = ErrorCode.LOOP_EXCEEDED
    default_message = "The model did not produce a final answer"
    default_suggestion = "Increase max_tool_iterations if the model needs more context"

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["max_iterations"] = self.max_iterations
        return payload


@dataclass
class UnmappableFinding(LintError):
    """One finding whose problematic text is not on the reported line."""

    line_number: int | None = None
    problematic_text: str | None = None

    code = ErrorCode.UNMAPPABLE_FINDING
    default_message = "Problematic text not found on the reported line"
    fatal = False


@dataclass
class OutOfRangeLine(UnmappableFinding):
    """A finding points past the last line of the document."""

    line_count: int = 0

    code = ErrorCode.OUT_OF_RANGE_LINE
    default_message = "Reported line number is outside the document"


@dataclass
class UnknownToolError(LintError):
    """The model called a tool that was never declared."""

    tool_name: str | None = None

    code = ErrorCode.UNKNOWN_TOOL
    default_message = "Unknown tool"
    default_suggestion = "Only read_file is available"
    fatal = False

    def __str__(self) -> str:
        return f"Unknown tool {self.tool_name}"


@dataclass
class InvalidToolArguments(LintError):
    """Tool arguments could not be decoded or failed validation."""

    code = ErrorCode.INVALID_ARGUMENTS
    default_message = "Tool arguments are not valid JSON"
    fatal = False

    def __str__(self) -> str:
        return f"Invalid arguments: {self.message}"
