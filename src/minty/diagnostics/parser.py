"""Turn the terminal assistant answer into structured findings."""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Mapping, Sequence

from jsonschema import Draft7Validator, ValidationError

from ..ai.errors import MalformedResponse, ProtocolViolation
from ..ai.orchestration.types import ContentPart, Transcript
from .models import Finding, FindingFix

__all__ = [
    "FINDING_SCHEMA",
    "extract_final_answer",
    "clean_response",
    "parse_findings",
    "decode_finding",
    "findings_to_json",
]

LOGGER = logging.getLogger(__name__)

# Opening fences (optionally tagged json) and closing fences with the newline
# that separates them from the payload.
_FENCE_RE = re.compile(r"```(?:json|JSON)?[ \t]*\r?\n?|\r?\n?```")

FINDING_SCHEMA: Mapping[str, Any] = {
    "type": "object",
    "properties": {
        "lineNumber": {"type": "integer", "minimum": 0},
        "problematicText": {"type": "string"},
        "message": {"type": ["string", "null"]},
        "severity": {"type": ["string", "null"]},
        "fix": {
            "type": ["object", "null"],
            "properties": {
                "title": {"type": ["string", "null"]},
                "replacement": {"type": "string"},
            },
            "required": ["replacement"],
        },
    },
    "required": ["lineNumber", "problematicText"],
    "additionalProperties": True,
}

_FINDING_VALIDATOR = Draft7Validator(FINDING_SCHEMA)


def extract_final_answer(transcript: Transcript) -> str:
    """Return the text of the transcript's terminal assistant turn.

    Raises:
        ProtocolViolation: If the last turn is not from the assistant, or its
            content is neither a string nor a sequence of typed parts.
    """
    final = transcript.last
    if final is None or final.role != "assistant":
        raise ProtocolViolation(
            message="Unexpected final message from the model",
            role=final.role if final is not None else None,
        )
    content = final.content
    if isinstance(content, str):
        return content
    if isinstance(content, tuple):
        return "".join(part.text or "" for part in content if isinstance(part, ContentPart) and part.is_text)
    raise ProtocolViolation(message="Unexpected content format in final message", role=final.role)


def clean_response(response: str) -> str:
    """Strip wrapping code fences and surrounding whitespace."""
    return _FENCE_RE.sub("", response).strip()


def parse_findings(raw_answer: str) -> list[Finding]:
    """Decode the cleaned answer as a JSON array of findings.

    An empty array is a valid answer meaning no issues were found. Items that
    do not match :data:`FINDING_SCHEMA` are logged and dropped; the remaining
    findings are kept.

    Raises:
        MalformedResponse: If the text does not decode to a JSON array.
    """
    cleaned = clean_response(raw_answer)
    LOGGER.debug("Raw response: %s", cleaned)
    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        LOGGER.error("Error parsing model response: %s", exc)
        raise MalformedResponse(
            message=f"Failed to parse model response: {exc.msg}",
            details={"line": exc.lineno, "column": exc.colno},
            raw_response=cleaned,
        ) from exc

    if not isinstance(payload, list):
        raise MalformedResponse(
            message=f"Expected a JSON array of findings, got {type(payload).__name__}",
            raw_response=cleaned,
        )

    findings: list[Finding] = []
    for index, item in enumerate(payload):
        try:
            findings.append(decode_finding(item))
        except ValidationError as exc:
            LOGGER.warning("Dropping finding %d: %s", index, _format_validation_error(exc))
    return findings


def decode_finding(item: Any) -> Finding:
    """Build a :class:`Finding` from one decoded JSON object.

    Raises:
        ValidationError: If ``item`` does not match :data:`FINDING_SCHEMA`.
    """
    _FINDING_VALIDATOR.validate(item)
    severity = item.get("severity")
    return Finding(
        line_number=int(item["lineNumber"]),
        problematic_text=item["problematicText"],
        message=item.get("message") or "",
        severity=severity,
        fix=_decode_fix(item.get("fix")),
    )


def _decode_fix(value: Mapping[str, Any] | None) -> FindingFix | None:
    if value is None:
        return None
    replacement = value["replacement"]
    title = value.get("title") or f"Replace with '{replacement}'"
    return FindingFix(title=title, replacement=replacement)


def _format_validation_error(error: ValidationError) -> str:
    path = ".".join(str(part) for part in error.path)
    if path:
        return f"{path}: {error.message}"
    return error.message


def findings_to_json(findings: Sequence[Finding]) -> str:
    """Encode findings back to the wire format understood by :func:`parse_findings`."""
    return json.dumps([finding.to_dict() for finding in findings], ensure_ascii=False)
