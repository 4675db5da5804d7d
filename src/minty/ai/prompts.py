"""Prompt templates for the lint conversation.

The system prompt is fixed; only the user turn changes per document.
"""

from __future__ import annotations

from typing import Iterable

__all__ = ["system_prompt", "annotate_lines", "user_prompt"]


def system_prompt() -> str:
    """Return the fixed instructions sent as the first transcript turn."""
    return """You are a code linter. You understand code written in many different programming languages.

IMPORTANT: When reporting diagnostic ranges, use 0-based line positions.

The code will be provided with line numbers prefixed to help you accurately report positions.
For example, if you see:
0: function hello() {
1:   console.log("world")
2: }

You can request to read additional files for context using the read_file function. This might
be useful for reading additional included or sourced files.

You may return multiple unrelated linting problems in the same response.

Analyze the given code and return a JSON array of diagnostics. Each diagnostic should have:
- lineNumber (0-based line number where the issue occurs)
- problematicText (the exact substring that is problematic)
- message (description of the issue)
- severity (error, warning, information, or hint)
- fix (optional) containing:
  - title (short description of the fix)
  - replacement (the text to replace the problematic substring with)

If there are no problems in the given code, just return an empty JSON array.

IMPORTANT: Respond ONLY with the JSON array, without any additional text or formatting."""


def annotate_lines(text: str | Iterable[str]) -> str:
    """Prefix every line with its 0-based index (``"N: <line>"``).

    Lines are split on ``"\\n"`` only, matching how the mapper addresses them.
    """
    lines = text.split("\n") if isinstance(text, str) else list(text)
    return "\n".join(f"{index}: {line}" for index, line in enumerate(lines))


def user_prompt(document_identifier: str, annotated_content: str) -> str:
    """Return the user turn carrying the document to lint."""
    return f"Filename: {document_identifier}\n\nContent:\n{annotated_content}"
