"""Finding and diagnostic records produced by a lint pass."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..core.ranges import TextRange

__all__ = ["Severity", "FindingFix", "Finding", "LocatedDiagnostic"]


class Severity(Enum):
    """Diagnostic severity level."""

    ERROR = "error"
    WARNING = "warning"
    INFORMATION = "information"
    HINT = "hint"

    @classmethod
    def from_label(cls, label: Any) -> Severity:
        """Map a model-reported label case-insensitively; unknown -> INFORMATION."""
        if isinstance(label, str):
            try:
                return cls(label.strip().lower())
            except ValueError:
                pass
        return cls.INFORMATION


@dataclass(slots=True, frozen=True)
class FindingFix:
    """Quick fix attached to a finding: replace the problematic text."""

    title: str
    replacement: str

    def to_dict(self) -> dict[str, str]:
        return {"title": self.title, "replacement": self.replacement}


@dataclass(slots=True, frozen=True)
class Finding:
    """One model-reported issue before location reconciliation.

    ``severity`` keeps the label exactly as reported; it is only interpreted
    when the finding is mapped.
    """

    line_number: int
    problematic_text: str
    message: str = ""
    severity: str | None = None
    fix: FindingFix | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "lineNumber": self.line_number,
            "problematicText": self.problematic_text,
            "message": self.message,
        }
        if self.severity is not None:
            payload["severity"] = self.severity
        if self.fix is not None:
            payload["fix"] = self.fix.to_dict()
        return payload


@dataclass(slots=True, frozen=True)
class LocatedDiagnostic:
    """A finding resolved to an exact column range on its line."""

    line: int
    range: TextRange
    message: str
    severity: Severity
    problematic_text: str
    fix: FindingFix | None = None
    source: str = "minty"

    @property
    def start_column(self) -> int:
        return self.range.start

    @property
    def end_column(self) -> int:
        return self.range.end

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "line": self.line,
            "startColumn": self.start_column,
            "endColumn": self.end_column,
            "severity": self.severity.value,
            "message": self.message,
            "problematicText": self.problematic_text,
            "source": self.source,
        }
        if self.fix is not None:
            payload["fix"] = self.fix.to_dict()
        return payload

    @classmethod
    def from_finding(cls, finding: Finding, start: int) -> LocatedDiagnostic:
        end = start + len(finding.problematic_text)
        return cls(
            line=finding.line_number,
            range=TextRange(start, end),
            message=finding.message,
            severity=Severity.from_label(finding.severity),
            problematic_text=finding.problematic_text,
            fix=finding.fix,
        )
