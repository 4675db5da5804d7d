"""Reconcile model findings with the live document.

Models report a line number and the literal text they object to. Both can
drift from the real file (stale numbering, paraphrased text), so every
finding is re-located on its line and dropped when it no longer matches.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Iterable

from ..ai.errors import OutOfRangeLine, UnmappableFinding
from ..editor.document_model import LineSource
from .models import Finding, LocatedDiagnostic

__all__ = ["LinePolicy", "locate_finding", "map_findings"]

LOGGER = logging.getLogger(__name__)


class LinePolicy(str, Enum):
    """What to do with a finding whose line number is past the document end."""

    SKIP = "skip"
    ABORT = "abort"

    @classmethod
    def coerce(cls, value: LinePolicy | str | None) -> LinePolicy:
        if isinstance(value, LinePolicy):
            return value
        if value is None:
            return cls.SKIP
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            raise ValueError(f"Unknown line policy {value!r}; expected 'skip' or 'abort'") from exc


def locate_finding(finding: Finding, document: LineSource) -> LocatedDiagnostic:
    """Resolve ``finding`` to an exact range on its reported line.

    Raises:
        OutOfRangeLine: If the line number exceeds the document.
        UnmappableFinding: If the text does not occur verbatim on the line.
    """
    line_count = document.line_count
    if finding.line_number >= line_count:
        raise OutOfRangeLine(
            message=f"Line {finding.line_number} is outside the document ({line_count} lines)",
            line_number=finding.line_number,
            problematic_text=finding.problematic_text,
            line_count=line_count,
        )
    if not finding.problematic_text:
        raise UnmappableFinding(
            message="Finding has no problematic text",
            line_number=finding.line_number,
            problematic_text=finding.problematic_text,
        )

    line_text = document.line_at(finding.line_number)
    start = line_text.find(finding.problematic_text)
    if start == -1:
        raise UnmappableFinding(
            message=(
                f'Problematic text "{finding.problematic_text}" not found on line {finding.line_number}'
            ),
            line_number=finding.line_number,
            problematic_text=finding.problematic_text,
        )
    return LocatedDiagnostic.from_finding(finding, start)


def map_findings(
    findings: Iterable[Finding],
    document: LineSource,
    *,
    line_policy: LinePolicy | str = LinePolicy.SKIP,
) -> list[LocatedDiagnostic]:
    """Map every finding onto ``document``, dropping the ones that do not match.

    With ``line_policy="abort"`` an out-of-range line number fails the whole
    batch with :class:`OutOfRangeLine`; otherwise it is dropped like any other
    unmappable finding.
    """
    policy = LinePolicy.coerce(line_policy)
    diagnostics: list[LocatedDiagnostic] = []
    for finding in findings:
        try:
            diagnostics.append(locate_finding(finding, document))
        except OutOfRangeLine as exc:
            if policy is LinePolicy.ABORT:
                raise
            LOGGER.warning("%s", exc.message)
        except UnmappableFinding as exc:
            LOGGER.warning("%s", exc.message)
    return diagnostics
