"""Quick-fix code actions derived from located diagnostics."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from ..core.ranges import TextRange
from ..diagnostics.models import LocatedDiagnostic
from .document_model import TextDocument

__all__ = [
    "TextEdit",
    "CodeAction",
    "provide_code_actions",
    "apply_code_action",
    "apply_code_actions",
]

QUICK_FIX_KIND = "quickfix"


@dataclass(slots=True, frozen=True)
class TextEdit:
    """Replace ``range`` on ``line`` with ``new_text``."""

    line: int
    range: TextRange
    new_text: str


@dataclass(slots=True, frozen=True)
class CodeAction:
    """A titled, invocable edit tied to the diagnostic it resolves."""

    title: str
    uri: str
    edit: TextEdit
    diagnostic: LocatedDiagnostic
    kind: str = QUICK_FIX_KIND
    is_preferred: bool = True


def provide_code_actions(
    document: TextDocument,
    diagnostics: Iterable[LocatedDiagnostic],
) -> list[CodeAction]:
    """Return one quick fix per diagnostic that carries a fix."""

    actions: list[CodeAction] = []
    for diagnostic in diagnostics:
        fix = diagnostic.fix
        if fix is None:
            continue
        actions.append(
            CodeAction(
                title=fix.title,
                uri=document.uri,
                edit=TextEdit(line=diagnostic.line, range=diagnostic.range, new_text=fix.replacement),
                diagnostic=diagnostic,
            )
        )
    return actions


def apply_code_action(document: TextDocument, action: CodeAction) -> None:
    """Apply ``action`` to ``document`` in place.

    Raises:
        ValueError: If the targeted text changed since the diagnostic was made.
    """

    edit = action.edit
    line_text = document.line_at(edit.line)
    current = line_text[edit.range.start : edit.range.end]
    if not edit.range.within(len(line_text)) or current != action.diagnostic.problematic_text:
        raise ValueError(
            f"Line {edit.line} no longer contains {action.diagnostic.problematic_text!r}"
        )
    absolute = edit.range.shifted(document.line_offset(edit.line))
    document.update_text(absolute.replace_in(document.text, edit.new_text))


def apply_code_actions(document: TextDocument, actions: Sequence[CodeAction]) -> int:
    """Apply non-overlapping actions right-to-left so earlier ranges stay valid.

    Returns the number of actions applied; overlapping or stale ones are skipped.
    """

    ordered = sorted(actions, key=lambda a: (a.edit.line, a.edit.range.start), reverse=True)
    applied = 0
    previous: CodeAction | None = None
    for action in ordered:
        if (
            previous is not None
            and previous.edit.line == action.edit.line
            and action.edit.range.overlaps(previous.edit.range)
        ):
            continue
        try:
            apply_code_action(document, action)
        except ValueError:
            continue
        applied += 1
        previous = action
    return applied
