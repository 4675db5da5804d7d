"""Document model and quick-fix helpers."""

from .code_actions import CodeAction, TextEdit, apply_code_action, apply_code_actions, provide_code_actions
from .document_model import LineSource, TextDocument

__all__ = [
    "CodeAction",
    "LineSource",
    "TextDocument",
    "TextEdit",
    "apply_code_action",
    "apply_code_actions",
    "provide_code_actions",
]
