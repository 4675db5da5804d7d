"""Settings persistence, diagnostic publishing, and the lint service."""

from .diagnostic_collection import DiagnosticCollection
from .linter import GENERIC_FAILURE_MESSAGE, LintResult, LintService, get_lint_diagnostics
from .settings import SecretVault, Settings, SettingsStore, redact_secret

__all__ = [
    "DiagnosticCollection",
    "GENERIC_FAILURE_MESSAGE",
    "LintResult",
    "LintService",
    "SecretVault",
    "Settings",
    "SettingsStore",
    "get_lint_diagnostics",
    "redact_secret",
]
