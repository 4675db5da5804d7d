"""Parsing and mapping of model findings into located diagnostics."""

from .mapper import LinePolicy, locate_finding, map_findings
from .models import Finding, FindingFix, LocatedDiagnostic, Severity
from .parser import clean_response, extract_final_answer, findings_to_json, parse_findings

__all__ = [
    "Finding",
    "FindingFix",
    "LinePolicy",
    "LocatedDiagnostic",
    "Severity",
    "clean_response",
    "extract_final_answer",
    "findings_to_json",
    "locate_finding",
    "map_findings",
    "parse_findings",
]
