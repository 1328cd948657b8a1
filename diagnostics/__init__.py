"""Diagnostics helpers for the LibyaLink server."""

from diagnostics.models import DiagnosticReport, DiagnosticResult, DiagnosticStatus, Verdict
from diagnostics.runner import format_report, run_diagnostics

__all__ = [
    "DiagnosticReport",
    "DiagnosticResult",
    "DiagnosticStatus",
    "Verdict",
    "format_report",
    "run_diagnostics",
]
