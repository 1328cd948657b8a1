"""Models for diagnostics results."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class DiagnosticStatus(str, Enum):
    """Status for diagnostics checks, ordered OK < WARN < FAIL."""

    OK = "OK"
    WARN = "WARN"
    FAIL = "FAIL"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]

    @property
    def glyph(self) -> str:
        return _GLYPHS[self]


_SEVERITY = {
    DiagnosticStatus.OK: 0,
    DiagnosticStatus.WARN: 1,
    DiagnosticStatus.FAIL: 2,
}

_GLYPHS = {
    DiagnosticStatus.OK: "✅",
    DiagnosticStatus.WARN: "⚠️",
    DiagnosticStatus.FAIL: "❌",
}


class Verdict(str, Enum):
    """Whole-run classification of a diagnostics report."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    BROKEN = "broken"


@dataclass(frozen=True)
class DiagnosticResult:
    """Result for a single diagnostic check."""

    name: str
    status: DiagnosticStatus
    message: str


@dataclass(frozen=True)
class DiagnosticReport:
    """Ordered results of one diagnostics run with derived counts."""

    results: tuple[DiagnosticResult, ...] = ()

    def count(self, status: DiagnosticStatus) -> int:
        return sum(1 for result in self.results if result.status is status)

    @property
    def fail_count(self) -> int:
        return self.count(DiagnosticStatus.FAIL)

    @property
    def warn_count(self) -> int:
        return self.count(DiagnosticStatus.WARN)

    @property
    def ok_count(self) -> int:
        return self.count(DiagnosticStatus.OK)

    @property
    def worst_status(self) -> DiagnosticStatus:
        """Return the most severe status in the report, OK when empty."""

        return max(
            (result.status for result in self.results),
            key=lambda status: status.severity,
            default=DiagnosticStatus.OK,
        )

    @property
    def verdict(self) -> Verdict:
        if self.fail_count:
            return Verdict.BROKEN
        if self.warn_count:
            return Verdict.DEGRADED
        return Verdict.HEALTHY

    @property
    def exit_code(self) -> int:
        """Process exit code: failure only when a FAIL result exists."""

        return 1 if self.fail_count else 0
