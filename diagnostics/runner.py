"""Diagnostics runner utilities."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence

from config.controller import ConfigSnapshot
from core.logging import logger as LOGGER
from diagnostics.models import DiagnosticReport, DiagnosticResult, DiagnosticStatus, Verdict

Check = Callable[[ConfigSnapshot], Iterable[DiagnosticResult]]

BANNER = (
    "╔══════════════════════════════════════════════════════╗",
    "║          LibyaLink Doctor - System Diagnostic        ║",
    "╚══════════════════════════════════════════════════════╝",
)


def _check_name(check: Check) -> str:
    func = getattr(check, "func", check)
    return getattr(func, "__name__", "unknown_check")


def run_diagnostics(checks: Sequence[Check], config: ConfigSnapshot) -> DiagnosticReport:
    """Run checks in registration order and collect every result."""

    results: list[DiagnosticResult] = []
    for check in checks:
        try:
            produced = list(check(config))
        except Exception as exc:  # noqa: BLE001 - diagnostics must keep running
            LOGGER.exception("Check failed: %s", _check_name(check))
            produced = [
                DiagnosticResult(
                    name=_check_name(check),
                    status=DiagnosticStatus.FAIL,
                    message=f"Check raised exception: {exc}",
                )
            ]
        LOGGER.debug("Check %s produced %d result(s)", _check_name(check), len(produced))
        results.extend(produced)
    return DiagnosticReport(results=tuple(results))


def format_verdict(report: DiagnosticReport) -> str:
    """Return the one-line summary for a report."""

    verdict = report.verdict
    if verdict is Verdict.HEALTHY:
        return f"{DiagnosticStatus.OK.glyph} System Healthy - All checks passed!"
    if verdict is Verdict.DEGRADED:
        return f"{DiagnosticStatus.WARN.glyph} System OK with {report.warn_count} warning(s)"
    return (
        f"{DiagnosticStatus.FAIL.glyph} {report.fail_count} error(s), "
        f"{report.warn_count} warning(s) found. Fix the issues above."
    )


def format_report(report: DiagnosticReport, banner: bool = True) -> str:
    """Return a human-friendly diagnostics report."""

    lines: list[str] = []
    if banner:
        lines.extend(BANNER)
        lines.append("")
    lines.append("─── Diagnostic Results ───")
    lines.append("")
    for result in report.results:
        lines.append(f"  {result.status.glyph}  [{result.name}] {result.message}")
    lines.append("")
    lines.append("─" * 26)
    lines.append(f"  {format_verdict(report)}")
    return "\n".join(lines)
