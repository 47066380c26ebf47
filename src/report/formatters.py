"""Pure functions that render results as JSON-safe dicts or console lines."""

from __future__ import annotations

from typing import Any

from src.core.types import AnalysisReport, Discrepancy, ReportStatus, Severity, TimelineResult

# ── Labels ──────────────────────────────────────────────────────

_SEVERITY_LABEL: dict[Severity, str] = {
    Severity.CRITICAL: "CRIT",
    Severity.HIGH: "HIGH",
    Severity.ERROR: "ERR ",
    Severity.MEDIUM: "MED ",
    Severity.WARNING: "WARN",
    Severity.INFO: "INFO",
}

_STATUS_LABEL: dict[ReportStatus, str] = {
    ReportStatus.HEALTHY: "Healthy",
    ReportStatus.WARNINGS: "Warnings",
    ReportStatus.ISSUES_FOUND: "Issues found",
}


# ── Dict renderers ──────────────────────────────────────────────


def report_to_dict(report: AnalysisReport) -> dict[str, Any]:
    """Report as plain JSON-compatible data."""
    return report.model_dump(mode="json")


def timeline_to_dict(result: TimelineResult) -> dict[str, Any]:
    data = result.model_dump(mode="json")
    data["pattern_analysis"]["gaps_detected"] = result.pattern_analysis.gaps_detected
    return data


# ── Console renderers ───────────────────────────────────────────


def format_discrepancy(discrepancy: Discrepancy) -> str:
    label = _SEVERITY_LABEL.get(discrepancy.severity, discrepancy.severity.value)
    line = f"[{label}] {discrepancy.type}: {discrepancy.description}"
    if discrepancy.suggested_next_date:
        line += f" (suggested next date {discrepancy.suggested_next_date})"
    return line


def format_report(report: AnalysisReport) -> list[str]:
    """Human-readable report, one line per entry."""
    stats = report.statistics
    lines = [
        f"Subscription #{report.subscription_id}: {_STATUS_LABEL[report.status]}",
        f"Findings: {stats.total} total, {stats.critical} critical, {stats.warnings} warnings",
    ]
    if report.partial:
        failed = ", ".join(report.failed_detectors) or "time budget exhausted"
        lines.append(f"Partial report: {failed}")

    lines.append("")
    for d in report.discrepancies:
        lines.append(format_discrepancy(d))
        if d.recommendation:
            lines.append(f"    -> {d.recommendation}")
    lines.append("")
    lines.append("Next steps:")
    lines.extend(f"  - {step}" for step in report.next_steps)
    return lines
