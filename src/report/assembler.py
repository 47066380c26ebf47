"""Report assembler — ranks findings and rolls them up into one report."""

from __future__ import annotations

from collections.abc import Iterable

from src.core.dates import format_instant, utc_now
from src.core.types import (
    CRITICAL_SEVERITIES,
    WARNING_SEVERITIES,
    AnalysisReport,
    Discrepancy,
    ReportStatistics,
    ReportStatus,
)

HEALTHY_STEPS = [
    "No issues detected. The subscription appears to be functioning normally.",
]
INCOMPLETE_STEPS = [
    "No issues detected by the checks that completed; the subscription health is unconfirmed.",
]
ISSUE_STEPS = [
    "Review the identified issues above and take appropriate action.",
    "Consider contacting your billing platform's support if issues persist.",
]
PARTIAL_STEP = "Some checks did not complete; re-run the analysis for a complete report."

# Finding types that mark a report as having issues whatever their severity.
ISSUE_TYPES = frozenset({"skipped_cycle"})


def prioritize(discrepancies: Iterable[Discrepancy]) -> list[Discrepancy]:
    """Stable sort by severity rank; equal ranks keep emission order."""
    return sorted(discrepancies, key=lambda d: d.rank)


def compute_statistics(discrepancies: list[Discrepancy]) -> ReportStatistics:
    return ReportStatistics(
        total=len(discrepancies),
        critical=sum(1 for d in discrepancies if d.severity in CRITICAL_SEVERITIES),
        warnings=sum(1 for d in discrepancies if d.severity in WARNING_SEVERITIES),
    )


def rollup_status(
    statistics: ReportStatistics,
    discrepancies: Iterable[Discrepancy] = (),
) -> ReportStatus:
    """Highest severity wins; a skipped billing cycle always counts as an issue."""
    if statistics.critical or any(d.type in ISSUE_TYPES for d in discrepancies):
        return ReportStatus.ISSUES_FOUND
    if statistics.warnings:
        return ReportStatus.WARNINGS
    return ReportStatus.HEALTHY


def next_steps(discrepancies: list[Discrepancy], partial: bool = False) -> list[str]:
    if discrepancies:
        steps = list(ISSUE_STEPS)
    elif partial:
        steps = list(INCOMPLETE_STEPS)
    else:
        steps = list(HEALTHY_STEPS)
    if partial:
        steps.append(PARTIAL_STEP)
    return steps


def assemble_report(
    subscription_id: int,
    discrepancies: Iterable[Discrepancy],
    *,
    partial: bool = False,
    failed_detectors: list[str] | None = None,
    generated_at: str | None = None,
) -> AnalysisReport:
    """Build the severity-ranked report.

    Findings from different detectors are concatenated as-is; two rules
    reporting the same underlying problem both appear.
    """
    ranked = prioritize(discrepancies)
    statistics = compute_statistics(ranked)
    failed = list(failed_detectors or [])
    is_partial = partial or bool(failed)
    return AnalysisReport(
        subscription_id=subscription_id,
        status=rollup_status(statistics, ranked),
        discrepancies=ranked,
        statistics=statistics,
        next_steps=next_steps(ranked, is_partial),
        partial=is_partial,
        failed_detectors=failed,
        generated_at=generated_at or format_instant(utc_now()),
    )
