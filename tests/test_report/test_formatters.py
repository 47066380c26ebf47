"""Tests for report and timeline renderers."""

from __future__ import annotations

import json

from src.core.dates import normalize
from src.core.types import (
    Discrepancy,
    DiscrepancyCategory,
    EventCategory,
    EventSource,
    PatternAnalysis,
    Severity,
    TimelineEvent,
    TimelineGap,
    TimelineResult,
)
from src.report.assembler import assemble_report
from src.report.formatters import (
    format_discrepancy,
    format_report,
    report_to_dict,
    timeline_to_dict,
)


def _finding(severity: Severity = Severity.CRITICAL, **fields: object) -> Discrepancy:
    return Discrepancy(
        type="missing_renewal_action",
        category=DiscrepancyCategory.SCHEDULER_ISSUE,
        severity=severity,
        description="No renewal action scheduled for next payment",
        recommendation="Schedule it.",
        **fields,
    )


class TestFormatDiscrepancy:
    def test_basic(self) -> None:
        line = format_discrepancy(_finding())
        assert line == "[CRIT] missing_renewal_action: No renewal action scheduled for next payment"

    def test_suggested_date(self) -> None:
        line = format_discrepancy(_finding(Severity.WARNING, suggested_next_date="2024-01-31"))
        assert line.startswith("[WARN]")
        assert line.endswith("(suggested next date 2024-01-31)")


class TestFormatReport:
    def test_lines(self) -> None:
        report = assemble_report(42, [_finding()], generated_at="2024-06-01 00:00:00")
        lines = format_report(report)
        assert lines[0] == "Subscription #42: Issues found"
        assert lines[1] == "Findings: 1 total, 1 critical, 0 warnings"
        assert "    -> Schedule it." in lines
        assert "Next steps:" in lines

    def test_partial_line(self) -> None:
        report = assemble_report(42, [], failed_detectors=["scheduler_audit", "year_over_year"])
        assert "Partial report: scheduler_audit, year_over_year" in format_report(report)

    def test_partial_from_budget(self) -> None:
        report = assemble_report(42, [], partial=True)
        assert "Partial report: time budget exhausted" in format_report(report)


class TestDictRenderers:
    def test_report_is_json_safe(self) -> None:
        report = assemble_report(42, [_finding()], generated_at="2024-06-01 00:00:00")
        data = report_to_dict(report)
        assert data["status"] == "issues_found"
        assert data["discrepancies"][0]["severity"] == "critical"
        json.dumps(data)

    def test_timeline_includes_gap_flag(self) -> None:
        result = TimelineResult(
            subscription_id=42,
            events=[TimelineEvent(
                timestamp=normalize("2024-01-01"),
                category=EventCategory.ORDER,
                kind="order_created",
                source=EventSource.ORDER_DATA,
            )],
            event_count=1,
            pattern_analysis=PatternAnalysis(gaps=[TimelineGap(
                start="2024-01-01 00:00:00",
                end="2024-05-01 00:00:00",
                gap_days=121.0,
                expected_days=30,
            )]),
        )
        data = timeline_to_dict(result)
        assert data["pattern_analysis"]["gaps_detected"] is True
        assert data["events"][0]["timestamp"].startswith("2024-01-01T00:00:00")
        json.dumps(data)
