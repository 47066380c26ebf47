"""Domain types for subscription diagnostics — timeline events and findings."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# ── Timeline Types ──────────────────────────────────────────────


class EventCategory(StrEnum):
    """Grouping of a timeline event by the record it came from."""

    SUBSCRIPTION = "subscription"
    ORDER = "order"
    PAYMENT = "payment"
    SYSTEM = "system"


class EventStatus(StrEnum):
    """Outcome signalled by a timeline event."""

    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class EventSource(StrEnum):
    """Which collaborator produced a timeline event."""

    SUBSCRIPTION_DATES = "subscription_dates"
    SUBSCRIPTION_NOTES = "subscription_notes"
    ORDER_DATA = "order_data"
    ORDER_NOTES = "order_notes"
    SCHEDULER = "action_scheduler"


class TimelineEvent(BaseModel):
    """One observed occurrence, normalized onto the shared timeline."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    category: EventCategory
    kind: str
    title: str = ""
    description: str = ""
    status: EventStatus = EventStatus.INFO
    source: EventSource
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def timestamp_str(self) -> str:
        return self.timestamp.strftime("%Y-%m-%d %H:%M:%S")


class TimelineSummary(BaseModel):
    """Counts over a merged timeline."""

    total_events: int = 0
    event_types: dict[str, int] = Field(default_factory=dict)
    categories: dict[str, int] = Field(default_factory=dict)
    status_counts: dict[str, int] = Field(default_factory=dict)
    date_range_start: str | None = None
    date_range_end: str | None = None


class RenewalPattern(BaseModel):
    """Observed renewal cadence versus the configured billing schedule."""

    expected_interval: str = ""
    renewal_count: int = 0
    median_gap_days: float | None = None
    pattern_consistent: bool = True


class PaymentPattern(BaseModel):
    """Payment successes and failures seen on the timeline."""

    successful_payments: int = 0
    failed_payments: int = 0
    pattern_consistent: bool = True


class ErrorPattern(BaseModel):
    """Error-status events seen on the timeline."""

    error_count: int = 0
    common_errors: list[str] = Field(default_factory=list)
    error_frequency: str = "low"


class TimelineGap(BaseModel):
    """Stretch between two payment events longer than two billing periods."""

    start: str
    end: str
    gap_days: float
    expected_days: int


class PatternAnalysis(BaseModel):
    """Heuristic reading of a merged timeline."""

    renewal_pattern: RenewalPattern = Field(default_factory=RenewalPattern)
    payment_pattern: PaymentPattern = Field(default_factory=PaymentPattern)
    error_pattern: ErrorPattern = Field(default_factory=ErrorPattern)
    gaps: list[TimelineGap] = Field(default_factory=list)

    @property
    def gaps_detected(self) -> bool:
        return bool(self.gaps)


# ── Finding Types ───────────────────────────────────────────────


class Severity(StrEnum):
    """Severity of a finding. Ranking lives in ``SEVERITY_RANK``."""

    CRITICAL = "critical"
    HIGH = "high"
    ERROR = "error"
    MEDIUM = "medium"
    WARNING = "warning"
    INFO = "info"


# Lower rank sorts first. error shares a rank with high.
SEVERITY_RANK: dict[Severity, int] = {
    Severity.CRITICAL: 0,
    Severity.HIGH: 1,
    Severity.ERROR: 1,
    Severity.MEDIUM: 2,
    Severity.WARNING: 2,
    Severity.INFO: 3,
}

CRITICAL_SEVERITIES = frozenset({Severity.CRITICAL, Severity.ERROR, Severity.HIGH})
WARNING_SEVERITIES = frozenset({Severity.WARNING, Severity.MEDIUM})


class DiscrepancyCategory(StrEnum):
    """UI grouping for a finding."""

    PAYMENT_TIMING = "payment_timing"
    SCHEDULER_ISSUE = "scheduler_issue"
    STATUS_ISSUE = "status_issue"
    GATEWAY_COMMUNICATION = "gateway_communication"
    CONFIGURATION = "configuration"
    PAYMENT_METHOD = "payment_method"
    BILLING_CYCLE = "billing_cycle"


class Discrepancy(BaseModel):
    """One anomaly reported by a detector."""

    type: str
    category: DiscrepancyCategory
    severity: Severity
    description: str = ""
    recommendation: str = ""
    details: dict[str, Any] = Field(default_factory=dict)
    correctable: bool = False
    suggested_next_date: str | None = None
    source: str = ""

    @property
    def rank(self) -> int:
        return SEVERITY_RANK[self.severity]


class YearOverYear(BaseModel):
    """Renewal counts per calendar year and the years with none."""

    missing_years: list[Discrepancy] = Field(default_factory=list)
    yearly_summary: dict[int, int] = Field(default_factory=dict)


class AnomalyResult(BaseModel):
    """Output of the enhanced anomaly pass."""

    subscription_id: int
    skipped_cycles: list[Discrepancy] = Field(default_factory=list)
    manual_completions: list[Discrepancy] = Field(default_factory=list)
    status_mismatches: list[Discrepancy] = Field(default_factory=list)
    scheduler_audit: list[Discrepancy] = Field(default_factory=list)
    year_over_year: YearOverYear = Field(default_factory=YearOverYear)

    def all_discrepancies(self) -> list[Discrepancy]:
        """Flatten every section in emission order."""
        return [
            *self.skipped_cycles,
            *self.manual_completions,
            *self.status_mismatches,
            *self.scheduler_audit,
            *self.year_over_year.missing_years,
        ]


class TimelineResult(BaseModel):
    """Merged timeline plus the findings derived from it."""

    subscription_id: int
    events: list[TimelineEvent] = Field(default_factory=list)
    event_count: int = 0
    discrepancies: list[Discrepancy] = Field(default_factory=list)
    summary: TimelineSummary = Field(default_factory=TimelineSummary)
    pattern_analysis: PatternAnalysis = Field(default_factory=PatternAnalysis)


# ── Report Types ────────────────────────────────────────────────


class ReportStatus(StrEnum):
    """Rolled-up health of a subscription."""

    HEALTHY = "healthy"
    WARNINGS = "warnings"
    ISSUES_FOUND = "issues_found"


class ReportStatistics(BaseModel):
    """Finding counts by severity bucket."""

    total: int = 0
    critical: int = 0
    warnings: int = 0


class AnalysisReport(BaseModel):
    """Severity-ranked findings for one subscription."""

    subscription_id: int
    status: ReportStatus = ReportStatus.HEALTHY
    discrepancies: list[Discrepancy] = Field(default_factory=list)
    statistics: ReportStatistics = Field(default_factory=ReportStatistics)
    next_steps: list[str] = Field(default_factory=list)
    partial: bool = False
    failed_detectors: list[str] = Field(default_factory=list)
    generated_at: str = ""
