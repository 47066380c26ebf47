"""Core module — config, types, logging."""

from src.core.config import (
    DiagnosticsConfig,
    LoggingConfig,
    Settings,
    get_settings,
    load_settings,
    reset_settings,
)
from src.core.logging import setup_logging
from src.core.types import (
    AnalysisReport,
    AnomalyResult,
    Discrepancy,
    DiscrepancyCategory,
    EventCategory,
    EventSource,
    EventStatus,
    ReportStatus,
    Severity,
    TimelineEvent,
    TimelineResult,
)

__all__ = [
    "AnalysisReport",
    "AnomalyResult",
    "DiagnosticsConfig",
    "Discrepancy",
    "DiscrepancyCategory",
    "EventCategory",
    "EventSource",
    "EventStatus",
    "LoggingConfig",
    "ReportStatus",
    "Settings",
    "Severity",
    "TimelineEvent",
    "TimelineResult",
    "get_settings",
    "load_settings",
    "reset_settings",
    "setup_logging",
]
