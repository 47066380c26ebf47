"""Rule-based anomaly detectors."""

from src.detectors.cycles import detect_manual_completions, detect_skipped_cycles, year_over_year
from src.detectors.exceptions import CadenceError, DetectorError
from src.detectors.gateway import (
    check_detached_payment_method,
    check_environment_signals,
    check_gateway_communications,
)
from src.detectors.payments import check_payment_method_issues, check_payment_timing
from src.detectors.scheduler import (
    audit_scheduler,
    check_failed_action_count,
    check_missing_renewal_action,
    failed_actions_from_timeline,
)
from src.detectors.status import check_status_transitions, detect_status_mismatches

__all__ = [
    "CadenceError",
    "DetectorError",
    "audit_scheduler",
    "check_detached_payment_method",
    "check_environment_signals",
    "check_failed_action_count",
    "check_gateway_communications",
    "check_missing_renewal_action",
    "check_payment_method_issues",
    "check_payment_timing",
    "check_status_transitions",
    "detect_manual_completions",
    "detect_skipped_cycles",
    "detect_status_mismatches",
    "failed_actions_from_timeline",
    "year_over_year",
]
