"""DiagnosticsEngine — runs the timeline and every detector for one subscription."""

from __future__ import annotations

import time
from collections.abc import Callable
from datetime import datetime
from typing import TypeVar

import structlog

from src.core.config import DiagnosticsConfig
from src.core.dates import utc_now
from src.core.types import (
    AnalysisReport,
    AnomalyResult,
    Discrepancy,
    PatternAnalysis,
    TimelineResult,
    YearOverYear,
)
from src.detectors.cycles import detect_manual_completions, detect_skipped_cycles, year_over_year
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
from src.engine.budget import Budget
from src.report.assembler import assemble_report, prioritize
from src.sources.base import BillingSource, Subscription
from src.sources.exceptions import SubscriptionNotFoundError
from src.sources.related import RelatedOrder, fetch_related_orders
from src.timeline.collector import EventCollector
from src.timeline.merger import merge, summarize
from src.timeline.patterns import analyze_patterns

logger = structlog.stdlib.get_logger()

T = TypeVar("T")


class _Run:
    """State for a single request: budget, clock reading and failures."""

    def __init__(
        self,
        source: BillingSource,
        subscription: Subscription,
        config: DiagnosticsConfig,
        budget: Budget,
        now: datetime,
    ) -> None:
        self.source = source
        self.subscription = subscription
        self.config = config
        self.budget = budget
        self.now = now
        self.failed: list[str] = []
        self.skipped: list[str] = []
        self._orders: list[RelatedOrder] | None = None

    @property
    def partial(self) -> bool:
        return bool(self.failed or self.skipped)

    def orders(self) -> list[RelatedOrder]:
        """Related orders, fetched on first use.

        Fetching happens inside whichever detector asks first, so a failing
        order store only costs the detectors that need orders.
        """
        if self._orders is None:
            self._orders = fetch_related_orders(
                self.source, self.subscription.id, self.config.max_related_orders,
            )
        return self._orders

    def run(self, name: str, fn: Callable[[], T], default: T) -> T:
        """Run one detector; failures and an exhausted budget yield ``default``."""
        if self.budget.exhausted():
            if not self.skipped:
                logger.warning(
                    "budget_exceeded",
                    subscription_id=self.subscription.id,
                    budget_secs=self.budget.seconds,
                    elapsed_secs=round(self.budget.elapsed, 3),
                    next_detector=name,
                )
            self.skipped.append(name)
            return default

        try:
            return fn()
        except Exception as exc:
            logger.exception(
                "detector_failed",
                detector=name,
                subscription_id=self.subscription.id,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            self.failed.append(name)
            return default


class DiagnosticsEngine:
    """Read-only diagnostic pipeline for one subscription at a time.

    Each public call loads the subscription, runs its detectors sequentially
    in a fixed order and returns a complete result. Collaborator failures
    become empty contributions; only an unknown subscription id raises.

    Usage::

        engine = DiagnosticsEngine(source)
        report = engine.assemble_report(42)
    """

    def __init__(
        self,
        source: BillingSource,
        config: DiagnosticsConfig | None = None,
        clock: Callable[[], float] | None = None,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        if config is None:
            from src.core.config import get_settings

            config = get_settings().diagnostics
        self._source = source
        self._config = config
        self._clock = clock or time.monotonic
        self._now = now or utc_now
        self._collector = EventCollector(source, config)

    @property
    def config(self) -> DiagnosticsConfig:
        return self._config

    # ── Public operations ───────────────────────────────────────

    def build_timeline(self, subscription_id: int) -> TimelineResult:
        return self._timeline(self._start(subscription_id))

    def detect_anomalies(self, subscription_id: int) -> AnomalyResult:
        return self._anomalies(self._start(subscription_id))

    def analyze_discrepancies(self, subscription_id: int) -> list[Discrepancy]:
        """Payment, scheduler, status and gateway findings, severity-ranked."""
        return self._discrepancies(self._start(subscription_id))

    def assemble_report(self, subscription_id: int) -> AnalysisReport:
        """Run everything and roll the findings into one report."""
        ctx = self._start(subscription_id)
        timeline = self._timeline(ctx)
        anomalies = self._anomalies(ctx)
        discrepancies = self._discrepancies(ctx)

        report = assemble_report(
            subscription_id,
            [*timeline.discrepancies, *anomalies.all_discrepancies(), *discrepancies],
            partial=ctx.partial,
            failed_detectors=ctx.failed,
        )
        logger.info(
            "analysis_completed",
            subscription_id=subscription_id,
            status=report.status,
            findings=report.statistics.total,
            partial=report.partial,
            elapsed_secs=round(ctx.budget.elapsed, 3),
        )
        return report

    # ── Internals ───────────────────────────────────────────────

    def _start(self, subscription_id: int) -> _Run:
        subscription = self._source.get_subscription(subscription_id)
        if subscription is None:
            logger.warning("subscription_not_found", subscription_id=subscription_id)
            raise SubscriptionNotFoundError(subscription_id)
        return _Run(
            source=self._source,
            subscription=subscription,
            config=self._config,
            budget=Budget(self._config.time_budget_secs, self._clock),
            now=self._now(),
        )

    def _timeline(self, ctx: _Run) -> TimelineResult:
        sub = ctx.subscription
        events = merge(ctx.run(
            "timeline_events", lambda: self._collector.collect(sub, ctx.orders), [],
        ))
        discrepancies = ctx.run(
            "timeline_failed_actions", lambda: failed_actions_from_timeline(events), [],
        )
        patterns = ctx.run(
            "pattern_analysis",
            lambda: analyze_patterns(events, sub, self._config.skipped_cycle_grace_days),
            PatternAnalysis(),
        )
        return TimelineResult(
            subscription_id=sub.id,
            events=events,
            event_count=len(events),
            discrepancies=discrepancies,
            summary=summarize(events),
            pattern_analysis=patterns,
        )

    def _anomalies(self, ctx: _Run) -> AnomalyResult:
        sub, cfg, now = ctx.subscription, self._config, ctx.now
        return AnomalyResult(
            subscription_id=sub.id,
            skipped_cycles=ctx.run(
                "skipped_cycles",
                lambda: detect_skipped_cycles(sub, ctx.orders(), cfg, now),
                [],
            ),
            manual_completions=ctx.run(
                "manual_completions", lambda: detect_manual_completions(ctx.orders(), cfg), [],
            ),
            status_mismatches=ctx.run(
                "status_mismatches", lambda: detect_status_mismatches(sub, now), [],
            ),
            scheduler_audit=ctx.run(
                "scheduler_audit", lambda: audit_scheduler(self._source, sub.id), [],
            ),
            year_over_year=ctx.run(
                "year_over_year", lambda: year_over_year(ctx.orders()), YearOverYear(),
            ),
        )

    def _discrepancies(self, ctx: _Run) -> list[Discrepancy]:
        sub, cfg, now, source = ctx.subscription, self._config, ctx.now, self._source
        checks: list[tuple[str, Callable[[], list[Discrepancy]]]] = [
            ("payment_timing", lambda: check_payment_timing(sub, cfg, now)),
            ("missing_renewal_action", lambda: check_missing_renewal_action(source, sub, cfg)),
            ("failed_action_count", lambda: check_failed_action_count(source, sub.id, cfg)),
            ("status_transitions", lambda: check_status_transitions(sub, cfg, now)),
            (
                "gateway_communications",
                lambda: check_gateway_communications(source, sub, ctx.orders(), cfg, now),
            ),
            (
                "detached_payment_method",
                lambda: check_detached_payment_method(source, sub, ctx.orders(), cfg),
            ),
            ("environment_signals", lambda: check_environment_signals(source, sub)),
            ("payment_method", lambda: check_payment_method_issues(sub, cfg)),
        ]

        findings: list[Discrepancy] = []
        for name, check in checks:
            findings.extend(ctx.run(name, check, []))
        return prioritize(findings)
