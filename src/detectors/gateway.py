"""Gateway communication checks, including detached payment credentials.

Detachment is inferred from free text: the gateway writes its error into
order and subscription notes, and a handful of literal phrases identify the
failure mode. Environment signals are reported alongside because cloned and
staging sites are the usual cause.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

import structlog

from src.core.config import DiagnosticsConfig
from src.core.dates import ceil_days, format_instant, normalize, to_instant
from src.core.types import Discrepancy, DiscrepancyCategory, Severity
from src.sources.base import BillingSource, Note, RelatedOrderType, Subscription
from src.sources.related import RelatedOrder

logger = structlog.stdlib.get_logger()

TOKEN_META = "_payment_token_id"
TOKEN_EXPIRY_META = "_payment_token_expiry"
STRIPE_CUSTOMER_META = "_stripe_customer_id"
PAYPAL_SUBSCRIPTION_META = "_paypal_subscription_id"

FAILED_RENEWAL_STATUSES = frozenset({"failed", "cancelled"})
NON_PRODUCTION_ENVIRONMENTS = frozenset({"staging", "development"})

# Reported by the detachment check rather than as a renewal error.
DETACHMENT_ERROR_CODE = "payment_method_attached_to_another_customer"

EVIDENCE_CHARS = 200


def match_pattern(content: str, patterns: list[str]) -> str | None:
    """First pattern found in ``content``, case-insensitively."""
    lowered = content.lower()
    for pattern in patterns:
        if pattern.lower() in lowered:
            return pattern
    return None


def _renewals(orders: list[RelatedOrder]) -> list[RelatedOrder]:
    return [r for r in orders if r.relation == RelatedOrderType.RENEWAL]


def _failed_renewals(orders: list[RelatedOrder]) -> list[RelatedOrder]:
    return [
        r for r in _renewals(orders)
        if r.order.status.lower() in FAILED_RENEWAL_STATUSES
    ]


def _recent_notes(
    source: BillingSource,
    subscription: Subscription,
    orders: list[RelatedOrder],
    limit: int,
) -> list[Note]:
    notes = list(source.get_notes(subscription.id, limit=limit, newest_first=True))
    for related in _renewals(orders):
        notes.extend(source.get_notes(related.order.id, limit=limit, newest_first=True))
    notes.sort(key=lambda n: normalize(n.created_at), reverse=True)
    return notes[:limit]


def check_detached_payment_method(
    source: BillingSource,
    subscription: Subscription,
    orders: list[RelatedOrder],
    config: DiagnosticsConfig,
) -> list[Discrepancy]:
    """Direct note evidence first, then the failed-renewal heuristic."""
    patterns = config.detached_patterns
    evidence: list[dict[str, Any]] = []

    for note in _recent_notes(source, subscription, orders, config.note_scan_limit):
        pattern = match_pattern(note.content, patterns)
        if pattern is None:
            continue
        created = note.created
        evidence.append({
            "note_id": note.id,
            "date": format_instant(created) if created else None,
            "error_text": pattern,
            "note_content": note.content[:EVIDENCE_CHARS],
        })

    stripe_customer = subscription.get_meta(STRIPE_CUSTOMER_META)
    if evidence:
        logger.info(
            "detached_payment_method_found",
            subscription_id=subscription.id,
            notes=len(evidence),
        )
        return [Discrepancy(
            type="detached_payment_method",
            category=DiscrepancyCategory.GATEWAY_COMMUNICATION,
            severity=Severity.CRITICAL,
            description=(
                "Payment method detachment detected, likely caused by a cloned or staging site"
            ),
            recommendation=(
                "Update the gateway plugin to a release that handles cloned sites. If it is"
                " already current, re-attach the payment method to the gateway customer or"
                " contact the gateway's support."
            ),
            details={
                "error_count": len(evidence),
                "errors": evidence,
                "subscription_id": subscription.id,
                "gateway_customer_id": stripe_customer,
            },
            source="gateway_detachment",
        )]

    token = subscription.get_meta(TOKEN_META)
    if not token or not stripe_customer:
        return []

    affected = 0
    for related in _failed_renewals(orders):
        notes = source.get_notes(
            related.order.id, limit=config.renewal_note_limit, newest_first=True,
        )
        if any(match_pattern(n.content, patterns) for n in notes):
            affected += 1

    if not affected:
        return []

    return [Discrepancy(
        type="potential_detached_payment_method",
        category=DiscrepancyCategory.GATEWAY_COMMUNICATION,
        severity=Severity.HIGH,
        description=(
            f"Potential payment method detachment: {affected} failed renewal(s)"
            " with gateway errors"
        ),
        recommendation=(
            "Review failed renewal orders for payment method errors. This may indicate"
            " a detached payment method from a cloned or staging site."
        ),
        details={
            "failed_renewals": affected,
            "payment_token_id": token,
            "gateway_customer_id": stripe_customer,
        },
        source="gateway_detachment",
    )]


def check_environment_signals(
    source: BillingSource,
    subscription: Subscription,
) -> list[Discrepancy]:
    """Conditions known to correlate with detachment, even without evidence."""
    findings: list[Discrepancy] = []

    if source.is_duplicate_site():
        findings.append(Discrepancy(
            type="cloned_site_detected",
            category=DiscrepancyCategory.CONFIGURATION,
            severity=Severity.WARNING,
            description="Duplicate site detected, payment methods may be detached",
            recommendation=(
                "Ensure the gateway plugin includes fixes for cloned sites and monitor"
                " renewals closely."
            ),
            details={"is_duplicate": True},
            source="environment",
        ))

    environment = (source.environment_type() or "").lower()
    customer = subscription.get_meta(STRIPE_CUSTOMER_META)
    if environment in NON_PRODUCTION_ENVIRONMENTS and customer:
        findings.append(Discrepancy(
            type="staging_environment_gateway",
            category=DiscrepancyCategory.CONFIGURATION,
            severity=Severity.INFO,
            description=(
                f"Running in {environment} environment with a live gateway customer;"
                " ensure payment methods are properly configured"
            ),
            recommendation=(
                "Non-production environments can detach payment methods. Ensure the"
                " gateway has its safeguards enabled."
            ),
            details={"environment_type": environment, "gateway_customer_id": customer},
            source="environment",
        ))

    return findings


def _token_findings(
    subscription: Subscription,
    config: DiagnosticsConfig,
    now: datetime,
) -> list[Discrepancy]:
    findings: list[Discrepancy] = []
    method = subscription.payment_method
    automatic = (
        bool(method)
        and method not in config.manual_payment_methods
        and not subscription.requires_manual_renewal
    )

    if automatic and not subscription.get_meta(TOKEN_META):
        findings.append(Discrepancy(
            type="missing_payment_token",
            category=DiscrepancyCategory.GATEWAY_COMMUNICATION,
            severity=Severity.CRITICAL,
            description="No payment token found for subscription",
            recommendation=(
                "Check payment method configuration and ensure tokenization is working."
            ),
            details={"payment_method": method, "subscription_id": subscription.id},
            source="gateway_communications",
        ))

    expiry = to_instant(subscription.get_meta(TOKEN_EXPIRY_META))
    if expiry is None:
        return findings

    if expiry < now:
        findings.append(Discrepancy(
            type="expired_payment_method",
            category=DiscrepancyCategory.GATEWAY_COMMUNICATION,
            severity=Severity.CRITICAL,
            description="Payment method has expired",
            recommendation="Contact customer to update payment method.",
            details={
                "expiry_date": format_instant(expiry),
                "days_expired": ceil_days(now - expiry),
            },
            source="gateway_communications",
        ))
    else:
        days_left = ceil_days(expiry - now)
        if days_left <= config.expiring_method_warning_days:
            findings.append(Discrepancy(
                type="expiring_payment_method",
                category=DiscrepancyCategory.GATEWAY_COMMUNICATION,
                severity=Severity.WARNING,
                description=f"Payment method expires in {days_left} days",
                recommendation="Notify customer to update payment method before expiry.",
                details={"expiry_date": format_instant(expiry), "days_until_expiry": days_left},
                source="gateway_communications",
            ))
    return findings


def _renewal_error_findings(
    source: BillingSource,
    orders: list[RelatedOrder],
    config: DiagnosticsConfig,
) -> list[Discrepancy]:
    codes = [c for c in config.gateway_error_codes if c != DETACHMENT_ERROR_CODE]
    summary: dict[str, dict[str, Any]] = {}

    for related in _failed_renewals(orders):
        notes = source.get_notes(
            related.order.id, limit=config.gateway_error_note_limit, newest_first=True,
        )
        for note in notes:
            code = match_pattern(note.content, codes)
            if code is None:
                continue
            entry = summary.setdefault(code, {"count": 0, "order_ids": [], "last_seen": None})
            entry["count"] += 1
            if related.order.id not in entry["order_ids"]:
                entry["order_ids"].append(related.order.id)
            created = note.created
            if created is not None and (entry["last_seen"] is None or created > entry["last_seen"]):
                entry["last_seen"] = created

    return [
        Discrepancy(
            type="stripe_renewal_error",
            category=DiscrepancyCategory.GATEWAY_COMMUNICATION,
            severity=Severity.HIGH,
            description=f"Stripe renewal error detected: {code} ({data['count']} occurrence(s))",
            recommendation=(
                "Review failed renewal orders and contact customer to resolve payment"
                " method issues."
            ),
            details={
                "error_type": code,
                "count": data["count"],
                "order_ids": data["order_ids"],
                "last_seen": format_instant(data["last_seen"]) if data["last_seen"] else None,
            },
            source="gateway_communications",
        )
        for code, data in summary.items()
    ]


def check_gateway_communications(
    source: BillingSource,
    subscription: Subscription,
    orders: list[RelatedOrder],
    config: DiagnosticsConfig,
    now: datetime,
) -> list[Discrepancy]:
    """Token health plus gateway-specific configuration checks."""
    findings = _token_findings(subscription, config, now)
    method = subscription.payment_method.lower()

    if method == "stripe":
        if not subscription.get_meta(STRIPE_CUSTOMER_META):
            findings.append(Discrepancy(
                type="missing_stripe_customer",
                category=DiscrepancyCategory.GATEWAY_COMMUNICATION,
                severity=Severity.HIGH,
                description="No Stripe customer ID found",
                recommendation="Check Stripe integration and customer creation process.",
                details={"gateway": "stripe"},
                source="gateway_communications",
            ))
        findings.extend(_renewal_error_findings(source, orders, config))
    elif method == "paypal" and not subscription.get_meta(PAYPAL_SUBSCRIPTION_META):
        findings.append(Discrepancy(
            type="missing_paypal_subscription",
            category=DiscrepancyCategory.GATEWAY_COMMUNICATION,
            severity=Severity.HIGH,
            description="No PayPal subscription ID found",
            recommendation="Check PayPal integration and subscription creation process.",
            details={"gateway": "paypal"},
            source="gateway_communications",
        ))

    return findings
