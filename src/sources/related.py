"""Related-order traversal with a hard cap on history length."""

from __future__ import annotations

import structlog
from pydantic import BaseModel

from src.sources.base import (
    ORDER_RELATIONS,
    BillingSource,
    Order,
    RelatedOrderType,
)

logger = structlog.stdlib.get_logger()


class RelatedOrder(BaseModel):
    """An order resolved from a subscription, tagged with its relation."""

    order: Order
    relation: RelatedOrderType


def fetch_related_orders(
    source: BillingSource,
    subscription_id: int,
    limit: int,
    relations: tuple[RelatedOrderType, ...] = ORDER_RELATIONS,
) -> list[RelatedOrder]:
    """Resolve related orders relation by relation.

    References are de-duplicated in traversal order and only the last
    ``limit`` of them are resolved, so a long history never costs more than
    ``limit`` order lookups. Orders that no longer exist are skipped.
    """
    refs: list[tuple[int, RelatedOrderType]] = []
    seen: set[int] = set()

    for relation in relations:
        for ref in source.get_related_orders(subscription_id, relation):
            if ref.id in seen:
                continue
            seen.add(ref.id)
            refs.append((ref.id, relation))

    if len(refs) > limit:
        logger.info(
            "related_orders_capped",
            subscription_id=subscription_id,
            total=len(refs),
            kept=limit,
        )
        refs = refs[-limit:] if limit > 0 else []

    resolved: list[RelatedOrder] = []
    for order_id, relation in refs:
        order = source.get_order(order_id)
        if order is None:
            continue
        resolved.append(RelatedOrder(order=order, relation=relation))
    return resolved
