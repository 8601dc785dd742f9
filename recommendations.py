from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from money import format_plain_amount, round_currency
from records import DailyLimit, MenuItemRecord, RecommendationRecord

MAX_RECOMMENDED_ITEMS = 3


def affordable_items(
    items: Iterable[MenuItemRecord], limit: Decimal
) -> list[MenuItemRecord]:
    # Non-positive prices are malformed rows; never recommend them.
    return [item for item in items if Decimal("0") < item.price <= limit]


def select_items(
    items: Sequence[MenuItemRecord],
    limit: Decimal,
    *,
    max_items: int = MAX_RECOMMENDED_ITEMS,
) -> list[MenuItemRecord]:
    """First ``max_items`` affordable items in the order supplied.

    Each item is checked against the limit on its own; the combined cost
    of the selection can exceed it. This is a listing-order heuristic, not
    a packing of the cheapest combination.
    """
    return affordable_items(items, limit)[:max_items]


def build_reason(limit: DailyLimit) -> str:
    return (
        f"Based on your {limit.budget_type.value} budget of "
        f"${format_plain_amount(limit.budget_amount)}"
    )


def plan_recommendation(
    user_id: int,
    day: date,
    items: Sequence[MenuItemRecord],
    limit: DailyLimit,
    *,
    max_items: int = MAX_RECOMMENDED_ITEMS,
) -> Optional[RecommendationRecord]:
    selected = select_items(items, limit.amount, max_items=max_items)
    if not selected:
        return None
    total = round_currency(sum((item.price for item in selected), Decimal("0")))
    return RecommendationRecord(
        user_id=user_id,
        date=day,
        menu_item_ids=tuple(item.id for item in selected),
        total_estimated_cost=total,
        reason=build_reason(limit),
    )


def get_or_create_recommendation(
    user_id: int,
    day: date,
    available_items: Sequence[MenuItemRecord],
    daily_limit: Optional[DailyLimit],
    existing: Optional[RecommendationRecord],
    *,
    max_items: int = MAX_RECOMMENDED_ITEMS,
) -> Optional[RecommendationRecord]:
    """Return today's recommendation, building a new one only when none exists.

    A stored recommendation is returned unchanged whatever the menu or
    budget look like now. Without a budget or without any affordable item
    there is nothing to recommend and ``None`` is returned.
    """
    if existing is not None:
        return existing
    if daily_limit is None:
        return None
    return plan_recommendation(
        user_id, day, available_items, daily_limit, max_items=max_items
    )


def recommended_items(
    recommendation: RecommendationRecord, items: Iterable[MenuItemRecord]
) -> list[MenuItemRecord]:
    by_id = {item.id: item for item in items}
    return [by_id[item_id] for item_id in recommendation.menu_item_ids if item_id in by_id]
