from datetime import date, datetime
from decimal import Decimal
from typing import Mapping, Optional, Sequence

from money import round_currency
from periods import WEEK_DAYS, day_key, trailing_window, calendar_days
from records import (
    CategorySpending,
    DailySpending,
    MenuItemRecord,
    PurchaseRecord,
    SpendingAnalytics,
    SpendingSummary,
)

UNKNOWN_CATEGORY = "Unknown"
ZERO = Decimal("0")


def _total(purchases: Sequence[PurchaseRecord]) -> Decimal:
    return sum((p.amount for p in purchases), ZERO)


def summarize(
    purchases: Sequence[PurchaseRecord],
    reference: datetime,
    *,
    days: int = WEEK_DAYS,
    tz: Optional[str] = None,
) -> SpendingSummary:
    """Today's, this week's and the rolling daily average spend.

    ``purchases`` must already be limited to one user and the trailing
    window. The average always divides by the window length (seven days
    by default), active days or not.
    """
    today = day_key(reference, tz)
    today_total = _total(
        [p for p in purchases if day_key(p.transaction_date, tz) == today]
    )
    week_total = _total(purchases)
    return SpendingSummary(
        today=round_currency(today_total),
        this_week=round_currency(week_total),
        daily_average=round_currency(week_total / days),
    )


def by_category(
    purchases: Sequence[PurchaseRecord],
    menu_items: Mapping[int, MenuItemRecord],
) -> list[CategorySpending]:
    totals: dict[str, Decimal] = {}
    counts: dict[str, int] = {}
    for purchase in purchases:
        item = menu_items.get(purchase.menu_item_id)
        category = item.category if item else UNKNOWN_CATEGORY
        totals[category] = totals.get(category, ZERO) + purchase.amount
        counts[category] = counts.get(category, 0) + 1

    # sorted() is stable, so equal totals keep first-seen order
    ordered = sorted(totals.items(), key=lambda row: row[1], reverse=True)
    return [
        CategorySpending(
            category=category, amount=round_currency(amount), count=counts[category]
        )
        for category, amount in ordered
    ]


def daily_series(
    purchases: Sequence[PurchaseRecord],
    reference: datetime,
    *,
    days: int = WEEK_DAYS,
    tz: Optional[str] = None,
) -> list[DailySpending]:
    window = trailing_window(reference, days, tz)
    buckets: dict[date, Decimal] = {day: ZERO for day in calendar_days(window, tz)}
    for purchase in purchases:
        key = day_key(purchase.transaction_date, tz)
        if key in buckets:
            buckets[key] += purchase.amount
    return [
        DailySpending(day=day, amount=round_currency(amount))
        for day, amount in buckets.items()
    ]


def analytics(
    purchases: Sequence[PurchaseRecord],
    menu_items: Mapping[int, MenuItemRecord],
    reference: datetime,
    *,
    window_days: int,
    tz: Optional[str] = None,
) -> SpendingAnalytics:
    total = _total(purchases)
    count = len(purchases)
    return SpendingAnalytics(
        total_spent=round_currency(total),
        transaction_count=count,
        average_per_transaction=round_currency(total / count if count else ZERO),
        daily_average=round_currency(total / window_days),
        window_days=window_days,
        daily_series=daily_series(purchases, reference, tz=tz),
        categories=by_category(purchases, menu_items),
    )
