from datetime import date
from decimal import Decimal

from recommendations import (
    get_or_create_recommendation,
    recommended_items,
    select_items,
)
from records import BudgetType, DailyLimit, MenuItemRecord, RecommendationRecord

TODAY = date(2025, 9, 17)


def _item(item_id: int, price: str, category: str = "Main Course") -> MenuItemRecord:
    return MenuItemRecord(
        id=item_id,
        name=f"Item {item_id}",
        price=Decimal(price),
        category=category,
        available_date=TODAY,
    )


def _limit(amount: str, budget_type: BudgetType = BudgetType.daily,
           budget_amount: str = None) -> DailyLimit:
    return DailyLimit(
        amount=Decimal(amount),
        budget_type=budget_type,
        budget_amount=Decimal(budget_amount or amount),
        budget_id=1,
    )


def test_weekly_budget_recommends_first_three_affordable_items() -> None:
    items = [
        _item(1, "8.99"),
        _item(2, "6.50", "Salad"),
        _item(3, "7.25"),
        _item(4, "9.99"),
        _item(5, "4.50", "Beverage"),
    ]
    limit = _limit("10.00", BudgetType.weekly, "70.00")

    rec = get_or_create_recommendation(7, TODAY, items, limit, None)

    assert rec is not None
    assert rec.user_id == 7
    assert rec.date == TODAY
    assert rec.menu_item_ids == (1, 2, 3)
    assert rec.total_estimated_cost == Decimal("22.74")
    assert rec.reason == "Based on your weekly budget of $70"
    assert rec.id is None


def test_item_priced_at_the_limit_is_affordable() -> None:
    items = [_item(1, "10.01"), _item(2, "10.00")]
    selected = select_items(items, Decimal("10.00"))
    assert [i.id for i in selected] == [2]


def test_selection_is_capped_and_keeps_listing_order() -> None:
    items = [_item(i, price) for i, price in enumerate(["5", "1", "4", "2", "3"], 1)]
    selected = select_items(items, Decimal("5"))
    assert [i.id for i in selected] == [1, 2, 3]
    assert [i.id for i in select_items(items, Decimal("5"), max_items=1)] == [1]


def test_unaffordable_and_malformed_items_are_skipped() -> None:
    items = [_item(1, "12.00"), _item(2, "0.00"), _item(3, "-1.00"), _item(4, "3.00")]
    rec = get_or_create_recommendation(1, TODAY, items, _limit("5"), None)
    assert rec is not None
    assert rec.menu_item_ids == (4,)
    assert rec.total_estimated_cost == Decimal("3.00")
    assert rec.reason == "Based on your daily budget of $5"


def test_no_budget_means_no_recommendation() -> None:
    items = [_item(1, "1.00")]
    assert get_or_create_recommendation(1, TODAY, items, None, None) is None


def test_nothing_affordable_means_no_recommendation() -> None:
    items = [_item(1, "8.99"), _item(2, "9.99")]
    assert get_or_create_recommendation(1, TODAY, items, _limit("5"), None) is None


def test_existing_recommendation_is_returned_unchanged() -> None:
    existing = RecommendationRecord(
        id=11,
        user_id=1,
        date=TODAY,
        menu_item_ids=(9,),
        total_estimated_cost=Decimal("4.00"),
        reason="Based on your daily budget of $4",
    )
    items = [_item(1, "1.00"), _item(2, "2.00")]

    rec = get_or_create_recommendation(1, TODAY, items, _limit("50"), existing)
    assert rec is existing
    assert get_or_create_recommendation(1, TODAY, [], None, existing) is existing


def test_recommended_items_follow_recommendation_order() -> None:
    rec = RecommendationRecord(
        user_id=1,
        date=TODAY,
        menu_item_ids=(3, 1, 42),
        total_estimated_cost=Decimal("0"),
        reason="",
    )
    items = [_item(1, "1.00"), _item(2, "2.00"), _item(3, "3.00")]
    assert [i.id for i in recommended_items(rec, items)] == [3, 1]
