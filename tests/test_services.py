from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session

from config import Settings
from database import Base
from models import MealRecommendation
from records import BudgetType, RecommendationRecord
from schemas import BudgetIn, MenuItemIn, PurchaseIn
from services import (
    BudgetService,
    MenuService,
    PurchaseService,
    RecommendationService,
    SpendingService,
    generate_daily_recommendations,
)

DAY = date(2025, 3, 10)
NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


def _settings() -> Settings:
    return Settings(
        database_url="sqlite:///:memory:",
        timezone="UTC",
        csrf_secret="test-secret",
        summary_window_days=7,
        analytics_window_days=30,
        recommendation_max_items=3,
        scheduler_enabled=False,
        recommendation_hour=6,
    )


def _session() -> Session:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    return Session(engine)


def _seed_menu(session: Session, day: date = DAY) -> list[int]:
    menu = MenuService(session)
    rows = [
        ("Grilled Chicken Sandwich", "8.99", "Main Course"),
        ("Caesar Salad", "6.50", "Salad"),
        ("Vegetable Stir Fry", "7.25", "Main Course"),
        ("Beef Burger", "9.99", "Main Course"),
        ("Fruit Smoothie", "4.50", "Beverage"),
    ]
    ids = []
    for name, price, category in rows:
        item = menu.create(
            MenuItemIn(
                name=name,
                price=Decimal(price),
                category=category,
                available_date=day,
            )
        )
        ids.append(item.id)
    return ids


def test_new_budget_supersedes_active_budget_of_same_type() -> None:
    with _session() as session:
        budgets = BudgetService(session, user_id=1)
        first = budgets.create(BudgetIn(budget_type=BudgetType.daily, amount=Decimal("15")))
        weekly = budgets.create(BudgetIn(budget_type=BudgetType.weekly, amount=Decimal("70")))
        second = budgets.create(BudgetIn(budget_type=BudgetType.daily, amount=Decimal("12.5")))

        states = {b.id: b.is_active for b in budgets.list_all()}
        assert states == {first.id: False, weekly.id: True, second.id: True}

        limit = budgets.daily_limit()
        assert limit is not None
        assert limit.budget_id == second.id
        assert limit.amount == Decimal("12.50")


def test_budgets_are_scoped_to_their_user() -> None:
    with _session() as session:
        mine = BudgetService(session, user_id=1).create(
            BudgetIn(budget_type=BudgetType.daily, amount=Decimal("10"))
        )
        theirs = BudgetService(session, user_id=2)
        assert theirs.list_all() == []
        assert theirs.daily_limit() is None
        with pytest.raises(ValueError):
            theirs.set_active(mine.id, False)


def test_activating_a_budget_deactivates_its_siblings() -> None:
    with _session() as session:
        budgets = BudgetService(session, user_id=1)
        old = budgets.create(BudgetIn(budget_type=BudgetType.weekly, amount=Decimal("50")))
        new = budgets.create(BudgetIn(budget_type=BudgetType.weekly, amount=Decimal("70")))

        budgets.set_active(old.id, True)
        assert budgets.get(new.id).is_active is False
        assert budgets.daily_limit().amount == Decimal("7.14")

        budgets.set_active(old.id, False)
        assert budgets.daily_limit() is None
        assert budgets.per_day_amounts()[new.id] == "10.00"


def test_update_amount_keeps_budget_type() -> None:
    with _session() as session:
        budgets = BudgetService(session, user_id=1)
        budget = budgets.create(BudgetIn(budget_type=BudgetType.daily, amount=Decimal("10")))
        budgets.update_amount(budget.id, BudgetIn(budget_type=BudgetType.daily, amount=Decimal("11")))
        assert budgets.daily_limit().amount == Decimal("11.00")
        with pytest.raises(ValueError):
            budgets.update_amount(
                budget.id, BudgetIn(budget_type=BudgetType.weekly, amount=Decimal("11"))
            )


def test_menu_lists_only_available_items_for_the_day() -> None:
    with _session() as session:
        ids = _seed_menu(session)
        menu = MenuService(session)
        menu.create(
            MenuItemIn(name="Soup", price=Decimal("5.50"), category="Soup",
                       available_date=date(2025, 3, 11), dietary_tags=["vegetarian"])
        )
        menu.set_availability(ids[1], False)

        listed = [item.id for item in menu.list_available(DAY)]
        assert listed == [ids[0], ids[2], ids[3], ids[4]]
        assert menu.lookup([ids[0], 999]).keys() == {ids[0]}


def test_recommendation_is_generated_once_per_day() -> None:
    with _session() as session:
        ids = _seed_menu(session)
        BudgetService(session, user_id=1).create(
            BudgetIn(budget_type=BudgetType.weekly, amount=Decimal("70"))
        )
        service = RecommendationService(session, user_id=1, settings=_settings())

        first = service.get_or_create_for_day(DAY)
        assert first is not None
        assert first.menu_item_ids == (ids[0], ids[1], ids[2])
        assert first.total_estimated_cost == Decimal("22.74")
        assert first.reason == "Based on your weekly budget of $70"

        # a cheaper menu and a new budget do not change today's pick
        MenuService(session).create(
            MenuItemIn(name="Pizza Slice", price=Decimal("3.99"), category="Main Course",
                       available_date=DAY)
        )
        BudgetService(session, user_id=1).create(
            BudgetIn(budget_type=BudgetType.weekly, amount=Decimal("21"))
        )
        second = service.get_or_create_for_day(DAY)
        assert second == first

        rows = session.scalars(select(MealRecommendation)).all()
        assert len(rows) == 1


def test_no_recommendation_without_active_budget() -> None:
    with _session() as session:
        _seed_menu(session)
        service = RecommendationService(session, user_id=1, settings=_settings())
        assert service.get_or_create_for_day(DAY) is None
        assert service.get_for_day(DAY) is None


def test_no_recommendation_when_nothing_is_affordable() -> None:
    with _session() as session:
        _seed_menu(session)
        BudgetService(session, user_id=1).create(
            BudgetIn(budget_type=BudgetType.daily, amount=Decimal("4"))
        )
        service = RecommendationService(session, user_id=1, settings=_settings())
        assert service.get_or_create_for_day(DAY) is None


def test_saving_a_duplicate_returns_the_stored_recommendation() -> None:
    with _session() as session:
        service = RecommendationService(session, user_id=1, settings=_settings())
        stored = service.save(
            RecommendationRecord(
                user_id=1,
                date=DAY,
                menu_item_ids=(1, 2),
                total_estimated_cost=Decimal("15.49"),
                reason="Based on your daily budget of $20",
            )
        )

        racing = service.save(
            RecommendationRecord(
                user_id=1,
                date=DAY,
                menu_item_ids=(3,),
                total_estimated_cost=Decimal("7.25"),
                reason="Based on your daily budget of $8",
            )
        )

        assert racing.id == stored.id
        assert racing.to_record().menu_item_ids == (1, 2)
        assert racing.to_record().total_estimated_cost == Decimal("15.49")


def test_today_returns_recommended_menu_items() -> None:
    with _session() as session:
        ids = _seed_menu(session)
        BudgetService(session, user_id=1).create(
            BudgetIn(budget_type=BudgetType.daily, amount=Decimal("7"))
        )
        service = RecommendationService(session, user_id=1, settings=_settings())

        record, items = service.today(NOW)
        assert record is not None
        assert record.menu_item_ids == (ids[1], ids[4])
        assert [item.name for item in items] == ["Caesar Salad", "Fruit Smoothie"]


def test_purchase_snapshots_price_times_quantity() -> None:
    with _session() as session:
        ids = _seed_menu(session)
        purchases = PurchaseService(session, user_id=1)

        purchase = purchases.record(PurchaseIn(menu_item_id=ids[0], quantity=2))
        assert purchase.amount_cents == 1798
        assert purchase.to_record().amount == Decimal("17.98")

        MenuService(session).set_availability(ids[1], False)
        with pytest.raises(ValueError, match="not available"):
            purchases.record(PurchaseIn(menu_item_id=ids[1]))
        with pytest.raises(ValueError, match="not found"):
            purchases.record(PurchaseIn(menu_item_id=999))


def _buy(session: Session, user_id: int, item_id: int, when: datetime) -> None:
    PurchaseService(session, user_id).record(
        PurchaseIn(menu_item_id=item_id, transaction_date=when)
    )


def test_budget_overview_combines_summary_and_alert() -> None:
    with _session() as session:
        menu = MenuService(session)
        five = menu.create(MenuItemIn(name="Wrap", price=Decimal("5"), category="Main Course", available_date=DAY))
        three = menu.create(MenuItemIn(name="Juice", price=Decimal("3"), category="Beverage", available_date=DAY))
        ten = menu.create(MenuItemIn(name="Platter", price=Decimal("10"), category="Main Course", available_date=DAY))

        _buy(session, 1, five.id, datetime(2025, 3, 10, 8, 0, tzinfo=timezone.utc))
        _buy(session, 1, three.id, datetime(2025, 3, 10, 11, 0, tzinfo=timezone.utc))
        _buy(session, 1, ten.id, datetime(2025, 3, 7, 9, 0, tzinfo=timezone.utc))
        _buy(session, 1, ten.id, datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc))
        _buy(session, 2, ten.id, datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc))

        BudgetService(session, user_id=1).create(
            BudgetIn(budget_type=BudgetType.daily, amount=Decimal("8"))
        )

        overview = SpendingService(session, 1, settings=_settings()).budget_overview(NOW)
        summary = overview["summary"]
        assert summary.today == Decimal("8.00")
        assert summary.this_week == Decimal("18.00")
        assert summary.daily_average == Decimal("2.57")
        assert overview["limit"].amount == Decimal("8.00")
        assert overview["alert"].is_over_budget is False
        assert overview["alert"].progress_percent == Decimal("100")


def test_budget_overview_without_budget_has_no_alert() -> None:
    with _session() as session:
        overview = SpendingService(session, 1, settings=_settings()).budget_overview(NOW)
        assert overview["limit"] is None
        assert overview["alert"].is_over_budget is False
        assert overview["summary"].this_week == 0


def test_analytics_groups_by_menu_category() -> None:
    with _session() as session:
        ids = _seed_menu(session)
        _buy(session, 1, ids[0], datetime(2025, 2, 20, 12, 0, tzinfo=timezone.utc))
        _buy(session, 1, ids[2], datetime(2025, 3, 9, 12, 0, tzinfo=timezone.utc))
        _buy(session, 1, ids[4], datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc))
        _buy(session, 1, ids[4], datetime(2025, 1, 2, 9, 0, tzinfo=timezone.utc))

        data = SpendingService(session, 1, settings=_settings()).analytics(NOW)

        assert data.transaction_count == 3
        assert data.total_spent == Decimal("20.74")
        assert [(c.category, c.amount, c.count) for c in data.categories] == [
            ("Main Course", Decimal("16.24"), 2),
            ("Beverage", Decimal("4.50"), 1),
        ]
        assert data.daily_series[-1].amount == Decimal("4.50")


def test_daily_generation_covers_users_with_active_budgets() -> None:
    with _session() as session:
        _seed_menu(session)
        BudgetService(session, user_id=1).create(
            BudgetIn(budget_type=BudgetType.daily, amount=Decimal("10"))
        )
        BudgetService(session, user_id=2).create(
            BudgetIn(budget_type=BudgetType.weekly, amount=Decimal("35"))
        )
        inactive = BudgetService(session, user_id=3)
        budget = inactive.create(BudgetIn(budget_type=BudgetType.daily, amount=Decimal("10")))
        inactive.set_active(budget.id, False)

        assert generate_daily_recommendations(session, DAY, _settings()) == 2
        assert generate_daily_recommendations(session, DAY, _settings()) == 0

        user_two = RecommendationService(session, 2, settings=_settings()).get_for_day(DAY)
        assert user_two.to_record().menu_item_ids == (5,)
