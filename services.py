from __future__ import annotations

import json
import logging
from datetime import date, datetime
from typing import Iterable, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from budgeting import daily_amount, evaluate_alert, resolve_limit
from config import Settings, get_settings
from models import Budget, MealRecommendation, MenuItem, Purchase
from money import amount_to_cents, cents_to_amount, format_currency
from periods import as_utc, day_key, trailing_window, utcnow
from recommendations import get_or_create_recommendation, recommended_items
from records import (
    BudgetType,
    DailyLimit,
    MenuItemRecord,
    PurchaseRecord,
    RecommendationRecord,
    SpendingAnalytics,
)
from schemas import BudgetIn, MenuItemIn, PurchaseIn
from spending import analytics, summarize

logger = logging.getLogger(__name__)


class RecommendationConflict(ValueError):
    pass


def _naive_utc(moment: datetime) -> datetime:
    return as_utc(moment).replace(tzinfo=None)


class BudgetService:
    def __init__(self, session: Session, user_id: int) -> None:
        self.session = session
        self.user_id = user_id

    def list_all(self) -> list[Budget]:
        stmt = (
            select(Budget)
            .where(Budget.user_id == self.user_id)
            .order_by(Budget.created_at.desc(), Budget.id.desc())
        )
        return self.session.scalars(stmt).all()

    def get(self, budget_id: int) -> Budget:
        budget = self.session.get(Budget, budget_id)
        if not budget or budget.user_id != self.user_id:
            raise ValueError("Budget not found")
        return budget

    def _deactivate_type(
        self, budget_type: BudgetType, *, keep_id: Optional[int] = None
    ) -> None:
        stmt = update(Budget).where(
            Budget.user_id == self.user_id,
            Budget.budget_type == budget_type,
            Budget.is_active.is_(True),
        )
        if keep_id is not None:
            stmt = stmt.where(Budget.id != keep_id)
        self.session.execute(stmt.values(is_active=False))

    def create(self, data: BudgetIn) -> Budget:
        self._deactivate_type(data.budget_type)
        budget = Budget(
            user_id=self.user_id,
            budget_type=data.budget_type,
            amount_cents=amount_to_cents(data.amount),
            is_active=True,
        )
        self.session.add(budget)
        self.session.commit()
        self.session.refresh(budget)
        logger.info(
            f"budget_created: user_id={self.user_id} type={data.budget_type.value} "
            f"amount={format_currency(data.amount)}"
        )
        return budget

    def set_active(self, budget_id: int, is_active: bool) -> Budget:
        budget = self.get(budget_id)
        if is_active:
            self._deactivate_type(budget.budget_type, keep_id=budget.id)
        budget.is_active = is_active
        self.session.commit()
        self.session.refresh(budget)
        return budget

    def update_amount(self, budget_id: int, data: BudgetIn) -> Budget:
        budget = self.get(budget_id)
        if budget.budget_type != data.budget_type:
            raise ValueError("Budget type cannot be changed")
        budget.amount_cents = amount_to_cents(data.amount)
        self.session.commit()
        self.session.refresh(budget)
        return budget

    def daily_limit(self) -> Optional[DailyLimit]:
        return resolve_limit(b.to_record() for b in self.list_all())

    def per_day_amounts(self) -> dict[int, str]:
        return {
            b.id: str(daily_amount(b.budget_type, cents_to_amount(b.amount_cents)))
            for b in self.list_all()
        }


class MenuService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def create(self, data: MenuItemIn) -> MenuItem:
        tags = sorted({t.strip() for t in data.dietary_tags if t.strip()})
        item = MenuItem(
            name=data.name.strip(),
            description=data.description,
            price_cents=amount_to_cents(data.price),
            category=data.category.strip(),
            dietary_tags_json=json.dumps(tags) if tags else None,
            available_date=data.available_date,
            is_available=data.is_available,
        )
        self.session.add(item)
        self.session.commit()
        self.session.refresh(item)
        return item

    def get(self, item_id: int) -> MenuItem:
        item = self.session.get(MenuItem, item_id)
        if not item:
            raise ValueError("Menu item not found")
        return item

    def list_available(self, day: date) -> list[MenuItem]:
        stmt = (
            select(MenuItem)
            .where(MenuItem.is_available.is_(True), MenuItem.available_date == day)
            .order_by(MenuItem.created_at.asc(), MenuItem.id.asc())
        )
        return self.session.scalars(stmt).all()

    def available_records(self, day: date) -> list[MenuItemRecord]:
        return [item.to_record() for item in self.list_available(day)]

    def set_availability(self, item_id: int, is_available: bool) -> MenuItem:
        item = self.get(item_id)
        item.is_available = is_available
        self.session.commit()
        self.session.refresh(item)
        return item

    def lookup(self, item_ids: Iterable[int]) -> dict[int, MenuItemRecord]:
        ids = set(item_ids)
        if not ids:
            return {}
        rows = self.session.scalars(select(MenuItem).where(MenuItem.id.in_(ids)))
        return {row.id: row.to_record() for row in rows}


class PurchaseService:
    def __init__(self, session: Session, user_id: int) -> None:
        self.session = session
        self.user_id = user_id

    def record(self, data: PurchaseIn) -> Purchase:
        item = self.session.get(MenuItem, data.menu_item_id)
        if not item:
            raise ValueError("Menu item not found")
        if not item.is_available:
            raise ValueError("Menu item not available")

        occurred = data.transaction_date or utcnow()
        purchase = Purchase(
            user_id=self.user_id,
            menu_item_id=item.id,
            amount_cents=item.price_cents * data.quantity,
            quantity=data.quantity,
            transaction_date=_naive_utc(occurred),
        )
        self.session.add(purchase)
        self.session.commit()
        self.session.refresh(purchase)
        logger.info(
            f"purchase_recorded: user_id={self.user_id} item_id={item.id} "
            f"quantity={data.quantity} amount_cents={purchase.amount_cents}"
        )
        return purchase

    def list_since(self, since: datetime) -> list[Purchase]:
        stmt = (
            select(Purchase)
            .where(
                Purchase.user_id == self.user_id,
                Purchase.transaction_date >= _naive_utc(since),
            )
            .order_by(Purchase.transaction_date.asc(), Purchase.id.asc())
        )
        return self.session.scalars(stmt).all()

    def records_since(self, since: datetime) -> list[PurchaseRecord]:
        return [p.to_record() for p in self.list_since(since)]


class RecommendationService:
    def __init__(
        self,
        session: Session,
        user_id: int,
        settings: Optional[Settings] = None,
    ) -> None:
        self.session = session
        self.user_id = user_id
        self.settings = settings or get_settings()

    def get_for_day(self, day: date) -> Optional[MealRecommendation]:
        stmt = select(MealRecommendation).where(
            MealRecommendation.user_id == self.user_id,
            MealRecommendation.recommended_date == day,
        )
        return self.session.scalar(stmt)

    def save(self, record: RecommendationRecord) -> MealRecommendation:
        """Store a new recommendation, or return the one already stored for that day."""
        row = MealRecommendation(
            user_id=record.user_id,
            recommended_date=record.date,
            menu_item_ids_json=json.dumps(list(record.menu_item_ids)),
            total_estimated_cost_cents=amount_to_cents(record.total_estimated_cost),
            reason=record.reason,
        )
        self.session.add(row)
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            stored = self.get_for_day(record.date)
            if stored is None:
                raise RecommendationConflict(
                    "Could not store recommendation"
                ) from exc
            logger.info(
                f"recommendation_exists: user_id={self.user_id} date={record.date}"
            )
            return stored
        self.session.refresh(row)
        logger.info(
            f"recommendation_created: user_id={self.user_id} date={record.date} "
            f"items={len(record.menu_item_ids)}"
        )
        return row

    def get_or_create_for_day(self, day: date) -> Optional[RecommendationRecord]:
        existing = self.get_for_day(day)
        if existing is not None:
            return existing.to_record()

        limit = BudgetService(self.session, self.user_id).daily_limit()
        items = MenuService(self.session).available_records(day)
        record = get_or_create_recommendation(
            self.user_id,
            day,
            items,
            limit,
            None,
            max_items=self.settings.recommendation_max_items,
        )
        if record is None:
            return None
        return self.save(record).to_record()

    def today(
        self, now: Optional[datetime] = None
    ) -> tuple[Optional[RecommendationRecord], list[MenuItemRecord]]:
        day = day_key(now or utcnow(), self.settings.timezone)
        record = self.get_or_create_for_day(day)
        if record is None:
            return None, []
        items = MenuService(self.session).available_records(day)
        return record, recommended_items(record, items)


def generate_daily_recommendations(
    session: Session, day: date, settings: Optional[Settings] = None
) -> int:
    """Create the day's recommendation for every user with an active budget."""
    user_ids = session.scalars(
        select(Budget.user_id).where(Budget.is_active.is_(True)).distinct()
    ).all()
    created = 0
    for user_id in sorted(user_ids):
        service = RecommendationService(session, user_id, settings)
        if service.get_for_day(day) is not None:
            continue
        if service.get_or_create_for_day(day) is not None:
            created += 1
    return created


class SpendingService:
    def __init__(
        self,
        session: Session,
        user_id: int,
        settings: Optional[Settings] = None,
    ) -> None:
        self.session = session
        self.user_id = user_id
        self.settings = settings or get_settings()
        self.purchases = PurchaseService(session, user_id)

    def budget_overview(self, now: Optional[datetime] = None) -> dict[str, object]:
        now = now or utcnow()
        tz = self.settings.timezone
        window = trailing_window(now, self.settings.summary_window_days, tz)
        purchases = [
            p for p in self.purchases.records_since(window.start)
            if window.contains(p.transaction_date)
        ]
        summary = summarize(
            purchases, now, days=self.settings.summary_window_days, tz=tz
        )
        limit = BudgetService(self.session, self.user_id).daily_limit()
        alert = evaluate_alert(summary.today, limit.amount if limit else None)
        return {"summary": summary, "limit": limit, "alert": alert}

    def analytics(self, now: Optional[datetime] = None) -> SpendingAnalytics:
        now = now or utcnow()
        tz = self.settings.timezone
        days = self.settings.analytics_window_days
        window = trailing_window(now, days, tz)
        purchases = [
            p for p in self.purchases.records_since(window.start)
            if window.contains(p.transaction_date)
        ]
        menu_items = MenuService(self.session).lookup(
            p.menu_item_id for p in purchases
        )
        return analytics(purchases, menu_items, now, window_days=days, tz=tz)
