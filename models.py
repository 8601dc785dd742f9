import json
from datetime import date, datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from database import Base
from money import cents_to_amount
from periods import utcnow
from records import (
    BudgetRecord,
    BudgetType,
    MenuItemRecord,
    PurchaseRecord,
    RecommendationRecord,
)


def naive_utcnow() -> datetime:
    return utcnow().replace(tzinfo=None)


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=naive_utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=naive_utcnow, onupdate=naive_utcnow, nullable=False
    )


class Budget(Base, TimestampMixin):
    __tablename__ = "budgets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    budget_type: Mapped[BudgetType] = mapped_column(SAEnum(BudgetType), nullable=False)
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (
        CheckConstraint("amount_cents > 0", name="ck_budget_amount_positive"),
        Index("ix_budgets_user_type_active", "user_id", "budget_type", "is_active"),
    )

    def to_record(self) -> BudgetRecord:
        return BudgetRecord(
            id=self.id,
            user_id=self.user_id,
            budget_type=self.budget_type,
            amount=cents_to_amount(self.amount_cents),
            is_active=self.is_active,
            created_at=self.created_at,
        )


class MenuItem(Base, TimestampMixin):
    __tablename__ = "menu_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    price_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    category: Mapped[str] = mapped_column(String(60), nullable=False)
    dietary_tags_json: Mapped[Optional[str]] = mapped_column(Text)
    available_date: Mapped[date] = mapped_column(Date, nullable=False)
    is_available: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    purchases: Mapped[list["Purchase"]] = relationship(
        "Purchase", back_populates="menu_item"
    )

    __table_args__ = (
        CheckConstraint("price_cents > 0", name="ck_menu_item_price_positive"),
        Index("ix_menu_items_date_available", "available_date", "is_available"),
    )

    @property
    def dietary_tags(self) -> list[str]:
        if not self.dietary_tags_json:
            return []
        return list(json.loads(self.dietary_tags_json))

    def to_record(self) -> MenuItemRecord:
        return MenuItemRecord(
            id=self.id,
            name=self.name,
            description=self.description,
            price=cents_to_amount(self.price_cents),
            category=self.category,
            dietary_tags=frozenset(self.dietary_tags),
            available_date=self.available_date,
            is_available=self.is_available,
        )


class Purchase(Base):
    __tablename__ = "purchases"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    menu_item_id: Mapped[int] = mapped_column(
        ForeignKey("menu_items.id"), nullable=False
    )
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    transaction_date: Mapped[datetime] = mapped_column(
        DateTime, default=naive_utcnow, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=naive_utcnow, nullable=False
    )

    menu_item: Mapped["MenuItem"] = relationship("MenuItem", back_populates="purchases")

    __table_args__ = (
        CheckConstraint("amount_cents >= 0", name="ck_purchase_amount_positive"),
        CheckConstraint("quantity > 0", name="ck_purchase_quantity_positive"),
        Index("ix_purchases_user_date", "user_id", "transaction_date"),
    )

    def to_record(self) -> PurchaseRecord:
        return PurchaseRecord(
            id=self.id,
            user_id=self.user_id,
            menu_item_id=self.menu_item_id,
            amount=cents_to_amount(self.amount_cents),
            quantity=self.quantity,
            transaction_date=self.transaction_date,
        )


class MealRecommendation(Base):
    __tablename__ = "meal_recommendations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    recommended_date: Mapped[date] = mapped_column(Date, nullable=False)
    menu_item_ids_json: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    total_estimated_cost_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=naive_utcnow, nullable=False
    )

    __table_args__ = (
        UniqueConstraint(
            "user_id", "recommended_date", name="uq_recommendation_user_date"
        ),
        CheckConstraint(
            "total_estimated_cost_cents >= 0", name="ck_recommendation_cost_positive"
        ),
    )

    @property
    def menu_item_ids(self) -> list[int]:
        return [int(v) for v in json.loads(self.menu_item_ids_json or "[]")]

    def to_record(self) -> RecommendationRecord:
        return RecommendationRecord(
            id=self.id,
            user_id=self.user_id,
            date=self.recommended_date,
            menu_item_ids=tuple(self.menu_item_ids),
            total_estimated_cost=cents_to_amount(self.total_estimated_cost_cents),
            reason=self.reason or "",
        )
