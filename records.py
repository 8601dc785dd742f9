"""Plain value types shared by the budgeting, recommendation and spending code.

ORM rows are converted to these with ``to_record()`` so the calculations
never touch a session.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional


class BudgetType(str, Enum):
    daily = "daily"
    weekly = "weekly"


@dataclass(frozen=True)
class BudgetRecord:
    id: int
    user_id: int
    budget_type: BudgetType
    amount: Decimal
    is_active: bool
    created_at: datetime


@dataclass(frozen=True)
class MenuItemRecord:
    id: int
    name: str
    price: Decimal
    category: str
    available_date: date
    is_available: bool = True
    description: Optional[str] = None
    dietary_tags: frozenset[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class PurchaseRecord:
    id: int
    user_id: int
    menu_item_id: int
    amount: Decimal
    quantity: int
    transaction_date: datetime


@dataclass(frozen=True)
class RecommendationRecord:
    user_id: int
    date: date
    menu_item_ids: tuple[int, ...]
    total_estimated_cost: Decimal
    reason: str
    id: Optional[int] = None


@dataclass(frozen=True)
class DailyLimit:
    amount: Decimal
    budget_type: BudgetType
    budget_amount: Decimal
    budget_id: int


@dataclass(frozen=True)
class SpendingSummary:
    today: Decimal
    this_week: Decimal
    daily_average: Decimal


@dataclass(frozen=True)
class CategorySpending:
    category: str
    amount: Decimal
    count: int


@dataclass(frozen=True)
class DailySpending:
    day: date
    amount: Decimal


@dataclass(frozen=True)
class SpendingAnalytics:
    total_spent: Decimal
    transaction_count: int
    average_per_transaction: Decimal
    daily_average: Decimal
    window_days: int
    daily_series: list[DailySpending]
    categories: list[CategorySpending]


@dataclass(frozen=True)
class BudgetAlert:
    progress_percent: Decimal
    is_over_budget: bool
