from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from records import BudgetType


class BudgetIn(BaseModel):
    budget_type: BudgetType
    amount: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)


class MenuItemIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, max_length=120)
    description: Optional[str] = Field(default=None, max_length=500)
    price: Decimal = Field(..., gt=0, max_digits=8, decimal_places=2)
    category: str = Field(..., min_length=1, max_length=60)
    dietary_tags: list[str] = Field(default_factory=list)
    available_date: date
    is_available: bool = True


class PurchaseIn(BaseModel):
    menu_item_id: int
    quantity: int = Field(default=1, gt=0)
    transaction_date: Optional[datetime] = None
