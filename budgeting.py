from decimal import Decimal
from typing import Iterable, Optional

from money import Number, round_currency, to_decimal
from periods import WEEK_DAYS
from records import BudgetAlert, BudgetRecord, BudgetType, DailyLimit

HUNDRED = Decimal("100")


def resolve_active_budget(budgets: Iterable[BudgetRecord]) -> Optional[BudgetRecord]:
    """Return the active budget, newest ``created_at`` first.

    Several active budgets should not happen (creating one deactivates the
    others of its type) but if they do, the most recent one wins and ties
    keep the first one supplied.
    """
    chosen: Optional[BudgetRecord] = None
    for budget in budgets:
        if not budget.is_active:
            continue
        if chosen is None or budget.created_at > chosen.created_at:
            chosen = budget
    return chosen


def daily_amount(budget_type: BudgetType, amount: Number) -> Decimal:
    value = to_decimal(amount)
    if budget_type == BudgetType.weekly:
        return round_currency(value / WEEK_DAYS)
    return value


def resolve_limit(budgets: Iterable[BudgetRecord]) -> Optional[DailyLimit]:
    budget = resolve_active_budget(budgets)
    if budget is None:
        return None
    return DailyLimit(
        amount=daily_amount(budget.budget_type, budget.amount),
        budget_type=budget.budget_type,
        budget_amount=budget.amount,
        budget_id=budget.id,
    )


def resolve_daily_limit(budgets: Iterable[BudgetRecord]) -> Optional[Decimal]:
    limit = resolve_limit(budgets)
    return limit.amount if limit else None


def evaluate_alert(today_spend: Number, daily_limit: Optional[Number]) -> BudgetAlert:
    if daily_limit is None:
        return BudgetAlert(progress_percent=Decimal("0"), is_over_budget=False)
    limit = to_decimal(daily_limit)
    if limit <= 0:
        return BudgetAlert(progress_percent=Decimal("0"), is_over_budget=False)

    spend = to_decimal(today_spend)
    progress = spend / limit * HUNDRED
    progress = max(Decimal("0"), min(HUNDRED, progress))
    return BudgetAlert(
        progress_percent=round_currency(progress),
        is_over_budget=spend > limit,
    )
