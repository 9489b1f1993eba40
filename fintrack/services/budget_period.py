import calendar
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Tuple

from fintrack.services.ledger import round_money


WARNING_THRESHOLD = Decimal("0.8")


def _period_value(period) -> str:
    return getattr(period, "value", period)


def resolve_period_window(budget, reference_date: date) -> Tuple[date, date]:
    """
    Concrete ``(start, end)`` date range, both inclusive, for a budget.

    monthly: calendar month of ``reference_date``
    yearly: calendar year of ``reference_date``
    custom: the budget's own start/end, end defaulting to ``reference_date``
    """
    period = _period_value(budget.period)
    if period == "monthly":
        return month_window(reference_date)
    if period == "yearly":
        return date(reference_date.year, 1, 1), date(reference_date.year, 12, 31)
    if period == "custom":
        return budget.start_date, budget.end_date or reference_date
    raise ValueError(f"Unknown budget period: {period}")


@dataclass(frozen=True)
class BudgetEvaluation:
    spent: Decimal
    remaining: Decimal
    percentage_used: Decimal
    is_over_budget: bool
    status: str


def evaluate(amount: Decimal, spent: Decimal) -> BudgetEvaluation:
    amount = Decimal(amount)
    spent = round_money(spent)
    percentage_used = round_money(spent / amount * 100) if amount else round_money(0)

    if spent > amount:
        status = "over"
    elif spent > amount * WARNING_THRESHOLD:
        status = "warning"
    else:
        status = "good"

    return BudgetEvaluation(
        spent=spent,
        remaining=round_money(amount - spent),
        percentage_used=percentage_used,
        is_over_budget=spent > amount,
        status=status,
    )


def month_window(reference_date: date) -> Tuple[date, date]:
    """First and last day of ``reference_date``'s calendar month."""
    last_day = calendar.monthrange(reference_date.year, reference_date.month)[1]
    return reference_date.replace(day=1), reference_date.replace(day=last_day)
