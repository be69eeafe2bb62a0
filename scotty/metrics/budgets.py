"""
Budget Math

Period conversion, spend derivation and end-of-month projection.

DESIGN DECISION: A month is the calendar month (28-31 days), everywhere.
The same `days_in_period` feeds the daily-limit derivation, the rolling
window for `spent`, and the projection's elapsed fraction.
"""

import calendar
from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional

from scotty.metrics.categories import map_category
from scotty.metrics.engine import outgoing
from scotty.models.finance import (
    BudgetFrequency,
    BudgetItem,
    BudgetProjection,
    Transaction,
)


MIN_ELAPSED_FRACTION = 0.1


def days_in_month(on: date) -> int:
    return calendar.monthrange(on.year, on.month)[1]


def days_in_period(frequency: BudgetFrequency, on: Optional[date] = None) -> int:
    """Number of days one budget period spans."""
    if frequency == BudgetFrequency.DAY:
        return 1
    if frequency == BudgetFrequency.WEEK:
        return 7
    if frequency == BudgetFrequency.YEAR:
        return 365
    return days_in_month(on or date.today())


def derived_daily_limit(
    limit_amount: float,
    frequency: BudgetFrequency,
    on: Optional[date] = None,
) -> float:
    return round(limit_amount / days_in_period(frequency, on), 2)


def period_start(frequency: BudgetFrequency, now: Optional[datetime] = None) -> datetime:
    """
    Start of the rolling window for a budget.

    Windows are whole calendar days ending today: a Day budget covers
    today, a Week budget the last 7 days including today, and so on.
    """
    now = now or datetime.now()
    days = days_in_period(frequency, now.date())
    return datetime.combine(now.date() - timedelta(days=days - 1), time.min)


def budget_spent(
    budget: BudgetItem,
    transactions: Iterable[Transaction],
    now: Optional[datetime] = None,
) -> float:
    """Outgoing spend in the budget's category within its rolling period."""
    category = map_category(budget.category)
    start = period_start(budget.frequency, now)
    total = sum(
        t.amount
        for t in outgoing(transactions)
        if t.category == category and t.date >= start
    )
    return round(total, 2)


def with_derived_fields(
    budget: BudgetItem,
    transactions: Iterable[Transaction],
    now: Optional[datetime] = None,
) -> BudgetItem:
    """Copy of `budget` with spent and derived_daily_limit recomputed."""
    now = now or datetime.now()
    return budget.model_copy(update={
        "spent": budget_spent(budget, transactions, now),
        "derived_daily_limit": derived_daily_limit(
            budget.limit_amount, budget.frequency, now.date()
        ),
    })


def project_budget(
    budget: BudgetItem,
    now: Optional[datetime] = None,
) -> BudgetProjection:
    """
    Extrapolate the current spend to the end of the month.

    The elapsed fraction is floored at 0.1 so that the first days of a
    month do not divide by (nearly) zero.
    """
    today = (now or datetime.now()).date()
    elapsed = max(MIN_ELAPSED_FRACTION, today.day / days_in_month(today))
    projected = budget.spent / elapsed

    return BudgetProjection(
        budget_id=budget.id,
        category=budget.category,
        current_spent=budget.spent,
        budget_limit=budget.limit_amount,
        elapsed_fraction=round(elapsed, 4),
        projected_spent=round(projected, 2),
        projected_percent=round(projected / budget.limit_amount * 100, 1),
        over_budget=projected > budget.limit_amount,
    )


def today_spend(
    transactions: Iterable[Transaction],
    now: Optional[datetime] = None,
) -> float:
    """Outgoing spend dated today."""
    today = (now or datetime.now()).date()
    total = sum(t.amount for t in outgoing(transactions) if t.date.date() == today)
    return round(total, 2)
