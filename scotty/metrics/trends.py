"""
Spending Trend & Upcoming Bills

Local stand-ins for the backend's finance summaries, used when those
fetches fail. Both work from the transaction set alone.
"""

from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from scotty.metrics.engine import outgoing
from scotty.models.finance import (
    MonthlySpend,
    Transaction,
    UpcomingBills,
    UpcomingSubscription,
)


TREND_MONTHS = 6
SUBSCRIPTION_CYCLE_DAYS = 30
UPCOMING_DAYS_AHEAD = 30


def _month_key(on: date) -> str:
    return f"{on.year:04d}-{on.month:02d}"


def _previous_month(on: date) -> date:
    return (on.replace(day=1) - timedelta(days=1)).replace(day=1)


def monthly_spending_trend(
    transactions: Iterable[Transaction],
    months: int = TREND_MONTHS,
    now: Optional[datetime] = None,
) -> list[MonthlySpend]:
    """
    Outgoing totals for the last `months` calendar months, oldest first.

    The current month is included; months without spend report 0.
    """
    today = (now or datetime.now()).date()

    keys = []
    cursor = today.replace(day=1)
    for _ in range(months):
        keys.append(_month_key(cursor))
        cursor = _previous_month(cursor)
    keys.reverse()

    totals = dict.fromkeys(keys, 0.0)
    for t in outgoing(transactions):
        key = _month_key(t.date.date())
        if key in totals:
            totals[key] += t.amount

    return [MonthlySpend(month=key, total=round(totals[key], 2)) for key in keys]


def upcoming_subscriptions(
    transactions: Iterable[Transaction],
    now: Optional[datetime] = None,
    days_ahead: int = UPCOMING_DAYS_AHEAD,
) -> UpcomingBills:
    """
    Project each subscription merchant's next charge.

    The latest charge per merchant is rolled forward in fixed cycles
    until it is today or later; charges beyond `days_ahead` are dropped.
    """
    today = (now or datetime.now()).date()
    horizon = today + timedelta(days=days_ahead)
    cycle = timedelta(days=SUBSCRIPTION_CYCLE_DAYS)

    latest: dict[str, Transaction] = {}
    for t in outgoing(transactions):
        if not t.is_subscription:
            continue
        seen = latest.get(t.merchant)
        if seen is None or t.date > seen.date:
            latest[t.merchant] = t

    subscriptions = []
    for merchant, t in latest.items():
        next_date = t.date.date() + cycle
        while next_date < today:
            next_date += cycle
        if next_date <= horizon:
            subscriptions.append(UpcomingSubscription(
                merchant=merchant,
                amount=t.amount,
                next_date=next_date,
            ))

    subscriptions.sort(key=lambda s: (s.next_date, s.merchant))
    return UpcomingBills(
        subscriptions=subscriptions,
        bill_days=sorted({s.next_date.day for s in subscriptions}),
        due_today=[s for s in subscriptions if s.next_date == today],
    )
