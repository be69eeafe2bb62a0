"""
Derived Metrics Engine

Pure functions from raw transactions and the user profile to the
numbers Scotty reacts to:

    transactions + profile      -> HealthMetrics
    HealthMetrics + last_fed    -> happiness -> Mood -> ScottyState

Every function is deterministic given its inputs. Anything that depends
on the current time takes an optional `now` so callers (and tests) can
pin it.
"""

import math
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Iterable, Optional, Sequence

from scotty.models.finance import (
    HealthMetrics,
    Mood,
    ScottyState,
    Transaction,
    TransactionCategory,
    UserProfile,
)


IMPULSE_MERCHANTS: tuple[str, ...] = ("DoorDash", "Uber Eats", "Amazon", "Shein", "Steam")
IMPULSE_THRESHOLD = 5  # More than 5 impulse purchases is concerning

# Weights of the overall score. Must sum to 1.
BUDGET_WEIGHT = 0.4
SAVINGS_WEIGHT = 0.3
IMPULSE_WEIGHT = 0.3

# Happiness penalties by time since last feeding
NEVER_FED_PENALTY = 15
HUNGRY_AFTER_HOURS = 12
HUNGRY_PENALTY = 10
STARVING_AFTER_HOURS = 24
STARVING_PENALTY = 20

# Mood bands, lower bound inclusive
MOOD_BANDS: tuple[tuple[int, Mood], ...] = (
    (80, Mood.HAPPY),
    (60, Mood.CONTENT),
    (40, Mood.WORRIED),
)


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative scores."""
    return int(math.floor(value + 0.5))


def outgoing(transactions: Iterable[Transaction]) -> list[Transaction]:
    return [t for t in transactions if not t.is_incoming]


def total_spending(
    transactions: Iterable[Transaction],
    days: int = 30,
    now: Optional[datetime] = None,
) -> float:
    """Sum of outgoing amounts dated within the last `days` days."""
    now = now or datetime.now()
    cutoff = now - timedelta(days=days)
    return sum(t.amount for t in outgoing(transactions) if t.date >= cutoff)


def spending_by_category(
    transactions: Iterable[Transaction],
) -> dict[TransactionCategory, float]:
    """Total outgoing amount per category."""
    spending: dict[TransactionCategory, float] = defaultdict(float)
    for t in outgoing(transactions):
        spending[t.category] += t.amount
    return dict(spending)


def dominant_category(
    transactions: Iterable[Transaction],
) -> Optional[tuple[TransactionCategory, float]]:
    """
    Category with the highest spend, or None when nothing was spent.

    Ties resolve to the category listed first in TransactionCategory.
    """
    spending = spending_by_category(transactions)
    best: Optional[tuple[TransactionCategory, float]] = None
    for category in TransactionCategory:
        amount = spending.get(category, 0.0)
        if amount > 0 and (best is None or amount > best[1]):
            best = (category, amount)
    return best


# =============================================================================
# HEALTH METRICS
# =============================================================================

def budget_adherence_score(monthly_budget: float, total_spent: float) -> float:
    """
    ((budget - spent) / budget) * 100 + 50, clamped.

    A zero budget is only "adhered to" when nothing was spent.
    """
    if monthly_budget <= 0:
        return 100.0 if total_spent <= 0 else 0.0
    return clamp(((monthly_budget - total_spent) / monthly_budget) * 100 + 50)


def savings_rate_score(
    monthly_budget: float,
    monthly_savings_goal: float,
    total_spent: float,
) -> float:
    """
    Savings against the goal, assuming income = budget + savings goal.

    Reaching the goal scores 50; saving twice the goal scores 100.
    A zero goal scores 100 as long as savings are not negative.
    """
    estimated_income = monthly_budget + monthly_savings_goal
    actual_savings = estimated_income - total_spent
    if monthly_savings_goal <= 0:
        return 100.0 if actual_savings >= 0 else 0.0
    return clamp((actual_savings / monthly_savings_goal) * 50)


def impulse_purchase_count(
    transactions: Iterable[Transaction],
    impulse_merchants: Sequence[str] = IMPULSE_MERCHANTS,
) -> int:
    merchants = set(impulse_merchants)
    return sum(1 for t in outgoing(transactions) if t.merchant in merchants)


def impulse_score(
    transactions: Iterable[Transaction],
    impulse_merchants: Sequence[str] = IMPULSE_MERCHANTS,
    threshold: int = IMPULSE_THRESHOLD,
) -> float:
    """100 with no impulse purchases, 50 at the threshold, 0 at twice it."""
    count = impulse_purchase_count(transactions, impulse_merchants)
    return clamp(100 - (count / threshold) * 50)


def calculate_health_metrics(
    transactions: Sequence[Transaction],
    profile: UserProfile,
    now: Optional[datetime] = None,
    impulse_merchants: Sequence[str] = IMPULSE_MERCHANTS,
    impulse_threshold: int = IMPULSE_THRESHOLD,
) -> HealthMetrics:
    """Compute all four health scores from the last 30 days of spending."""
    total_spent = total_spending(transactions, 30, now)

    adherence = budget_adherence_score(profile.monthly_budget, total_spent)
    savings = savings_rate_score(
        profile.monthly_budget, profile.monthly_savings_goal, total_spent
    )
    impulse = impulse_score(transactions, impulse_merchants, impulse_threshold)

    overall = round_half_up(
        adherence * BUDGET_WEIGHT
        + savings * SAVINGS_WEIGHT
        + impulse * IMPULSE_WEIGHT
    )

    return HealthMetrics(
        budget_adherence=round_half_up(adherence),
        savings_rate=round_half_up(savings),
        impulse_score=round_half_up(impulse),
        overall_score=int(clamp(overall)),
    )


# =============================================================================
# SCOTTY
# =============================================================================

def mood_for(happiness: float) -> Mood:
    for lower_bound, mood in MOOD_BANDS:
        if happiness >= lower_bound:
            return mood
    return Mood.SAD


def happiness_from_metrics(
    metrics: HealthMetrics,
    last_fed: Optional[datetime],
    now: Optional[datetime] = None,
) -> int:
    """Overall score discounted by how long Scotty has gone without food."""
    happiness = metrics.overall_score

    if last_fed is None:
        happiness -= NEVER_FED_PENALTY
    else:
        now = now or datetime.now()
        hours_since_fed = (now - last_fed).total_seconds() / 3600
        if hours_since_fed > STARVING_AFTER_HOURS:
            happiness -= STARVING_PENALTY
        elif hours_since_fed > HUNGRY_AFTER_HOURS:
            happiness -= HUNGRY_PENALTY

    return int(clamp(happiness))


def calculate_scotty_state(
    metrics: HealthMetrics,
    last_fed: Optional[datetime],
    food_credits: int,
    now: Optional[datetime] = None,
) -> ScottyState:
    happiness = happiness_from_metrics(metrics, last_fed, now)
    return ScottyState(
        mood=mood_for(happiness),
        happiness=happiness,
        last_fed=last_fed,
        food_credits=food_credits,
    )


def calculate_daily_credits(metrics: HealthMetrics) -> int:
    """Credits earned per day (1-5) based on the overall score."""
    if metrics.overall_score >= 80:
        return 5
    if metrics.overall_score >= 60:
        return 3
    if metrics.overall_score >= 40:
        return 2
    return 1
