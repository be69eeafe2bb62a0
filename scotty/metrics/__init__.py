"""Derived metrics package (pure functions)."""

from scotty.metrics.budgets import (
    budget_spent,
    days_in_period,
    derived_daily_limit,
    project_budget,
    today_spend,
    with_derived_fields,
)
from scotty.metrics.categories import map_category
from scotty.metrics.engine import (
    IMPULSE_MERCHANTS,
    IMPULSE_THRESHOLD,
    calculate_daily_credits,
    calculate_health_metrics,
    calculate_scotty_state,
    dominant_category,
    happiness_from_metrics,
    mood_for,
    spending_by_category,
    total_spending,
)
from scotty.metrics.trends import monthly_spending_trend, upcoming_subscriptions

__all__ = [
    "IMPULSE_MERCHANTS",
    "IMPULSE_THRESHOLD",
    "budget_spent",
    "calculate_daily_credits",
    "calculate_health_metrics",
    "calculate_scotty_state",
    "days_in_period",
    "derived_daily_limit",
    "dominant_category",
    "happiness_from_metrics",
    "map_category",
    "monthly_spending_trend",
    "mood_for",
    "project_budget",
    "spending_by_category",
    "today_spend",
    "total_spending",
    "upcoming_subscriptions",
    "with_derived_fields",
]
