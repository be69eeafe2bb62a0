"""
Local State Seeder

Builds a complete, presentable state with zero network dependency.
This is what the user sees first, and what they keep seeing for the
whole session if the backend is unreachable.

GUARANTEES:
- Never touches the network
- Never divides by zero (the metrics engine special-cases empty budgets)
- Always yields at least one achievement
"""

import random
from datetime import datetime
from typing import Optional, Sequence

from pydantic import BaseModel, Field

from scotty.agents.responder import LocalInsightGenerator
from scotty.config import get_settings
from scotty.metrics.budgets import today_spend
from scotty.metrics.engine import (
    calculate_health_metrics,
    calculate_scotty_state,
    dominant_category,
)
from scotty.metrics.trends import monthly_spending_trend, upcoming_subscriptions
from scotty.models.finance import (
    AccountInfo,
    Achievement,
    AchievementSource,
    DailyInsight,
    HealthMetrics,
    MonthlySpend,
    ScottyState,
    Transaction,
    UpcomingBills,
    UserProfile,
)
from scotty.seeding.sample_data import generate_transaction_history, generate_user_profile


CUT_BACK_FRACTION = 0.2
WEEKEND_SAVER_LIMIT = 50


def build_local_achievements(transactions: Sequence[Transaction]) -> list[Achievement]:
    """
    Achievements derived from spending.

    1. When a dominant spending category exists: cut it back by 20%
    2. Always: a generic weekend savings challenge

    Ids are derived from content, so rebuilding against fresher
    transactions keeps the same ids for the same challenges.
    """
    achievements: list[Achievement] = []

    top = dominant_category(transactions)
    if top is not None:
        category, amount = top
        achievements.append(Achievement(
            id=f"local_cut_{category.value}",
            title=f"Reduce {category.label} spending",
            description=(
                f"You spent ${amount:.0f} on {category.label} this month. "
                f"Try cutting back by {CUT_BACK_FRACTION:.0%}!"
            ),
            target_amount=round(amount * (1 - CUT_BACK_FRACTION)),
            current_amount=round(amount, 2),
            completed=False,
            category=category,
            source=AchievementSource.LOCAL,
        ))

    achievements.append(Achievement(
        id="local_weekend_saver",
        title="Weekend Saver",
        description=(
            f"Keep weekend spending under ${WEEKEND_SAVER_LIMIT} "
            "for entertainment and dining."
        ),
        target_amount=WEEKEND_SAVER_LIMIT,
        current_amount=0,
        completed=False,
        source=AchievementSource.LOCAL,
    ))

    return achievements


def primary_account(profile: UserProfile) -> AccountInfo:
    """The single account assumed when no account data is available."""
    return AccountInfo(
        id="default",
        type="checking",
        nickname="Primary Account",
        balance=profile.current_balance,
    )


class LocalSnapshot(BaseModel):
    """Everything the presentation layer needs, computed locally."""

    profile: UserProfile
    transactions: list[Transaction]
    health_metrics: HealthMetrics
    scotty_state: ScottyState
    achievements: list[Achievement] = Field(min_length=1)
    daily_insight: DailyInsight
    accounts: list[AccountInfo]
    total_balance: float
    daily_spend: float
    upcoming_bills: UpcomingBills = Field(default_factory=UpcomingBills)
    spending_trend: list[MonthlySpend] = Field(default_factory=list)


class LocalStateSeeder:
    """
    Produces the startup state.

    Transactions come from, in order of preference:
    1. The set passed to `seed` (e.g. a bundled or cached set)
    2. Freshly generated sample data
    """

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        insight_generator: Optional[LocalInsightGenerator] = None,
    ):
        self._settings = get_settings().app
        if rng is None:
            rng = random.Random(self._settings.seed_random_seed)
        self._rng = rng
        self._insights = insight_generator or LocalInsightGenerator(rng)

    def seed(
        self,
        transactions: Optional[Sequence[Transaction]] = None,
        profile: Optional[UserProfile] = None,
        now: Optional[datetime] = None,
    ) -> LocalSnapshot:
        now = now or datetime.now()

        if profile is None:
            profile = generate_user_profile(self._rng)
        if transactions is None:
            transactions = generate_transaction_history(
                self._settings.seed_history_days,
                self._settings.seed_transactions_per_day,
                self._rng,
                now,
            )
        transactions = list(transactions)

        metrics = self.compute_metrics(transactions, profile, now)
        scotty = calculate_scotty_state(
            metrics,
            last_fed=None,
            food_credits=self._settings.starting_food_credits,
            now=now,
        )
        account = primary_account(profile)

        return LocalSnapshot(
            profile=profile,
            transactions=transactions,
            health_metrics=metrics,
            scotty_state=scotty,
            achievements=build_local_achievements(transactions),
            daily_insight=self._insights.generate(transactions, now),
            accounts=[account],
            total_balance=account.balance,
            daily_spend=today_spend(transactions, now),
            upcoming_bills=upcoming_subscriptions(transactions, now),
            spending_trend=monthly_spending_trend(transactions, now=now),
        )

    def compute_metrics(
        self,
        transactions: Sequence[Transaction],
        profile: UserProfile,
        now: Optional[datetime] = None,
    ) -> HealthMetrics:
        """Health metrics using the configured impulse heuristics."""
        return calculate_health_metrics(
            transactions,
            profile,
            now,
            impulse_merchants=self._settings.impulse_merchants_list,
            impulse_threshold=self._settings.impulse_threshold,
        )
