"""
Local Responders

Heuristic stand-ins for the backend's language features, used whenever
the backend is unreachable or a remote call fails:

1. LOCAL CHAT RESPONDER:
   - Pattern-matches keywords in the user's message
   - Answers FROM the transaction set (totals, category spend)
   - Falls back to a randomized generic reply

2. LOCAL INSIGHT GENERATOR:
   - Picks one short observation about recent spending

Neither ever calls the network.
"""

import random
from datetime import datetime
from typing import Optional, Sequence

from scotty.metrics.engine import spending_by_category, total_spending
from scotty.models.finance import (
    DailyInsight,
    InsightType,
    Transaction,
    TransactionCategory,
)


DELIVERY_MERCHANTS = ("DoorDash", "Uber Eats")

GENERIC_REPLIES = (
    "Interesting! Tell me more about your financial goals and I'll help you get there.",
    "I'm always here to help! Try asking me how you're doing or about specific spending categories.",
    "*perks up ears* I'd love to help you save more. What area of spending concerns you most?",
)


class LocalChatResponder:
    """
    Keyword-driven chat replies.

    Order matters: the first matching rule wins.
    """

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        doing_well_threshold: float = 800.0,
        food_alert_threshold: float = 300.0,
    ):
        self._rng = rng or random.Random()
        self._doing_well_threshold = doing_well_threshold
        self._food_alert_threshold = food_alert_threshold

    def respond(
        self,
        message: str,
        transactions: Sequence[Transaction],
        now: Optional[datetime] = None,
    ) -> str:
        lower = message.lower()
        total = total_spending(transactions, 30, now)
        spending = spending_by_category(transactions)

        if "how am i doing" in lower or "status" in lower:
            if total < self._doing_well_threshold:
                return (
                    "Woof! You're doing pawsitively great! Your spending is well "
                    f"under control this month (${total:.0f} so far). Keep it up!"
                )
            return (
                f"You've spent ${total:.0f} in the last 30 days. You're doing okay, but "
                "I've noticed some areas where we could trim back. Want to look at "
                "your top spending categories?"
            )

        if "food" in lower or "eating" in lower:
            food_spend = (
                spending.get(TransactionCategory.FOOD_DINING, 0.0)
                + spending.get(TransactionCategory.GROCERIES, 0.0)
            )
            verdict = (
                "That's a bit ruff on the budget - maybe try meal prepping?"
                if food_spend > self._food_alert_threshold
                else "Not bad at all! Good balance between dining out and groceries."
            )
            return f"You've spent ${food_spend:.0f} on food this month. {verdict}"

        if "subscription" in lower:
            subscriptions = sorted({t.merchant for t in transactions if t.is_subscription})
            if subscriptions:
                listed = ", ".join(subscriptions[:5])
                return (
                    f"I count {len(subscriptions)} subscriptions ({listed}). When's the last "
                    "time you used all of them?"
                )
            return (
                "I see you have a few subscriptions running. When's the last time you "
                "used all of them? Sometimes we forget about ones we signed up for months ago!"
            )

        if "save" in lower or "saving" in lower:
            return (
                "Great question! Based on your spending, I'd suggest starting with cutting "
                "one subscription and reducing delivery orders by half. That could save "
                "you $50-80/month!"
            )

        if "help" in lower:
            return (
                "I'm here for you! I can help you track spending, set goals, and stay on "
                "budget. Just ask me about your finances or how you're doing!"
            )

        return self._rng.choice(GENERIC_REPLIES)


class LocalInsightGenerator:
    """Picks one insight about recent spending."""

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()

    def generate(
        self,
        transactions: Sequence[Transaction],
        now: Optional[datetime] = None,
    ) -> DailyInsight:
        candidates: list[tuple[str, InsightType]] = []

        week_total = total_spending(transactions, 7, now)
        if week_total < 150:
            candidates.append((
                "Ruff! You've spent less than $150 this week. That's pawsome budgeting!",
                InsightType.POSITIVE,
            ))

        recent = sorted(transactions, key=lambda t: t.date, reverse=True)[:10]
        delivery_count = sum(1 for t in recent if t.merchant in DELIVERY_MERCHANTS)
        if delivery_count >= 3:
            candidates.append((
                f"Heads up! That's {delivery_count} delivery orders recently. "
                "Your wallet might need a walk instead!",
                InsightType.WARNING,
            ))

        spending = spending_by_category(transactions)
        if spending.get(TransactionCategory.GROCERIES, 0.0) > spending.get(TransactionCategory.FOOD_DINING, 0.0):
            candidates.append((
                "Nice! You're spending more on groceries than dining out. Smart money moves!",
                InsightType.POSITIVE,
            ))

        candidates.append((
            "Remember: small daily savings add up to big monthly wins!",
            InsightType.NEUTRAL,
        ))

        message, insight_type = self._rng.choice(candidates)
        return DailyInsight(
            message=message,
            type=insight_type,
            date=now or datetime.now(),
        )
