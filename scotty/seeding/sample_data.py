"""
Sample Data Generator

Realistic college-student spending used to seed the local state before
(or instead of) any backend data. All randomness goes through an
injectable `random.Random`, so a fixed seed reproduces the same history.
"""

import random
from datetime import datetime, timedelta
from typing import Optional

from scotty.models.finance import Transaction, TransactionCategory, UserProfile


C = TransactionCategory

MERCHANTS: dict[TransactionCategory, list[str]] = {
    C.FOOD_DINING: [
        "Chipotle", "Chick-fil-A", "Starbucks", "Dominos", "DoorDash",
        "Uber Eats", "Taco Bell", "McDonalds", "Panda Express", "Subway",
    ],
    C.GROCERIES: ["Trader Joes", "Walmart", "Target", "Aldi", "Kroger", "Costco", "Whole Foods"],
    C.TRANSPORT: ["Uber", "Lyft", "Shell Gas", "BP", "Campus Parking", "Bus Pass"],
    C.ENTERTAINMENT: ["Netflix", "Spotify", "Steam", "PlayStation", "AMC Theaters", "Dave & Busters", "TopGolf"],
    C.SHOPPING: ["Amazon", "Target", "Shein", "Urban Outfitters", "Nike", "Best Buy", "Etsy"],
    C.SUBSCRIPTIONS: [
        "Netflix", "Spotify", "Apple Music", "Disney+", "Hulu",
        "HBO Max", "Crunchyroll", "ChatGPT Plus", "iCloud",
    ],
    C.UTILITIES: ["Verizon", "AT&T", "Xfinity", "Electric Co", "Water Utility"],
    C.EDUCATION: ["Campus Bookstore", "Chegg", "Coursera", "Quizlet Plus"],
    C.HEALTH: ["CVS", "Walgreens", "Campus Health", "GoodRx"],
    C.OTHER: ["Venmo", "ATM Withdrawal", "Cash App"],
}

SPENDING_RANGES: dict[TransactionCategory, tuple[float, float]] = {
    C.FOOD_DINING: (8, 45),
    C.GROCERIES: (25, 120),
    C.TRANSPORT: (10, 50),
    C.ENTERTAINMENT: (10, 60),
    C.SHOPPING: (15, 100),
    C.SUBSCRIPTIONS: (5, 20),
    C.UTILITIES: (30, 80),
    C.EDUCATION: (20, 150),
    C.HEALTH: (10, 50),
    C.OTHER: (10, 100),
}

CATEGORY_WEIGHTS: dict[TransactionCategory, float] = {
    C.FOOD_DINING: 0.35,
    C.GROCERIES: 0.12,
    C.TRANSPORT: 0.12,
    C.ENTERTAINMENT: 0.10,
    C.SHOPPING: 0.12,
    C.SUBSCRIPTIONS: 0.08,
    C.UTILITIES: 0.04,
    C.EDUCATION: 0.03,
    C.HEALTH: 0.02,
    C.OTHER: 0.02,
}


def _generate_id(rng: random.Random) -> str:
    return f"local_{rng.getrandbits(48):012x}"


def _random_in_range(rng: random.Random, low: float, high: float) -> float:
    return round(rng.uniform(low, high), 2)


def _weighted_category(rng: random.Random) -> TransactionCategory:
    categories = list(CATEGORY_WEIGHTS)
    weights = [CATEGORY_WEIGHTS[c] for c in categories]
    return rng.choices(categories, weights=weights, k=1)[0]


def generate_transaction(
    days_ago: int = 0,
    rng: Optional[random.Random] = None,
    now: Optional[datetime] = None,
) -> Transaction:
    rng = rng or random.Random()
    now = now or datetime.now()

    category = _weighted_category(rng)
    low, high = SPENDING_RANGES[category]

    day = (now - timedelta(days=days_ago)).replace(second=0, microsecond=0)
    # 8am - 10pm
    when = day.replace(hour=rng.randint(8, 21), minute=rng.randint(0, 59))
    if when > now:
        when = day.replace(hour=now.hour, minute=now.minute)

    return Transaction(
        id=_generate_id(rng),
        amount=_random_in_range(rng, low, high),
        category=category,
        merchant=rng.choice(MERCHANTS[category]),
        date=when,
        is_subscription=category == C.SUBSCRIPTIONS,
    )


def generate_transaction_history(
    days: int = 30,
    transactions_per_day: int = 3,
    rng: Optional[random.Random] = None,
    now: Optional[datetime] = None,
) -> list[Transaction]:
    """
    Generate `days` days of spending, most recent first.

    Each day gets between 1 and transactions_per_day + 2 transactions.
    """
    rng = rng or random.Random()
    now = now or datetime.now()

    transactions: list[Transaction] = []
    for day in range(days):
        count = max(1, int(transactions_per_day + (rng.random() - 0.5) * 4))
        for _ in range(count):
            transactions.append(generate_transaction(day, rng, now))

    transactions.sort(key=lambda t: t.date, reverse=True)
    return transactions


def generate_user_profile(rng: Optional[random.Random] = None) -> UserProfile:
    rng = rng or random.Random()
    return UserProfile(
        monthly_budget=_random_in_range(rng, 800, 1500),
        monthly_savings_goal=_random_in_range(rng, 100, 300),
        current_balance=_random_in_range(rng, 500, 3000),
    )
