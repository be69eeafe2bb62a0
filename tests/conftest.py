"""
Shared fixtures.

FakeBackend implements BackendInterface in memory. Any resource can be
made to fail (`fail`) or to hang past its deadline (`stall`), and every
call is recorded so tests can assert on what was (not) sent.
"""

import asyncio
import random
from datetime import date, datetime, timedelta
from typing import Any, Optional

import pytest

from scotty.audit import AuditLogger
from scotty.config import AppSettings, BackendSettings
from scotty.models.finance import (
    AccountInfo,
    Achievement,
    AchievementSource,
    BudgetItem,
    DailyInsight,
    FoodType,
    HealthMetrics,
    InsightType,
    MonthlySpend,
    Mood,
    SavingsGoal,
    ScottyState,
    Transaction,
    TransactionCategory,
    UpcomingBills,
    UpcomingSubscription,
    UserProfile,
)
from scotty.reconciler import AchievementReconciler
from scotty.seeding import LocalStateSeeder
from scotty.services.backend import (
    AccountsSummary,
    BackendInterface,
    BackendUnavailableError,
    BudgetDraft,
    ChatReply,
    DailyPayload,
)
from scotty.store import AppStore


NOW = datetime(2026, 3, 15, 12, 0, 0)


def make_transaction(
    id: str,
    amount: float,
    category: TransactionCategory = TransactionCategory.OTHER,
    merchant: str = "Shop",
    days_ago: float = 0,
    is_incoming: bool = False,
    is_subscription: bool = False,
) -> Transaction:
    return Transaction(
        id=id,
        amount=amount,
        category=category,
        merchant=merchant,
        date=NOW - timedelta(days=days_ago),
        is_incoming=is_incoming,
        is_subscription=is_subscription,
    )


class FakeBackend(BackendInterface):
    """In-memory backend with per-resource failure injection."""

    def __init__(self):
        self.healthy = True
        self.failures: set[str] = set()
        self.stalls: set[str] = set()
        self.calls: list[str] = []
        self.completed: list[str] = []

        self.transactions = [
            make_transaction("remote_1", 40.0, TransactionCategory.GROCERIES, "Whole Foods", 1),
            make_transaction("remote_2", 25.0, TransactionCategory.FOOD_DINING, "Chipotle", 0),
            make_transaction("remote_3", 500.0, TransactionCategory.OTHER, "Payroll", 2, is_incoming=True),
        ]
        self.health_metrics = HealthMetrics(
            budget_adherence=90, savings_rate=80, impulse_score=100, overall_score=90,
        )
        self.scotty_state = ScottyState(
            mood=Mood.HAPPY, happiness=88, last_fed=NOW - timedelta(hours=1), food_credits=42,
        )
        self.profile = UserProfile(monthly_budget=3000, monthly_savings_goal=600, current_balance=5000)
        self.budgets = [
            BudgetItem(id="b1", category="Groceries", limit_amount=300, spent=999),
        ]
        self.accounts = AccountsSummary(
            accounts=[
                AccountInfo(id="a1", type="checking", nickname="Everyday", balance=1200),
                AccountInfo(id="a2", type="savings", nickname="Rainy Day", balance=800),
            ],
            total_balance=2000,
        )
        self.today_spend = 25.0
        self.daily_payload = DailyPayload(
            insights=[DailyInsight(id="remote_insight", message="Backend says hi", type=InsightType.POSITIVE)],
        )
        self.active_quest: Optional[Achievement] = Achievement(
            id="quest_1",
            title="No DoorDash today",
            description="Avoid making any purchases at DoorDash today.",
            source=AchievementSource.BACKEND_QUEST,
        )
        spotify = UpcomingSubscription(merchant="Spotify", amount=9.99, next_date=date(2026, 3, 15))
        self.upcoming_bills = UpcomingBills(subscriptions=[spotify], bill_days=[15], due_today=[spotify])
        self.spending_trend = [
            MonthlySpend(month="2026-02", total=1800.0),
            MonthlySpend(month="2026-03", total=650.0),
        ]
        self.daily_quests = [
            Achievement(id="quest_2", title="Skip Starbucks", source=AchievementSource.BACKEND_QUEST),
        ]
        self.refreshed_quests = [
            Achievement(id="quest_3", title="Transfer $20", source=AchievementSource.BACKEND_QUEST),
        ]
        self.chat_response = "Remote Scotty here!"
        self.fed_state = ScottyState(mood=Mood.HAPPY, happiness=95, last_fed=NOW, food_credits=40)

    def fail(self, *resources: str) -> "FakeBackend":
        self.failures.update(resources)
        return self

    def stall(self, *resources: str) -> "FakeBackend":
        self.stalls.update(resources)
        return self

    async def _serve(self, resource: str, value: Any) -> Any:
        self.calls.append(resource)
        if resource in self.stalls:
            await asyncio.sleep(3600)
        if resource in self.failures:
            raise BackendUnavailableError(f"{resource} is down")
        self.completed.append(resource)
        return value

    async def check_health(self) -> bool:
        await self._serve("health", None)
        return self.healthy

    async def fetch_transactions(self, days: int = 30) -> list[Transaction]:
        return await self._serve("transactions", list(self.transactions))

    async def fetch_health_metrics(self) -> HealthMetrics:
        return await self._serve("health_metrics", self.health_metrics)

    async def fetch_scotty_state(self) -> ScottyState:
        return await self._serve("scotty_state", self.scotty_state)

    async def fetch_profile(self) -> UserProfile:
        return await self._serve("profile", self.profile)

    async def fetch_budgets(self) -> list[BudgetItem]:
        return await self._serve("budgets", list(self.budgets))

    async def fetch_accounts(self) -> AccountsSummary:
        return await self._serve("accounts", self.accounts)

    async def fetch_today_spend(self) -> float:
        return await self._serve("today_spend", self.today_spend)

    async def fetch_daily_payload(self) -> DailyPayload:
        return await self._serve("daily_payload", self.daily_payload)

    async def fetch_active_quest(self) -> Optional[Achievement]:
        return await self._serve("active_quest", self.active_quest)

    async def fetch_daily_quests(self) -> list[Achievement]:
        return await self._serve("daily_quests", list(self.daily_quests))

    async def fetch_upcoming_bills(self) -> UpcomingBills:
        return await self._serve("upcoming_bills", self.upcoming_bills)

    async def fetch_spending_trend(self) -> list[MonthlySpend]:
        return await self._serve("spending_trend", list(self.spending_trend))

    async def refresh_daily_quests(self) -> list[Achievement]:
        return await self._serve("refresh_quests", list(self.refreshed_quests))

    async def feed(self, food_type: FoodType) -> ScottyState:
        return await self._serve("feed", self.fed_state)

    async def send_chat(self, message: str) -> ChatReply:
        return await self._serve("chat", ChatReply(response=self.chat_response))

    async def create_budget(self, draft: BudgetDraft) -> BudgetItem:
        budget = BudgetItem(
            id="b_new",
            category=draft.category,
            limit_amount=draft.limit_amount,
            frequency=draft.frequency,
        )
        self.budgets.append(budget)
        return await self._serve("create_budget", budget)

    async def update_budget(self, budget_id: str, draft: BudgetDraft) -> BudgetItem:
        existing = next(b for b in self.budgets if b.id == budget_id)
        updated = existing.model_copy(update=draft.model_dump(exclude_none=True))
        self.budgets = [updated if b.id == budget_id else b for b in self.budgets]
        return await self._serve("update_budget", updated)

    async def create_goal(self, goal: SavingsGoal) -> SavingsGoal:
        return await self._serve("create_goal", goal.model_copy(update={"id": "g1"}))


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def backend_settings() -> BackendSettings:
    """Short deadlines so timeout paths run fast."""
    return BackendSettings(
        probe_timeout_seconds=0.2,
        upgrade_timeout_seconds=1.0,
        resource_timeout_seconds=0.2,
        daily_payload_timeout_seconds=0.2,
        quest_timeout_seconds=0.2,
        read_retry_attempts=1,
    )


@pytest.fixture
def app_settings() -> AppSettings:
    return AppSettings()


@pytest.fixture
def audit_logger() -> AuditLogger:
    return AuditLogger()


@pytest.fixture
def local_transactions() -> list[Transaction]:
    return [
        make_transaction("local_1", 120.0, TransactionCategory.FOOD_DINING, "DoorDash", 1),
        make_transaction("local_2", 60.0, TransactionCategory.GROCERIES, "Trader Joe's", 2),
        make_transaction("local_3", 15.99, TransactionCategory.SUBSCRIPTIONS, "Netflix", 3, is_subscription=True),
        make_transaction("local_4", 30.0, TransactionCategory.TRANSPORT, "Uber", 0),
    ]


@pytest.fixture
def local_profile() -> UserProfile:
    return UserProfile(monthly_budget=2500, monthly_savings_goal=500, current_balance=3200)


@pytest.fixture
def seeder() -> LocalStateSeeder:
    return LocalStateSeeder(rng=random.Random(7))


@pytest.fixture
def store(seeder, local_transactions, local_profile, now) -> AppStore:
    snapshot = seeder.seed(local_transactions, local_profile, now)
    return AppStore.from_snapshot(snapshot)


@pytest.fixture
def reconciler() -> AchievementReconciler:
    return AchievementReconciler()
