"""
Application State Store

The single in-memory state object the presentation layer reads.

RULES:
- Readers get read-only properties; only the coordinator and the action
  dispatcher call the writers below
- Every writer replaces a value wholesale and then notifies listeners
- Budget `spent` and projections are re-derived whenever transactions or
  budgets change
- Dismissed achievement ids are remembered for the whole session
- `backend_connected` goes True at most once and never back

All writes happen on the event loop thread, so there is no locking.
"""

from datetime import datetime
from typing import Callable, Optional, Sequence

import structlog

from scotty.metrics.budgets import project_budget, with_derived_fields
from scotty.metrics.engine import calculate_daily_credits
from scotty.models.finance import (
    AccountInfo,
    Achievement,
    BudgetItem,
    BudgetProjection,
    ChatMessage,
    ChatRole,
    ConnectionStatus,
    DailyInsight,
    HealthMetrics,
    MonthlySpend,
    ScottyState,
    Transaction,
    UpcomingBills,
    UserProfile,
)
from scotty.seeding.seeder import LocalSnapshot


logger = structlog.get_logger(__name__)

WELCOME_MESSAGE = "Woof! I'm Scotty, your financial buddy! Ask me anything about your spending!"

Listener = Callable[["AppStore"], None]


class AppStore:
    """Observable container for the session's state."""

    def __init__(
        self,
        profile: UserProfile,
        transactions: Sequence[Transaction],
        health_metrics: HealthMetrics,
        scotty_state: ScottyState,
        achievements: Sequence[Achievement],
        daily_insight: DailyInsight,
        accounts: Sequence[AccountInfo] = (),
        total_balance: float = 0.0,
        daily_spend: float = 0.0,
        upcoming_bills: Optional[UpcomingBills] = None,
        spending_trend: Sequence[MonthlySpend] = (),
        chat_messages: Sequence[ChatMessage] = (),
    ):
        self._profile = profile
        self._transactions = list(transactions)
        self._health_metrics = health_metrics
        self._scotty_state = scotty_state
        self._achievements = list(achievements)
        self._daily_insight = daily_insight
        self._budgets: list[BudgetItem] = []
        self._budget_projections: list[BudgetProjection] = []
        self._accounts = list(accounts)
        self._total_balance = total_balance
        self._daily_spend = daily_spend
        self._chat_messages = list(chat_messages)
        self._upcoming_bills = upcoming_bills or UpcomingBills()
        self._spending_trend = list(spending_trend)
        self._daily_quests: list[Achievement] = []
        self._dismissed_achievement_ids: set[str] = set()
        self._connection = ConnectionStatus()
        self._listeners: list[Listener] = []

    @classmethod
    def from_snapshot(cls, snapshot: LocalSnapshot) -> "AppStore":
        """Store seeded from local state, with Scotty's greeting in the chat."""
        return cls(
            profile=snapshot.profile,
            transactions=snapshot.transactions,
            health_metrics=snapshot.health_metrics,
            scotty_state=snapshot.scotty_state,
            achievements=snapshot.achievements,
            daily_insight=snapshot.daily_insight,
            accounts=snapshot.accounts,
            total_balance=snapshot.total_balance,
            daily_spend=snapshot.daily_spend,
            upcoming_bills=snapshot.upcoming_bills,
            spending_trend=snapshot.spending_trend,
            chat_messages=[ChatMessage(role=ChatRole.SCOTTY, content=WELCOME_MESSAGE)],
        )

    # =========================================================================
    # READ ACCESS
    # =========================================================================

    @property
    def profile(self) -> UserProfile:
        return self._profile

    @property
    def transactions(self) -> list[Transaction]:
        return list(self._transactions)

    @property
    def health_metrics(self) -> HealthMetrics:
        return self._health_metrics

    @property
    def scotty_state(self) -> ScottyState:
        return self._scotty_state

    @property
    def achievements(self) -> list[Achievement]:
        return list(self._achievements)

    @property
    def daily_insight(self) -> DailyInsight:
        return self._daily_insight

    @property
    def budgets(self) -> list[BudgetItem]:
        return list(self._budgets)

    @property
    def budget_projections(self) -> list[BudgetProjection]:
        """End-of-month projection per budget, in budget order."""
        return list(self._budget_projections)

    @property
    def accounts(self) -> list[AccountInfo]:
        return list(self._accounts)

    @property
    def total_balance(self) -> float:
        return self._total_balance

    @property
    def daily_spend(self) -> float:
        return self._daily_spend

    @property
    def daily_credits(self) -> int:
        """Food credits the current health score earns per day."""
        return calculate_daily_credits(self._health_metrics)

    @property
    def upcoming_bills(self) -> UpcomingBills:
        return self._upcoming_bills

    @property
    def spending_trend(self) -> list[MonthlySpend]:
        return list(self._spending_trend)

    @property
    def daily_quests(self) -> list[Achievement]:
        return list(self._daily_quests)

    @property
    def dismissed_achievement_ids(self) -> frozenset[str]:
        return frozenset(self._dismissed_achievement_ids)

    @property
    def chat_messages(self) -> list[ChatMessage]:
        return list(self._chat_messages)

    @property
    def connection(self) -> ConnectionStatus:
        return self._connection

    @property
    def backend_connected(self) -> bool:
        return self._connection.backend_connected

    # =========================================================================
    # OBSERVERS
    # =========================================================================

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a listener called after every write.

        Returns:
            A function that unsubscribes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception as e:
                # A broken listener must not undo or block a write
                logger.error("store_listener_failed", error=str(e))

    # =========================================================================
    # WRITERS
    # =========================================================================

    def replace_profile(self, profile: UserProfile) -> None:
        self._profile = profile
        self._notify()

    def replace_transactions(
        self,
        transactions: Sequence[Transaction],
        now: Optional[datetime] = None,
    ) -> None:
        """Swap in a new transaction set and re-derive budget spend."""
        self._transactions = list(transactions)
        self._derive_budgets(self._budgets, now)
        self._notify()

    def set_health_metrics(self, metrics: HealthMetrics) -> None:
        self._health_metrics = metrics
        self._notify()

    def set_scotty_state(self, state: ScottyState) -> None:
        self._scotty_state = state
        self._notify()

    def set_budgets(self, budgets: Sequence[BudgetItem], now: Optional[datetime] = None) -> None:
        """Replace budgets; `spent` always comes from the current transactions."""
        self._derive_budgets(budgets, now)
        self._notify()

    def _derive_budgets(self, budgets: Sequence[BudgetItem], now: Optional[datetime]) -> None:
        now = now or datetime.now()
        self._budgets = [with_derived_fields(b, self._transactions, now) for b in budgets]
        self._budget_projections = [project_budget(b, now) for b in self._budgets]

    def set_accounts(self, accounts: Sequence[AccountInfo], total_balance: float) -> None:
        self._accounts = list(accounts)
        self._total_balance = total_balance
        self._notify()

    def set_daily_spend(self, amount: float) -> None:
        self._daily_spend = amount
        self._notify()

    def set_upcoming_bills(self, bills: UpcomingBills) -> None:
        self._upcoming_bills = bills
        self._notify()

    def set_spending_trend(self, trend: Sequence[MonthlySpend]) -> None:
        self._spending_trend = list(trend)
        self._notify()

    def set_daily_quests(self, quests: Sequence[Achievement]) -> None:
        self._daily_quests = list(quests)
        self._notify()

    def set_daily_insight(self, insight: DailyInsight) -> None:
        self._daily_insight = insight
        self._notify()

    def set_achievements(self, achievements: Sequence[Achievement]) -> None:
        self._achievements = list(achievements)
        self._notify()

    def record_dismissal(self, achievement_id: str) -> None:
        """Remember a dismissal so rebuilt lists keep it out."""
        self._dismissed_achievement_ids.add(achievement_id)

    def update_achievement(self, achievement: Achievement) -> bool:
        """Replace the achievement with the same id. Returns False if absent."""
        for index, existing in enumerate(self._achievements):
            if existing.id == achievement.id:
                self._achievements[index] = achievement
                self._notify()
                return True
        return False

    def append_chat_message(self, message: ChatMessage) -> None:
        self._chat_messages.append(message)
        self._notify()

    def mark_probe_failed(self) -> None:
        """The probe ran and failed; the session stays local."""
        if self._connection.probe_completed:
            return
        self._connection = ConnectionStatus(probe_completed=True)
        self._notify()

    def mark_backend_connected(self, now: Optional[datetime] = None) -> None:
        """The probe succeeded. Idempotent; never reverts."""
        if self._connection.probe_completed:
            return
        self._connection = ConnectionStatus(
            backend_connected=True,
            probe_completed=True,
            connected_at=now or datetime.now(),
        )
        self._notify()
