"""
Abstract Backend Interface

The client core only talks to the remote backend through this interface.
This allows us to:
1. Swap the HTTP implementation without touching the state engine
2. Use in-memory fakes for testing (fail one resource, stall another)
3. Keep payload mapping in one place

Every method may raise a BackendError. Callers in the core always catch
it and fall back to a local equivalent; nothing here is user-visible.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from pydantic import BaseModel, Field

from scotty.models.finance import (
    AccountInfo,
    Achievement,
    BudgetFrequency,
    BudgetItem,
    ChatAction,
    DailyInsight,
    FoodType,
    HealthMetrics,
    MonthlySpend,
    SavingsGoal,
    ScottyState,
    Transaction,
    UpcomingBills,
    UserProfile,
)


# =============================================================================
# EXCEPTIONS
# =============================================================================

class BackendError(Exception):
    """Base exception for backend errors."""
    pass


class BackendUnavailableError(BackendError):
    """The backend could not be reached (network error, timeout)."""
    pass


class BackendResponseError(BackendError):
    """The backend answered, but not with something usable."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class NotFoundError(BackendResponseError):
    """Requested resource doesn't exist."""
    pass


# =============================================================================
# COMPOSITE RESPONSES
# =============================================================================

class DailyPayload(BaseModel):
    """The backend's daily bundle: insights, today's quest, suggestions."""

    insights: list[DailyInsight] = Field(default_factory=list)
    active_quest: Optional[Achievement] = None
    optional_actions: list[dict[str, Any]] = Field(default_factory=list)


class ChatReply(BaseModel):
    response: str
    actions: list[ChatAction] = Field(default_factory=list)


class AccountsSummary(BaseModel):
    accounts: list[AccountInfo] = Field(default_factory=list)
    total_balance: float = 0.0


class BudgetDraft(BaseModel):
    """Fields of a budget the user is creating or editing."""

    category: Optional[str] = None
    limit_amount: Optional[float] = None
    frequency: Optional[BudgetFrequency] = None
    adaptive_enabled: Optional[bool] = None
    adaptive_max_adjust_pct: Optional[float] = None


# =============================================================================
# INTERFACE
# =============================================================================

class BackendInterface(ABC):
    """
    Abstract interface for the remote backend.

    Read methods return already-mapped client models. Mutations return
    the backend's canonical view of what changed.
    """

    @abstractmethod
    async def check_health(self) -> bool:
        """
        Reachability probe.

        Returns:
            True if the backend is up and answering
        """
        pass

    # ----- reads -----

    @abstractmethod
    async def fetch_transactions(self, days: int = 30) -> list[Transaction]:
        pass

    @abstractmethod
    async def fetch_health_metrics(self) -> HealthMetrics:
        pass

    @abstractmethod
    async def fetch_scotty_state(self) -> ScottyState:
        pass

    @abstractmethod
    async def fetch_profile(self) -> UserProfile:
        pass

    @abstractmethod
    async def fetch_budgets(self) -> list[BudgetItem]:
        """
        List the user's budgets.

        `spent` on the returned items is meaningless; the client
        recomputes it from transactions.
        """
        pass

    @abstractmethod
    async def fetch_accounts(self) -> AccountsSummary:
        pass

    @abstractmethod
    async def fetch_today_spend(self) -> float:
        pass

    @abstractmethod
    async def fetch_daily_payload(self) -> DailyPayload:
        """
        Today's insights and quest.

        May be slow: the backend can generate the payload on demand.
        """
        pass

    @abstractmethod
    async def fetch_active_quest(self) -> Optional[Achievement]:
        """
        The quest currently running for the user.

        Returns:
            The quest mapped to an Achievement, or None if there is none
        """
        pass

    @abstractmethod
    async def fetch_daily_quests(self) -> list[Achievement]:
        pass

    @abstractmethod
    async def fetch_upcoming_bills(self) -> UpcomingBills:
        """Recurring charges expected in the next 30 days."""
        pass

    @abstractmethod
    async def fetch_spending_trend(self) -> list[MonthlySpend]:
        """Monthly outgoing totals, oldest first."""
        pass

    # ----- mutations -----

    @abstractmethod
    async def feed(self, food_type: FoodType) -> ScottyState:
        """Feed Scotty. Returns the authoritative pet state."""
        pass

    @abstractmethod
    async def send_chat(self, message: str) -> ChatReply:
        pass

    @abstractmethod
    async def refresh_daily_quests(self) -> list[Achievement]:
        """Ask the backend to generate a fresh set of daily quests."""
        pass

    @abstractmethod
    async def create_budget(self, draft: BudgetDraft) -> BudgetItem:
        pass

    @abstractmethod
    async def update_budget(self, budget_id: str, draft: BudgetDraft) -> BudgetItem:
        """
        Raises:
            NotFoundError: If the budget doesn't exist
        """
        pass

    @abstractmethod
    async def create_goal(self, goal: SavingsGoal) -> SavingsGoal:
        pass
