"""
Core Data Models for Scotty

These models are the single authoritative schema for everything the
client core reads and writes. The presentation layer only ever sees
instances of these classes.

They are designed to:
1. Enforce the numeric invariants (clamped scores, non-negative credits)
2. Keep backend payload quirks out of the rest of the code
3. Be cheap to copy, so every write replaces a value instead of mutating it
"""

from datetime import date, datetime
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionCategory(str, Enum):
    """
    Spending categories understood by the client.

    Backend category strings are mapped into this closed set;
    anything unrecognised becomes OTHER.
    """
    FOOD_DINING = "food_dining"
    GROCERIES = "groceries"
    TRANSPORT = "transport"
    ENTERTAINMENT = "entertainment"
    SHOPPING = "shopping"
    SUBSCRIPTIONS = "subscriptions"
    UTILITIES = "utilities"
    EDUCATION = "education"
    HEALTH = "health"
    OTHER = "other"

    @property
    def label(self) -> str:
        """Human readable name, e.g. 'food dining'."""
        return self.value.replace("_", " ")


class BudgetFrequency(str, Enum):
    """Period a budget limit applies to."""
    DAY = "Day"
    WEEK = "Week"
    MONTH = "Month"
    YEAR = "Year"


class Mood(str, Enum):
    """Coarse discretization of happiness."""
    HAPPY = "happy"
    CONTENT = "content"
    WORRIED = "worried"
    SAD = "sad"


class FoodType(str, Enum):
    """What the user can feed Scotty."""
    TREAT = "treat"
    MEAL = "meal"


class AchievementSource(str, Enum):
    """Where an achievement came from."""
    LOCAL = "local"                   # Generated on-device from transactions
    BACKEND_QUEST = "backend_quest"   # Mapped from the backend's active quest


class InsightType(str, Enum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    WARNING = "warning"


class ChatRole(str, Enum):
    USER = "user"
    SCOTTY = "scotty"


# =============================================================================
# TRANSACTIONS & PROFILE
# =============================================================================

class Transaction(BaseModel):
    """
    A single money movement.

    Immutable once fetched or generated. `amount` is always the
    absolute value; direction is carried by `is_incoming`.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(
        ...,
        min_length=1,
        description="Transaction identifier"
    )
    amount: float = Field(
        ...,
        ge=0,
        description="Absolute amount"
    )
    category: TransactionCategory = Field(
        default=TransactionCategory.OTHER,
        description="Mapped spending category"
    )
    merchant: str = Field(
        default="",
        description="Merchant name as shown to the user"
    )
    date: datetime = Field(
        ...,
        description="When the transaction happened"
    )
    is_subscription: bool = False
    is_incoming: bool = Field(
        default=False,
        description="True for money in; excluded from spending totals"
    )


class UserProfile(BaseModel):
    """Baseline financial profile. Replaced wholesale, never patched."""

    monthly_budget: float = Field(
        ...,
        ge=0,
        description="Monthly spending budget"
    )
    monthly_savings_goal: float = Field(
        ...,
        ge=0,
        description="Amount the user wants to save per month"
    )
    current_balance: float = Field(
        ...,
        ge=0,
        description="Current account balance"
    )


class AccountInfo(BaseModel):
    """A bank account as reported by the backend."""

    id: str
    type: str = "checking"
    nickname: str = "Primary Account"
    balance: float = 0.0


# =============================================================================
# BUDGETS
# =============================================================================

class BudgetItem(BaseModel):
    """
    A user-defined spending limit.

    CRITICAL: `spent` is always recomputed client-side from transactions.
    Whatever value a payload carries is ignored.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str
    category: str = Field(
        ...,
        min_length=1,
        description="Free-text category label"
    )
    frequency: BudgetFrequency = BudgetFrequency.MONTH
    limit_amount: float = Field(
        ...,
        gt=0,
        description="Limit for one period"
    )
    derived_daily_limit: float = Field(
        default=0.0,
        ge=0,
        description="limit_amount normalized to a per-day rate"
    )
    adaptive_enabled: bool = True
    adaptive_max_adjust_pct: float = Field(
        default=10.0,
        ge=0,
        le=100
    )
    last_auto_adjusted_at: Optional[datetime] = None
    spent: float = Field(
        default=0.0,
        ge=0,
        description="Derived from transactions in the current period"
    )


class BudgetProjection(BaseModel):
    """End-of-month projection for one budget."""

    budget_id: str
    category: str
    current_spent: float
    budget_limit: float
    elapsed_fraction: float
    projected_spent: float
    projected_percent: float
    over_budget: bool


class SavingsGoal(BaseModel):
    """A savings goal the user asked the backend to track."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=100)
    target_amount: float = Field(..., gt=0)
    saved_so_far: float = Field(default=0.0, ge=0)
    deadline: Optional[datetime] = None
    budget_percent: float = Field(default=10.0, ge=1, le=100)
    status: str = "active"


# =============================================================================
# BILLS & TRENDS
# =============================================================================

class UpcomingSubscription(BaseModel):
    """A recurring charge expected within the look-ahead window."""

    merchant: str
    amount: float = Field(default=0.0, ge=0)
    next_date: date
    cadence: str = "monthly"


class UpcomingBills(BaseModel):
    """
    Recurring charges coming up.

    `bill_days` are the days of the month with at least one charge;
    `due_today` is the subset of `subscriptions` expected today.
    """

    subscriptions: list[UpcomingSubscription] = Field(default_factory=list)
    bill_days: list[int] = Field(default_factory=list)
    due_today: list[UpcomingSubscription] = Field(default_factory=list)


class MonthlySpend(BaseModel):
    """Outgoing total for one calendar month (`month` is "YYYY-MM")."""

    month: str
    total: float = Field(default=0.0, ge=0)


# =============================================================================
# GAMIFICATION
# =============================================================================

class Achievement(BaseModel):
    """
    A spending or savings challenge.

    Backend quests are mapped into this shape so the presentation layer
    deals with one type. `source` records the provenance.
    """

    id: str
    title: str
    description: str = ""
    target_amount: Optional[float] = None
    current_amount: Optional[float] = None
    deadline: Optional[datetime] = None
    completed: bool = False
    category: Optional[TransactionCategory] = None
    source: AchievementSource = AchievementSource.LOCAL

    @property
    def is_backend_quest(self) -> bool:
        return self.source == AchievementSource.BACKEND_QUEST


class ScottyState(BaseModel):
    """
    The pet.

    Invariants:
    - happiness is always within 0..100
    - food_credits never goes negative (callers refuse, they do not clamp)
    """

    mood: Mood = Mood.CONTENT
    happiness: int = Field(
        default=70,
        ge=0,
        le=100,
        description="Momentary happiness score"
    )
    last_fed: Optional[datetime] = None
    food_credits: int = Field(
        default=10,
        ge=0,
        description="Currency spent on feeding"
    )


class HealthMetrics(BaseModel):
    """Financial health scores, each 0..100."""

    budget_adherence: int = Field(default=70, ge=0, le=100)
    savings_rate: int = Field(default=50, ge=0, le=100)
    impulse_score: int = Field(
        default=60,
        ge=0,
        le=100,
        description="Higher means fewer impulse purchases"
    )
    overall_score: int = Field(default=65, ge=0, le=100)


class DailyInsight(BaseModel):
    """One-line observation shown in Scotty's speech bubble."""

    id: str = Field(default_factory=lambda: f"insight_{uuid4().hex[:12]}")
    message: str = Field(..., min_length=1)
    type: InsightType = InsightType.NEUTRAL
    date: datetime = Field(default_factory=datetime.now)


# =============================================================================
# CHAT
# =============================================================================

class ChatAction(BaseModel):
    """A follow-up suggestion attached to a chat reply."""

    id: str
    label: str
    icon: str = "chart"
    category: str = "finances"
    prompt: str
    description: Optional[str] = None


class ChatMessage(BaseModel):
    """A single chat bubble."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    role: ChatRole
    content: str
    timestamp: datetime = Field(default_factory=datetime.now)
    actions: list[ChatAction] = Field(default_factory=list)

    @field_validator('content')
    @classmethod
    def content_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Chat message content cannot be blank")
        return v


# =============================================================================
# CONNECTION
# =============================================================================

class ConnectionStatus(BaseModel):
    """
    Backend reachability for the session.

    `backend_connected` flips to True at most once, after a successful
    probe. A failed probe leaves it False for the rest of the session.
    """

    backend_connected: bool = False
    probe_completed: bool = False
    connected_at: Optional[datetime] = None

    @model_validator(mode='after')
    def validate_connection(self) -> 'ConnectionStatus':
        """A connection can only exist once the probe has run."""
        if self.backend_connected and not self.probe_completed:
            raise ValueError("Cannot be connected before the probe completed")
        return self


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )


class ValidationResult(BaseModel):
    """Outcome of validating a user-submitted form."""

    subject: str = Field(
        ...,
        description="What was validated (e.g. 'budget', 'goal')"
    )
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def user_message(self) -> str:
        """First error message, or empty string when valid."""
        for issue in self.issues:
            if issue.severity == "error":
                return issue.message
        return ""
