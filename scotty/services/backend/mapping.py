"""
Backend Payload Mapping

Converts raw JSON from the backend into client models. The backend mixes
snake_case and camelCase and uses its own category vocabulary; none of
that leaks past this module.

Mapping functions raise BackendResponseError on payloads they cannot
make sense of, so a malformed resource fails like any other fetch.
"""

import functools
from datetime import date, datetime
from typing import Any, Optional

from pydantic import ValidationError

from scotty.metrics.categories import map_category
from scotty.metrics.engine import mood_for
from scotty.models.finance import (
    AccountInfo,
    Achievement,
    AchievementSource,
    BudgetFrequency,
    BudgetItem,
    ChatAction,
    DailyInsight,
    HealthMetrics,
    InsightType,
    MonthlySpend,
    Mood,
    SavingsGoal,
    ScottyState,
    Transaction,
    UpcomingBills,
    UpcomingSubscription,
    UserProfile,
)
from scotty.services.backend.interface import (
    AccountsSummary,
    BackendResponseError,
    ChatReply,
    DailyPayload,
)


QUEST_COMPLETED_STATUS = "COMPLETED_VERIFIED"


def _pick(data: dict, *keys: str, default: Any = None) -> Any:
    """First present, non-None value among `keys`."""
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return default


def parse_datetime(value: Any) -> Optional[datetime]:
    """
    Parse an ISO date or datetime into a naive local datetime.

    Returns None for empty values; raises ValueError for garbage.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def _mapped(kind: str):
    """Turn mapping errors into BackendResponseError."""
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except BackendResponseError:
                raise
            except (ValidationError, ValueError, TypeError, KeyError, AttributeError) as e:
                raise BackendResponseError(f"Malformed {kind} payload: {e}") from e
        return wrapper
    return decorator


def _clamp_score(value: Any) -> int:
    return int(max(0, min(100, round(float(value)))))


# =============================================================================
# READS
# =============================================================================

@_mapped("transaction")
def map_transaction(data: dict) -> Transaction:
    """
    Backend transaction -> Transaction.

    The backend signs amounts; positive means money in.
    """
    amount = float(data["amount"])
    category_label = _pick(data, "category_primary", "category")
    return Transaction(
        id=str(data["id"]),
        amount=abs(amount),
        category=map_category(category_label),
        merchant=_pick(data, "merchant_name", "merchant", "name", default=""),
        date=parse_datetime(data["date"]),
        is_subscription="subscription" in (category_label or "").lower(),
        is_incoming=amount > 0,
    )


def map_transactions(items: Any) -> list[Transaction]:
    if not isinstance(items, list):
        raise BackendResponseError("Expected a list of transactions")
    return [map_transaction(item) for item in items]


@_mapped("health metrics")
def map_health_metrics(data: dict) -> HealthMetrics:
    return HealthMetrics(
        budget_adherence=_clamp_score(_pick(data, "budget_adherence", "budgetAdherence")),
        savings_rate=_clamp_score(_pick(data, "savings_rate", "savingsRate")),
        impulse_score=_clamp_score(_pick(data, "impulse_score", "impulseScore")),
        overall_score=_clamp_score(_pick(data, "overall_score", "overallScore")),
    )


@_mapped("scotty state")
def map_scotty_state(data: dict) -> ScottyState:
    happiness = _clamp_score(data["happiness"])
    mood_value = data.get("mood")
    try:
        mood = Mood(mood_value)
    except ValueError:
        mood = mood_for(happiness)
    return ScottyState(
        mood=mood,
        happiness=happiness,
        last_fed=parse_datetime(_pick(data, "last_fed", "lastFed")),
        food_credits=int(_pick(data, "food_credits", "foodCredits", default=0)),
    )


@_mapped("profile")
def map_profile(data: dict) -> UserProfile:
    return UserProfile(
        monthly_budget=float(_pick(data, "monthly_budget", "monthlyBudget")),
        monthly_savings_goal=float(_pick(data, "monthly_savings_goal", "monthlySavingsGoal")),
        current_balance=max(0.0, float(_pick(data, "current_balance", "currentBalance"))),
    )


def _map_frequency(value: Any) -> BudgetFrequency:
    try:
        return BudgetFrequency(value)
    except ValueError:
        return BudgetFrequency.MONTH


@_mapped("budget")
def map_budget(data: dict) -> BudgetItem:
    """Backend budget -> BudgetItem. Any `spent` in the payload is dropped."""
    return BudgetItem(
        id=str(data["id"]),
        category=data["category"],
        frequency=_map_frequency(data.get("frequency")),
        limit_amount=float(data["limit_amount"]),
        derived_daily_limit=float(data.get("derived_daily_limit") or 0.0),
        adaptive_enabled=data.get("adaptive_enabled", True),
        adaptive_max_adjust_pct=float(_pick(data, "adaptive_max_adjust_pct", default=10.0)),
        last_auto_adjusted_at=parse_datetime(data.get("last_auto_adjusted_at")),
        spent=0.0,
    )


def map_budgets(data: Any) -> list[BudgetItem]:
    items = data.get("budgets") if isinstance(data, dict) else data
    if not isinstance(items, list):
        raise BackendResponseError("Expected a list of budgets")
    return [map_budget(item) for item in items]


@_mapped("accounts")
def map_accounts(data: dict) -> AccountsSummary:
    accounts = [
        AccountInfo(
            id=str(item["id"]),
            type=item.get("type") or "checking",
            nickname=item.get("nickname") or "Account",
            balance=float(item.get("balance") or 0.0),
        )
        for item in data.get("accounts", [])
    ]
    total = _pick(data, "totalBalance", "total_balance")
    if total is None:
        total = sum(a.balance for a in accounts)
    return AccountsSummary(accounts=accounts, total_balance=float(total))


@_mapped("insight")
def map_insight(data: dict) -> DailyInsight:
    """HIGH confidence reads as positive, LOW as a warning."""
    confidence = str(data.get("confidence", "")).upper()
    if confidence == "HIGH":
        insight_type = InsightType.POSITIVE
    elif confidence == "LOW":
        insight_type = InsightType.WARNING
    else:
        insight_type = InsightType.NEUTRAL
    insight = DailyInsight(
        message=_pick(data, "blurb", "message", "title"),
        type=insight_type,
    )
    if data.get("id") is not None:
        insight = insight.model_copy(update={"id": str(data["id"])})
    return insight


def build_quest_description(quest: dict) -> str:
    """Use the backend's description when it has one, else describe the metric."""
    description = quest.get("description")
    if description and len(description.strip()) > 10:
        return description

    params = quest.get("metric_params") or {}
    cap = float(_pick(params, "cap", "target_amount", default=0) or 0)
    category = params.get("category") or ""
    merchant = _pick(params, "merchant", "merchant_key", "merchant_name", default="") or "this merchant"
    metric_type = quest.get("metric_type")

    if metric_type == "CATEGORY_SPEND_CAP":
        if cap > 0:
            return (
                f"Keep your {category} spending under ${cap:.2f} today. Try cooking at home, "
                "skipping impulse buys, or finding a free alternative."
            )
        return f"Watch your {category} spending today. Aim to cut back by skipping one unnecessary purchase."
    if metric_type == "MERCHANT_SPEND_CAP":
        if cap > 0:
            return (
                f"Limit your spending at {merchant} to ${cap:.2f}. "
                "Consider smaller orders or bringing your own instead."
            )
        return f"Cut back on spending at {merchant} today. Every dollar saved counts!"
    if metric_type == "NO_MERCHANT_CHARGE":
        return (
            f"Avoid making any purchases at {merchant} today. "
            "Find a free or cheaper alternative to break the habit."
        )
    if metric_type == "TRANSFER_AMOUNT":
        if cap > 0:
            return f"Transfer ${cap:.2f} to your savings. Set it up now so you don't forget!"
        return "Make a savings transfer today. Even a small amount helps build the habit."
    return "Complete this quest to earn rewards and keep your finances on track!"


@_mapped("quest")
def map_backend_quest(quest: dict) -> Achievement:
    """Backend quest -> Achievement, tagged as a backend quest."""
    params = quest.get("metric_params") or {}
    target = _pick(params, "cap", "amount", "target_amount")
    category = params.get("category")
    return Achievement(
        id=str(quest["id"]),
        title=quest["title"],
        description=build_quest_description(quest),
        target_amount=float(target) if target is not None else None,
        current_amount=float(quest.get("confirmed_value") or 0.0),
        deadline=parse_datetime(quest.get("window_end")),
        completed=quest.get("status") == QUEST_COMPLETED_STATUS,
        category=map_category(category) if category else None,
        source=AchievementSource.BACKEND_QUEST,
    )


def map_daily_payload(data: dict) -> DailyPayload:
    if not isinstance(data, dict):
        raise BackendResponseError("Expected a daily payload object")
    quest = _pick(data, "activeQuest", "active_quest")
    return DailyPayload(
        insights=[map_insight(item) for item in data.get("insights") or []],
        active_quest=map_backend_quest(quest) if quest else None,
        optional_actions=list(_pick(data, "optionalActions", "optional_actions", default=[])),
    )


@_mapped("chat reply")
def map_chat_reply(data: dict) -> ChatReply:
    actions = _pick(data, "suggested_actions", "actions", default=[])
    return ChatReply(
        response=data["response"],
        actions=[ChatAction(**action) for action in actions if isinstance(action, dict)],
    )


@_mapped("goal")
def map_goal(data: dict) -> SavingsGoal:
    return SavingsGoal(
        id=str(data["id"]) if data.get("id") is not None else None,
        name=data["name"],
        target_amount=float(data["target_amount"]),
        saved_so_far=float(data.get("saved_so_far") or 0.0),
        deadline=parse_datetime(data.get("deadline")),
        budget_percent=float(data.get("budget_percent") or 10.0),
        status=data.get("status") or "active",
    )


# =============================================================================
# QUEST LISTS, BILLS & TRENDS
# =============================================================================

def map_backend_quests(data: Any) -> list[Achievement]:
    """Accepts `{"quests": [...]}` or a bare list."""
    if isinstance(data, dict):
        data = data.get("quests")
    if not isinstance(data, list):
        raise BackendResponseError("Expected a list of quests")
    return [map_backend_quest(item) for item in data]


@_mapped("subscription")
def map_upcoming_subscription(data: dict) -> UpcomingSubscription:
    return UpcomingSubscription(
        merchant=_pick(data, "merchant_key", "merchant"),
        amount=abs(float(_pick(data, "typical_amount", "amount", default=0.0))),
        next_date=parse_datetime(_pick(data, "next_expected_date", "nextDate")).date(),
        cadence=data.get("cadence") or "monthly",
    )


@_mapped("upcoming bills")
def map_upcoming_bills(data: Any, today: Optional[date] = None) -> UpcomingBills:
    """
    Upcoming recurring charges.

    The backend answers with a bare list of subscriptions; a summary
    object with `bill_days` and `due_today` is accepted as well. Missing
    summary fields are derived from the subscriptions.
    """
    if isinstance(data, list):
        data = {"subscriptions": data}
    subscriptions = [map_upcoming_subscription(item) for item in data.get("subscriptions") or []]

    today = today or date.today()
    if data.get("due_today") is not None:
        due_today = [map_upcoming_subscription(item) for item in data["due_today"]]
    else:
        due_today = [s for s in subscriptions if s.next_date == today]

    bill_days = data.get("bill_days")
    if bill_days is None:
        bill_days = sorted({s.next_date.day for s in subscriptions})

    return UpcomingBills(
        subscriptions=subscriptions,
        bill_days=[int(day) for day in bill_days],
        due_today=due_today,
    )


@_mapped("spending trend")
def map_spending_trend(data: Any) -> list[MonthlySpend]:
    """Accepts `{"trend": [{"month", "total"}, ...]}` or a bare list."""
    if isinstance(data, dict):
        data = data["trend"]
    return [
        MonthlySpend(month=str(item["month"]), total=round(abs(float(item["total"])), 2))
        for item in data
    ]
