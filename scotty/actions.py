"""
Action Dispatcher

The mutating surface the presentation layer calls.

Each action follows the same shape:
1. Validate (refuse with a message, never raise)
2. Remote call when the backend is connected
3. Local fallback when it is not, or when the remote call fails

Achievement completion and dismissal are local only: they are session
gamification and have no remote counterpart.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Callable, Optional, Union

from pydantic import BaseModel, ValidationError

from scotty.agents.responder import LocalChatResponder
from scotty.audit import AuditLogger, get_audit_logger
from scotty.config import AppSettings, get_settings
from scotty.metrics.engine import mood_for
from scotty.models.audit import AuditEventBuilder
from scotty.models.finance import (
    BudgetFrequency,
    BudgetItem,
    ChatMessage,
    ChatRole,
    DailyInsight,
    FoodType,
    SavingsGoal,
    ScottyState,
)
from scotty.reconciler import AchievementReconciler
from scotty.services.backend import BackendInterface, BudgetDraft, NotFoundError
from scotty.store import AppStore
from scotty.validation import FormValidator

if TYPE_CHECKING:
    from scotty.orchestrator import BackendUpgradeCoordinator


# food type -> (cost in credits, happiness boost)
FEED_TABLE: dict[FoodType, tuple[int, int]] = {
    FoodType.TREAT: (2, 5),
    FoodType.MEAL: (5, 15),
}

CHAT_APOLOGY = "Woof! I had trouble understanding that. Can you try again?"


class ActionResult(BaseModel):
    """What the UI needs to know about an action: did it work, and why not."""

    ok: bool
    message: str = ""


class FeedOutcome(ActionResult):
    remote: bool = False
    state: ScottyState


class ChatOutcome(ActionResult):
    reply: Optional[ChatMessage] = None
    responder: str = ""


class ActionDispatcher:
    """
    Executes user actions against the store.

    Never raises: every failure path ends in an ActionResult.
    """

    def __init__(
        self,
        store: AppStore,
        backend: Optional[BackendInterface],
        coordinator: "BackendUpgradeCoordinator",
        chat_responder: Optional[LocalChatResponder] = None,
        reconciler: Optional[AchievementReconciler] = None,
        validator: Optional[FormValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[AppSettings] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._store = store
        self._backend = backend
        self._coordinator = coordinator
        self._responder = chat_responder or LocalChatResponder()
        self._reconciler = reconciler or AchievementReconciler()
        self._validator = validator or FormValidator()
        self._audit = audit_logger or get_audit_logger()
        self._settings = settings or get_settings().app
        self._clock = clock

    @property
    def _remote(self) -> bool:
        return self._backend is not None and self._store.backend_connected

    # =========================================================================
    # PET
    # =========================================================================

    async def feed(self, food_type: Union[FoodType, str]) -> FeedOutcome:
        """
        Feed Scotty.

        Remote result replaces the pet state wholesale. Locally, the feed
        is refused when credits don't cover the cost.
        """
        try:
            food_type = FoodType(food_type)
        except ValueError:
            return FeedOutcome(
                ok=False,
                state=self._store.scotty_state,
                message=f"Scotty doesn't eat '{food_type}'.",
            )
        cost, boost = FEED_TABLE[food_type]

        if self._remote:
            try:
                state = await self._backend.feed(food_type)
            except Exception as e:
                self._audit.log(AuditEventBuilder.remote_call_failed("feed", str(e)))
            else:
                self._store.set_scotty_state(state)
                self._audit.log(AuditEventBuilder.feed_applied(
                    food_type.value, True, state.happiness, state.food_credits,
                ))
                return FeedOutcome(ok=True, remote=True, state=state)

        current = self._store.scotty_state
        if current.food_credits < cost:
            self._audit.log(AuditEventBuilder.feed_refused(food_type.value, cost, current.food_credits))
            return FeedOutcome(
                ok=False,
                state=current,
                message=f"Not enough food credits: a {food_type.value} costs {cost}.",
            )

        # Mood follows the boosted happiness; no recency penalty on feeding
        happiness = min(100, current.happiness + boost)
        state = ScottyState(
            mood=mood_for(happiness),
            happiness=happiness,
            last_fed=self._clock(),
            food_credits=current.food_credits - cost,
        )
        self._store.set_scotty_state(state)
        self._audit.log(AuditEventBuilder.feed_applied(
            food_type.value, False, state.happiness, state.food_credits,
        ))
        return FeedOutcome(ok=True, state=state)

    # =========================================================================
    # ACHIEVEMENTS
    # =========================================================================

    def complete_achievement(self, achievement_id: str) -> ActionResult:
        """Mark one achievement done and reward the pet."""
        target = next((a for a in self._store.achievements if a.id == achievement_id), None)
        if target is None:
            return ActionResult(ok=False, message="That achievement no longer exists.")

        self._store.update_achievement(target.model_copy(update={"completed": True}))

        current = self._store.scotty_state
        self._store.set_scotty_state(ScottyState(
            mood=current.mood,
            happiness=min(100, current.happiness + self._settings.achievement_reward_happiness),
            last_fed=current.last_fed,
            food_credits=current.food_credits + self._settings.achievement_reward_credits,
        ))
        self._audit.log(AuditEventBuilder.achievement_completed(achievement_id, target.source.value))
        return ActionResult(
            ok=True,
            message=f"+{self._settings.achievement_reward_credits} food credits!",
        )

    def dismiss_achievement(self, achievement_id: str) -> ActionResult:
        achievements = self._store.achievements
        target = next((a for a in achievements if a.id == achievement_id), None)
        if target is None:
            return ActionResult(ok=False, message="That achievement no longer exists.")

        self._store.record_dismissal(achievement_id)
        self._store.set_achievements(self._reconciler.dismiss(achievements, achievement_id))
        self._audit.log(AuditEventBuilder.achievement_dismissed(achievement_id, target.source.value))
        return ActionResult(ok=True)

    # =========================================================================
    # CHAT & INSIGHTS
    # =========================================================================

    async def send_chat_message(self, text: str) -> ChatOutcome:
        """
        Append the user's message, then exactly one reply.

        Reply source, first that works: backend, local responder, apology.
        A blank message is a validation refusal, not a turn: nothing is
        appended and no reply is produced.
        """
        if not isinstance(text, str) or not text.strip():
            return ChatOutcome(ok=False, message="Type a message for Scotty first.")

        self._store.append_chat_message(ChatMessage(role=ChatRole.USER, content=text))

        reply: Optional[ChatMessage] = None
        responder = ""
        if self._remote:
            try:
                response = await self._backend.send_chat(text)
                reply = ChatMessage(
                    role=ChatRole.SCOTTY,
                    content=response.response,
                    actions=response.actions,
                )
                responder = "backend"
            except Exception as e:
                self._audit.log(AuditEventBuilder.remote_call_failed("chat", str(e)))

        if reply is None:
            try:
                content = self._responder.respond(text, self._store.transactions, self._clock())
                reply = ChatMessage(role=ChatRole.SCOTTY, content=content)
                responder = "local"
            except Exception as e:
                self._audit.log(AuditEventBuilder.chat_responder_failed(str(e)))
                reply = ChatMessage(role=ChatRole.SCOTTY, content=CHAT_APOLOGY)
                responder = "apology"

        self._store.append_chat_message(reply)
        self._audit.log(AuditEventBuilder.chat_message_sent(responder))
        return ChatOutcome(ok=True, reply=reply, responder=responder)

    async def refresh_insight(self) -> DailyInsight:
        return await self._coordinator.refresh_insight()

    async def refresh_daily_quests(self) -> ActionResult:
        """Ask the backend for a fresh set of daily quests. Remote only."""
        if not self._remote:
            return ActionResult(ok=False, message="Daily quests need Scotty to be online.")
        try:
            quests = await self._backend.refresh_daily_quests()
        except Exception as e:
            self._audit.log(AuditEventBuilder.remote_call_failed("refresh_daily_quests", str(e)))
            return ActionResult(ok=False, message="Couldn't get new quests. Please try again.")

        self._store.set_daily_quests(quests)
        return ActionResult(ok=True, message=f"{len(quests)} new quests!")

    # =========================================================================
    # BUDGETS & GOALS
    # =========================================================================

    async def create_budget(
        self,
        category: str,
        limit_amount: float,
        frequency: BudgetFrequency = BudgetFrequency.MONTH,
        adaptive_enabled: bool = True,
        adaptive_max_adjust_pct: float = 10.0,
    ) -> ActionResult:
        try:
            draft = BudgetDraft(
                category=category,
                limit_amount=limit_amount,
                frequency=frequency,
                adaptive_enabled=adaptive_enabled,
                adaptive_max_adjust_pct=adaptive_max_adjust_pct,
            )
        except ValidationError as e:
            return self._malformed("budget", e)
        return await self._save_budget(None, draft)

    async def update_budget(
        self,
        budget_id: str,
        category: Optional[str] = None,
        limit_amount: Optional[float] = None,
        frequency: Optional[BudgetFrequency] = None,
        adaptive_enabled: Optional[bool] = None,
        adaptive_max_adjust_pct: Optional[float] = None,
    ) -> ActionResult:
        """Only the fields passed are changed."""
        try:
            draft = BudgetDraft(
                category=category,
                limit_amount=limit_amount,
                frequency=frequency,
                adaptive_enabled=adaptive_enabled,
                adaptive_max_adjust_pct=adaptive_max_adjust_pct,
            )
        except ValidationError as e:
            return self._malformed("budget", e)
        return await self._save_budget(budget_id, draft)

    async def _save_budget(self, budget_id: Optional[str], draft: BudgetDraft) -> ActionResult:
        creating = budget_id is None

        validation = self._validator.validate_budget(draft, creating=creating)
        if not validation.is_valid:
            self._audit.log(AuditEventBuilder.validation_failed(
                "budget", [issue.model_dump() for issue in validation.issues],
            ))
            return ActionResult(ok=False, message=validation.user_message)

        if not self._remote:
            return ActionResult(ok=False, message="Budgets can only be saved while Scotty is online.")

        try:
            if creating:
                saved = await self._backend.create_budget(draft)
            else:
                saved = await self._backend.update_budget(budget_id, draft)
        except NotFoundError:
            return ActionResult(ok=False, message="That budget no longer exists.")
        except Exception as e:
            self._audit.log(AuditEventBuilder.remote_call_failed(
                "create_budget" if creating else "update_budget", str(e),
            ))
            return ActionResult(ok=False, message="Couldn't save your budget. Please try again.")

        self._audit.log(AuditEventBuilder.budget_saved(saved.id, saved.category, creating))

        if not await self._coordinator.refresh_budgets():
            self._upsert_budget(saved)
        return ActionResult(ok=True, message="Budget saved!")

    def _malformed(self, subject: str, error: ValidationError) -> ActionResult:
        """Input that doesn't even fit the model, e.g. an unknown frequency or a non-numeric amount."""
        issues = [
            {"field": ".".join(str(part) for part in item["loc"]), "message": item["msg"]}
            for item in error.errors()
        ]
        self._audit.log(AuditEventBuilder.validation_failed(subject, issues))
        fields = ", ".join(issue["field"] or subject for issue in issues)
        return ActionResult(ok=False, message=f"Please check your {subject}: {fields}.")

    def _upsert_budget(self, saved: BudgetItem) -> None:
        """Merge a saved budget in when a full refresh wasn't possible."""
        budgets = [b for b in self._store.budgets if b.id != saved.id]
        budgets.append(saved)
        self._store.set_budgets(budgets, self._clock())

    async def create_goal(
        self,
        name: str,
        target_amount: float,
        deadline: Optional[datetime] = None,
        saved_so_far: float = 0.0,
        budget_percent: float = 10.0,
    ) -> ActionResult:
        if name is not None and not isinstance(name, str):
            return ActionResult(ok=False, message="Please give your goal a name.")
        if deadline is not None and not isinstance(deadline, datetime):
            return ActionResult(ok=False, message="Please pick a valid deadline.")
        try:
            target_amount = None if target_amount is None else float(target_amount)
            budget_percent = None if budget_percent is None else float(budget_percent)
            saved_so_far = float(saved_so_far or 0.0)
        except (TypeError, ValueError):
            return ActionResult(ok=False, message="Amounts must be numbers.")

        validation = self._validator.validate_goal(
            name,
            target_amount,
            budget_percent=budget_percent,
            deadline=deadline,
            saved_so_far=saved_so_far,
            now=self._clock(),
        )
        if not validation.is_valid:
            self._audit.log(AuditEventBuilder.validation_failed(
                "goal", [issue.model_dump() for issue in validation.issues],
            ))
            return ActionResult(ok=False, message=validation.user_message)

        if not self._remote:
            return ActionResult(ok=False, message="Goals can only be saved while Scotty is online.")

        try:
            goal = SavingsGoal(
                name=name,
                target_amount=target_amount,
                saved_so_far=saved_so_far,
                deadline=deadline,
                budget_percent=budget_percent,
            )
        except ValidationError as e:
            return self._malformed("goal", e)

        try:
            saved = await self._backend.create_goal(goal)
        except Exception as e:
            self._audit.log(AuditEventBuilder.remote_call_failed("create_goal", str(e)))
            return ActionResult(ok=False, message="Couldn't save your goal. Please try again.")

        self._audit.log(AuditEventBuilder.goal_saved(saved.name))
        return ActionResult(ok=True, message=f"Goal '{saved.name}' created!")
