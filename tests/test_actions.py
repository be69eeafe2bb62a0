"""
Tests for the action dispatcher.

Connected scenarios run the coordinator's probe against the fake
backend first; disconnected ones make the probe fail.
"""

import pytest
import pytest_asyncio

from scotty.actions import CHAT_APOLOGY, FEED_TABLE, ActionDispatcher
from scotty.models.audit import AuditEventType
from scotty.models.finance import (
    Achievement,
    AchievementSource,
    BudgetFrequency,
    ChatRole,
    FoodType,
    Mood,
    ScottyState,
)
from scotty.orchestrator import BackendUpgradeCoordinator
from tests.conftest import NOW


MUTATIONS = {"feed", "chat", "create_budget", "update_budget", "create_goal", "refresh_quests"}


class ExplodingResponder:
    def respond(self, message, transactions, now=None):
        raise RuntimeError("responder broke")


@pytest.fixture
def coordinator(store, backend, seeder, reconciler, audit_logger, backend_settings):
    return BackendUpgradeCoordinator(
        store=store,
        backend=backend,
        seeder=seeder,
        reconciler=reconciler,
        audit_logger=audit_logger,
        settings=backend_settings,
        clock=lambda: NOW,
    )


@pytest.fixture
def dispatcher(store, backend, coordinator, reconciler, audit_logger, app_settings):
    return ActionDispatcher(
        store=store,
        backend=backend,
        coordinator=coordinator,
        reconciler=reconciler,
        audit_logger=audit_logger,
        settings=app_settings,
        clock=lambda: NOW,
    )


@pytest_asyncio.fixture
async def connected(coordinator, backend):
    await coordinator.start()
    return backend


@pytest_asyncio.fixture
async def disconnected(coordinator, backend):
    backend.healthy = False
    await coordinator.start()
    return backend


def set_pet(store, happiness=70, food_credits=10):
    store.set_scotty_state(ScottyState(
        mood=Mood.CONTENT, happiness=happiness, last_fed=None, food_credits=food_credits,
    ))


class TestFeed:

    def test_feed_table(self):
        assert FEED_TABLE[FoodType.TREAT] == (2, 5)
        assert FEED_TABLE[FoodType.MEAL] == (5, 15)

    @pytest.mark.asyncio
    async def test_local_treat(self, dispatcher, store, disconnected):
        set_pet(store, happiness=70, food_credits=10)

        outcome = await dispatcher.feed(FoodType.TREAT)

        assert outcome.ok is True
        assert outcome.remote is False
        assert store.scotty_state.food_credits == 8
        assert store.scotty_state.happiness == 75
        assert store.scotty_state.mood == Mood.CONTENT
        assert store.scotty_state.last_fed == NOW

    @pytest.mark.asyncio
    async def test_local_meal_refused_without_credits(self, dispatcher, store, disconnected, audit_logger):
        set_pet(store, happiness=70, food_credits=4)
        before = store.scotty_state

        outcome = await dispatcher.feed("meal")

        assert outcome.ok is False
        assert store.scotty_state == before
        assert audit_logger.events_of_type(AuditEventType.FEED_REFUSED)

    @pytest.mark.asyncio
    async def test_local_feed_clamps_and_rederives_mood(self, dispatcher, store, disconnected):
        set_pet(store, happiness=92, food_credits=5)

        await dispatcher.feed(FoodType.MEAL)

        assert store.scotty_state.happiness == 100
        assert store.scotty_state.mood == Mood.HAPPY
        assert store.scotty_state.food_credits == 0

    @pytest.mark.asyncio
    async def test_remote_feed_replaces_state(self, dispatcher, store, connected):
        outcome = await dispatcher.feed(FoodType.TREAT)

        assert outcome.remote is True
        assert store.scotty_state == connected.fed_state

    @pytest.mark.asyncio
    async def test_remote_failure_falls_back_locally(self, dispatcher, store, connected):
        connected.fail("feed")
        set_pet(store, happiness=70, food_credits=10)

        outcome = await dispatcher.feed(FoodType.TREAT)

        assert outcome.ok is True
        assert outcome.remote is False
        assert store.scotty_state.food_credits == 8

    @pytest.mark.asyncio
    async def test_unknown_food_refused(self, dispatcher, store, disconnected):
        before = store.scotty_state
        outcome = await dispatcher.feed("steak")
        assert outcome.ok is False
        assert store.scotty_state == before


class TestAchievements:

    def test_complete_touches_only_target(self, dispatcher, store):
        set_pet(store, happiness=95, food_credits=3)
        before = store.achievements
        target = before[0].id

        result = dispatcher.complete_achievement(target)

        assert result.ok is True
        after = store.achievements
        assert after[0].completed is True
        assert after[1:] == before[1:]
        assert store.scotty_state.food_credits == 13
        assert store.scotty_state.happiness == 100

    def test_complete_unknown_changes_nothing(self, dispatcher, store):
        achievements = store.achievements
        pet = store.scotty_state

        result = dispatcher.complete_achievement("missing")

        assert result.ok is False
        assert store.achievements == achievements
        assert store.scotty_state == pet

    @pytest.mark.asyncio
    async def test_dismiss_backend_quest_is_local(self, dispatcher, store, connected):
        before = store.achievements
        assert before[0].source == AchievementSource.BACKEND_QUEST
        calls = list(connected.calls)

        result = dispatcher.dismiss_achievement(before[0].id)

        assert result.ok is True
        assert len(store.achievements) == len(before) - 1
        assert before[0].id not in [a.id for a in store.achievements]
        assert connected.calls == calls

    def test_dismiss_unknown(self, dispatcher, store):
        count = len(store.achievements)
        assert dispatcher.dismiss_achievement("missing").ok is False
        assert len(store.achievements) == count

    @pytest.mark.asyncio
    async def test_completion_survives_upgrade(self, dispatcher, store, coordinator):
        dispatcher.complete_achievement("local_weekend_saver")

        await coordinator.start()

        saver = next(a for a in store.achievements if a.id == "local_weekend_saver")
        assert saver.completed is True
        assert store.achievements[0].id == "quest_1"

    @pytest.mark.asyncio
    async def test_dismissal_survives_upgrade(self, dispatcher, store, coordinator):
        dispatcher.dismiss_achievement("local_weekend_saver")

        await coordinator.start()

        assert "local_weekend_saver" not in [a.id for a in store.achievements]
        assert "local_weekend_saver" in store.dismissed_achievement_ids

    @pytest.mark.asyncio
    async def test_dismissed_quest_stays_out_after_refresh(self, dispatcher, store, connected, coordinator):
        dispatcher.dismiss_achievement("quest_1")

        await coordinator.start()

        assert all(not a.is_backend_quest for a in store.achievements)


class TestChat:

    @pytest.mark.asyncio
    async def test_local_reply_when_disconnected(self, dispatcher, store, disconnected):
        outcome = await dispatcher.send_chat_message("How am I doing?")

        messages = store.chat_messages
        assert messages[-2].role == ChatRole.USER
        assert messages[-2].content == "How am I doing?"
        assert messages[-1].role == ChatRole.SCOTTY
        assert outcome.responder == "local"
        assert "chat" not in disconnected.calls

    @pytest.mark.asyncio
    async def test_remote_reply(self, dispatcher, store, connected):
        outcome = await dispatcher.send_chat_message("hello")
        assert outcome.responder == "backend"
        assert store.chat_messages[-1].content == "Remote Scotty here!"

    @pytest.mark.asyncio
    async def test_remote_failure_uses_local(self, dispatcher, store, connected):
        connected.fail("chat")
        count = len(store.chat_messages)

        outcome = await dispatcher.send_chat_message("tell me about food")

        assert outcome.responder == "local"
        assert len(store.chat_messages) == count + 2
        assert "on food" in store.chat_messages[-1].content

    @pytest.mark.asyncio
    async def test_broken_responder_apologizes_once(
        self, store, backend, coordinator, audit_logger, app_settings, disconnected,
    ):
        dispatcher = ActionDispatcher(
            store=store,
            backend=backend,
            coordinator=coordinator,
            chat_responder=ExplodingResponder(),
            audit_logger=audit_logger,
            settings=app_settings,
        )
        count = len(store.chat_messages)

        outcome = await dispatcher.send_chat_message("anything")

        assert outcome.responder == "apology"
        assert len(store.chat_messages) == count + 2
        assert store.chat_messages[-1].content == CHAT_APOLOGY

    @pytest.mark.asyncio
    async def test_blank_message_refused(self, dispatcher, store):
        count = len(store.chat_messages)
        outcome = await dispatcher.send_chat_message("   ")
        assert outcome.ok is False
        assert len(store.chat_messages) == count

    @pytest.mark.asyncio
    async def test_messages_keep_call_order(self, dispatcher, store, disconnected):
        await dispatcher.send_chat_message("first")
        await dispatcher.send_chat_message("second")
        users = [m.content for m in store.chat_messages if m.role == ChatRole.USER]
        assert users == ["first", "second"]


class TestDisconnectedSession:

    @pytest.mark.asyncio
    async def test_no_mutation_reaches_backend(self, dispatcher, store, disconnected):
        await dispatcher.feed(FoodType.TREAT)
        await dispatcher.send_chat_message("save money?")
        await dispatcher.create_budget("Groceries", 200)
        await dispatcher.create_goal("Trip", 1000)
        await dispatcher.refresh_daily_quests()

        assert store.backend_connected is False
        assert not MUTATIONS & set(disconnected.calls)


class TestBudgetsAndGoals:

    @pytest.mark.asyncio
    async def test_invalid_amount_refused_without_call(self, dispatcher, connected, audit_logger):
        result = await dispatcher.create_budget("Groceries", 0)

        assert result.ok is False
        assert "greater than zero" in result.message
        assert "create_budget" not in connected.calls
        assert audit_logger.events_of_type(AuditEventType.VALIDATION_FAILED)

    @pytest.mark.asyncio
    async def test_create_budget_refreshes_budgets(self, dispatcher, store, connected):
        result = await dispatcher.create_budget("Food & Drink", 310, BudgetFrequency.MONTH)

        assert result.ok is True
        assert {b.id for b in store.budgets} == {"b1", "b_new"}
        new = next(b for b in store.budgets if b.id == "b_new")
        assert new.spent == 25.0
        assert new.derived_daily_limit == 10.0

    @pytest.mark.asyncio
    async def test_update_budget(self, dispatcher, store, connected):
        result = await dispatcher.update_budget("b1", limit_amount=450)

        assert result.ok is True
        assert store.budgets[0].limit_amount == 450

    @pytest.mark.asyncio
    async def test_update_budget_rejects_negative(self, dispatcher, connected):
        result = await dispatcher.update_budget("b1", limit_amount=-5)
        assert result.ok is False
        assert "update_budget" not in connected.calls

    @pytest.mark.asyncio
    async def test_budget_remote_failure(self, dispatcher, store, connected):
        connected.fail("create_budget")
        result = await dispatcher.create_budget("Groceries", 100)
        assert result.ok is False

    @pytest.mark.asyncio
    async def test_create_goal(self, dispatcher, connected, audit_logger):
        result = await dispatcher.create_goal("Emergency fund", 1000, budget_percent=15)

        assert result.ok is True
        assert "create_goal" in connected.calls
        assert audit_logger.events_of_type(AuditEventType.GOAL_SAVED)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name,target,percent", [
        ("", 1000, 10),
        ("Trip", 0, 10),
        ("Trip", 1000, 0),
        ("Trip", 1000, 101),
    ])
    async def test_invalid_goal_refused(self, dispatcher, connected, name, target, percent):
        result = await dispatcher.create_goal(name, target, budget_percent=percent)
        assert result.ok is False
        assert "create_goal" not in connected.calls

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount,frequency", [
        (100, "Weekly"),
        ("lots", BudgetFrequency.MONTH),
    ])
    async def test_malformed_budget_refused(self, dispatcher, connected, audit_logger, amount, frequency):
        result = await dispatcher.create_budget("Groceries", amount, frequency=frequency)

        assert result.ok is False
        assert result.message.startswith("Please check your budget")
        assert "create_budget" not in connected.calls
        assert audit_logger.events_of_type(AuditEventType.VALIDATION_FAILED)

    @pytest.mark.asyncio
    async def test_malformed_budget_update_refused(self, dispatcher, connected):
        result = await dispatcher.update_budget("b1", frequency="Fortnight")
        assert result.ok is False
        assert "update_budget" not in connected.calls

    @pytest.mark.asyncio
    async def test_non_numeric_goal_refused(self, dispatcher, connected):
        result = await dispatcher.create_goal("Trip", "abc")
        assert result.ok is False
        assert result.message == "Amounts must be numbers."
        assert "create_goal" not in connected.calls


class TestDailyQuests:

    @pytest.mark.asyncio
    async def test_refresh_replaces_quests(self, dispatcher, store, connected):
        assert [q.id for q in store.daily_quests] == ["quest_2"]

        result = await dispatcher.refresh_daily_quests()

        assert result.ok is True
        assert [q.id for q in store.daily_quests] == ["quest_3"]
        assert "refresh_quests" in connected.calls

    @pytest.mark.asyncio
    async def test_refresh_needs_connection(self, dispatcher, store, disconnected):
        result = await dispatcher.refresh_daily_quests()

        assert result.ok is False
        assert store.daily_quests == []

    @pytest.mark.asyncio
    async def test_refresh_failure_keeps_quests(self, dispatcher, store, connected, audit_logger):
        connected.fail("refresh_quests")

        result = await dispatcher.refresh_daily_quests()

        assert result.ok is False
        assert [q.id for q in store.daily_quests] == ["quest_2"]
        assert audit_logger.events_of_type(AuditEventType.REMOTE_CALL_FAILED)


class TestInsight:

    @pytest.mark.asyncio
    async def test_refresh_insight_delegates(self, dispatcher, store, disconnected):
        insight = await dispatcher.refresh_insight()
        assert store.daily_insight == insight
