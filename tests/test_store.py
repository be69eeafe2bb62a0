"""
Tests for the application state store.
"""

from scotty.models.finance import (
    BudgetItem,
    ChatMessage,
    ChatRole,
    HealthMetrics,
    TransactionCategory,
)
from scotty.store import WELCOME_MESSAGE
from tests.conftest import NOW, make_transaction


class TestStore:

    def test_seeded_with_welcome_message(self, store):
        (message,) = store.chat_messages
        assert message.role == ChatRole.SCOTTY
        assert message.content == WELCOME_MESSAGE

    def test_reads_are_copies(self, store):
        store.transactions.clear()
        store.achievements.clear()
        assert store.transactions
        assert store.achievements

    def test_listeners_notified_and_unsubscribed(self, store):
        seen = []
        unsubscribe = store.subscribe(lambda s: seen.append(s.health_metrics.overall_score))

        store.set_health_metrics(HealthMetrics(overall_score=42))
        unsubscribe()
        store.set_health_metrics(HealthMetrics(overall_score=43))

        assert seen == [42]

    def test_broken_listener_does_not_block_writes(self, store):
        def broken(_):
            raise RuntimeError("boom")

        seen = []
        store.subscribe(broken)
        store.subscribe(lambda s: seen.append(True))

        store.append_chat_message(ChatMessage(role=ChatRole.USER, content="hi"))

        assert store.chat_messages[-1].content == "hi"
        assert seen == [True]

    def test_budget_spent_follows_transactions(self, store):
        store.set_budgets([BudgetItem(id="b1", category="Groceries", limit_amount=100, spent=77)], NOW)
        assert store.budgets[0].spent == 60.0

        store.replace_transactions(
            [make_transaction("n1", 5.0, TransactionCategory.GROCERIES)],
            NOW,
        )
        assert store.budgets[0].spent == 5.0

    def test_connection_set_once(self, store):
        store.mark_backend_connected(NOW)
        store.mark_probe_failed()
        assert store.backend_connected is True
        assert store.connection.connected_at == NOW

    def test_failed_probe_is_permanent(self, store):
        store.mark_probe_failed()
        store.mark_backend_connected(NOW)
        assert store.backend_connected is False

    def test_update_missing_achievement(self, store):
        achievement = store.achievements[0].model_copy(update={"id": "ghost"})
        assert store.update_achievement(achievement) is False

    def test_budget_projections_follow_budgets(self, store):
        store.set_budgets([BudgetItem(id="b1", category="Groceries", limit_amount=100)], NOW)

        (projection,) = store.budget_projections
        assert projection.budget_id == "b1"
        assert projection.current_spent == 60.0
        assert projection.projected_spent == 124.0
        assert projection.over_budget is True

        store.replace_transactions([], NOW)
        assert store.budget_projections[0].over_budget is False

    def test_daily_credits_follow_health(self, store):
        store.set_health_metrics(HealthMetrics(overall_score=85))
        assert store.daily_credits == 5
        store.set_health_metrics(HealthMetrics(overall_score=50))
        assert store.daily_credits == 2

    def test_dismissals_remembered_quietly(self, store):
        seen = []
        store.subscribe(lambda s: seen.append(True))

        store.record_dismissal("local_weekend_saver")

        assert store.dismissed_achievement_ids == frozenset({"local_weekend_saver"})
        assert seen == []
