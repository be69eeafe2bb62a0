"""
Tests for local seeding and achievement reconciliation.
"""

import random

import pytest

from scotty.models.finance import (
    Achievement,
    AchievementSource,
    TransactionCategory,
)
from scotty.reconciler import AchievementReconciler
from scotty.seeding import (
    LocalStateSeeder,
    build_local_achievements,
    generate_transaction_history,
    generate_user_profile,
)
from tests.conftest import NOW, make_transaction


class TestSampleData:

    def test_history_covers_window_and_is_sorted(self):
        transactions = generate_transaction_history(10, 3, random.Random(1), NOW)
        assert transactions
        dates = [t.date for t in transactions]
        assert dates == sorted(dates, reverse=True)
        assert all(0 <= (NOW - t.date).days <= 10 for t in transactions)

    def test_history_is_outgoing_with_positive_amounts(self):
        transactions = generate_transaction_history(5, 2, random.Random(2), NOW)
        assert all(t.amount > 0 for t in transactions)
        assert all(t.id.startswith("local_") for t in transactions)

    def test_profile_is_non_negative(self):
        profile = generate_user_profile(random.Random(3))
        assert profile.monthly_budget >= 0
        assert profile.monthly_savings_goal >= 0
        assert profile.current_balance >= 0


class TestLocalAchievements:

    def test_empty_transactions_still_yield_one(self):
        achievements = build_local_achievements([])
        assert len(achievements) == 1
        assert achievements[0].id == "local_weekend_saver"

    def test_dominant_category_challenge_first(self, local_transactions):
        achievements = build_local_achievements(local_transactions)
        assert len(achievements) == 2
        cut = achievements[0]
        assert cut.id == "local_cut_food_dining"
        assert cut.category == TransactionCategory.FOOD_DINING
        assert cut.target_amount == 96  # 120 * 0.8
        assert all(a.source == AchievementSource.LOCAL for a in achievements)

    def test_ids_are_stable_across_rebuilds(self, local_transactions):
        first = [a.id for a in build_local_achievements(local_transactions)]
        second = [a.id for a in build_local_achievements(list(reversed(local_transactions)))]
        assert first == second


class TestLocalStateSeeder:

    def test_seed_without_network(self, seeder, local_transactions, local_profile):
        snapshot = seeder.seed(local_transactions, local_profile, NOW)

        assert snapshot.transactions == local_transactions
        assert snapshot.profile == local_profile
        assert len(snapshot.achievements) >= 1
        assert snapshot.daily_insight.message
        assert snapshot.total_balance == local_profile.current_balance
        assert snapshot.accounts[0].balance == local_profile.current_balance
        assert snapshot.daily_spend == 30.0

    def test_seed_starts_unfed(self, seeder, local_transactions, local_profile):
        snapshot = seeder.seed(local_transactions, local_profile, NOW)
        assert snapshot.scotty_state.last_fed is None
        assert snapshot.scotty_state.happiness == max(0, snapshot.health_metrics.overall_score - 15)

    def test_seed_generates_data_when_none_given(self):
        snapshot = LocalStateSeeder(rng=random.Random(5)).seed(now=NOW)
        assert snapshot.transactions
        assert snapshot.achievements

    def test_seed_with_zero_profile(self, seeder):
        from scotty.models.finance import UserProfile

        profile = UserProfile(monthly_budget=0, monthly_savings_goal=0, current_balance=0)
        snapshot = seeder.seed([], profile, NOW)
        assert snapshot.health_metrics.budget_adherence == 100
        assert len(snapshot.achievements) == 1


class TestAchievementReconciler:

    @pytest.fixture
    def quest(self) -> Achievement:
        return Achievement(id="quest_9", title="Quest", source=AchievementSource.BACKEND_QUEST)

    def test_without_quest_uses_full_local_set(self, reconciler, local_transactions):
        achievements = reconciler.reconcile(local_transactions, None)
        assert [a.id for a in achievements] == ["local_cut_food_dining", "local_weekend_saver"]

    def test_quest_goes_first(self, reconciler, local_transactions, quest):
        achievements = reconciler.reconcile(local_transactions, quest)
        assert achievements[0] == quest
        assert len(achievements) == 3
        assert sum(1 for a in achievements if a.is_backend_quest) == 1

    def test_local_entries_capped_at_two_with_quest(self, local_transactions, quest):
        achievements = AchievementReconciler(max_local_with_quest=1).reconcile(local_transactions, quest)
        assert [a.id for a in achievements] == ["quest_9", "local_cut_food_dining"]

    def test_dismiss_removes_exactly_one(self, reconciler, local_transactions, quest):
        achievements = reconciler.reconcile(local_transactions, quest)
        remaining = reconciler.dismiss(achievements, "quest_9")
        assert len(remaining) == len(achievements) - 1
        assert "quest_9" not in [a.id for a in remaining]

    def test_dismiss_unknown_is_noop(self, reconciler, local_transactions):
        achievements = reconciler.reconcile(local_transactions)
        assert reconciler.dismiss(achievements, "nope") == achievements

    def test_completions_carry_over_rebuilds(self, reconciler, local_transactions, quest):
        first = reconciler.reconcile(local_transactions, quest)
        done = {"quest_9", "local_weekend_saver"}
        previous = [a.model_copy(update={"completed": a.id in done}) for a in first]

        rebuilt = reconciler.reconcile(local_transactions, quest, previous=previous)

        assert {a.id: a.completed for a in rebuilt} == {
            "quest_9": True,
            "local_cut_food_dining": False,
            "local_weekend_saver": True,
        }

    def test_dismissed_ids_stay_out(self, reconciler, local_transactions, quest):
        rebuilt = reconciler.reconcile(
            local_transactions,
            quest,
            dismissed={"quest_9", "local_cut_food_dining"},
        )
        assert [a.id for a in rebuilt] == ["local_weekend_saver"]

    def test_everything_dismissed_leaves_empty_list(self, reconciler, local_transactions):
        dismissed = {a.id for a in reconciler.reconcile(local_transactions)}
        assert reconciler.reconcile(local_transactions, dismissed=dismissed) == []
