"""
Achievement Reconciler

Merges the backend's active quest with locally generated achievements.

PRECEDENCE:
- Quest present: the quest first, then the first two local achievements
- No quest: the full local set

Rebuilds keep what the user already did this session: an id that was
completed stays completed, and a dismissed id stays out. Dismissal is
local only, including for backend quests.
"""

from typing import AbstractSet, Optional, Sequence

from scotty.models.finance import Achievement, Transaction
from scotty.seeding.seeder import build_local_achievements


MAX_LOCAL_WITH_QUEST = 2


class AchievementReconciler:

    def __init__(self, max_local_with_quest: int = MAX_LOCAL_WITH_QUEST):
        self._max_local_with_quest = max_local_with_quest

    def reconcile(
        self,
        transactions: Sequence[Transaction],
        quest: Optional[Achievement] = None,
        previous: Sequence[Achievement] = (),
        dismissed: AbstractSet[str] = frozenset(),
    ) -> list[Achievement]:
        """
        Build the achievement list against the freshest transactions.

        Args:
            transactions: Current transaction set
            quest: The backend's active quest, already mapped
            previous: The list being replaced; completions carry over by id
            dismissed: Ids the user dismissed earlier in the session

        Returns:
            At most one backend quest, always first. Empty only when the
            user dismissed everything.
        """
        local = [a for a in build_local_achievements(transactions) if a.id not in dismissed]
        if quest is not None and quest.id in dismissed:
            quest = None

        if quest is None:
            rebuilt = local
        else:
            rebuilt = [quest] + local[:self._max_local_with_quest]

        completed = {a.id for a in previous if a.completed}
        return [
            a.model_copy(update={"completed": True}) if a.id in completed and not a.completed else a
            for a in rebuilt
        ]

    @staticmethod
    def dismiss(achievements: Sequence[Achievement], achievement_id: str) -> list[Achievement]:
        """Drop the entry with `achievement_id`; unchanged copy if absent."""
        remaining = list(achievements)
        for index, achievement in enumerate(remaining):
            if achievement.id == achievement_id:
                del remaining[index]
                break
        return remaining
