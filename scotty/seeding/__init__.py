"""Local seeding package."""

from scotty.seeding.sample_data import (
    generate_transaction,
    generate_transaction_history,
    generate_user_profile,
)
from scotty.seeding.seeder import (
    LocalSnapshot,
    LocalStateSeeder,
    build_local_achievements,
    primary_account,
)

__all__ = [
    "LocalSnapshot",
    "LocalStateSeeder",
    "build_local_achievements",
    "generate_transaction",
    "generate_transaction_history",
    "generate_user_profile",
    "primary_account",
]
