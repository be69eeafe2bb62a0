"""
Category Mapping

Backend category strings follow a loose, Plaid-like vocabulary
("Food & Drink", "Merchandise", ...). The client works with the closed
TransactionCategory enum. `map_category` is the only bridge between them
and it is total: every input maps to exactly one category.

Strategy:
1. Internal enum value ("food_dining") maps to itself
2. Exact match against the known backend labels
3. Case-insensitive substring match against the same labels, either way
   round: a label inside the input ("General Merchandise"), or the input
   inside a label ("Food" -> "Food & Drink")
4. Otherwise OTHER
"""

from typing import Optional

from scotty.models.finance import TransactionCategory


BACKEND_CATEGORY_LABELS: dict[str, TransactionCategory] = {
    "Food & Drink": TransactionCategory.FOOD_DINING,
    "Food and Drink": TransactionCategory.FOOD_DINING,
    "Restaurants": TransactionCategory.FOOD_DINING,
    "Dining": TransactionCategory.FOOD_DINING,
    "Groceries": TransactionCategory.GROCERIES,
    "Transportation": TransactionCategory.TRANSPORT,
    "Travel": TransactionCategory.TRANSPORT,
    "Entertainment": TransactionCategory.ENTERTAINMENT,
    "Recreation": TransactionCategory.ENTERTAINMENT,
    "Shopping": TransactionCategory.SHOPPING,
    "Merchandise": TransactionCategory.SHOPPING,
    "Subscription": TransactionCategory.SUBSCRIPTIONS,
    "Service": TransactionCategory.SUBSCRIPTIONS,
    "Utilities": TransactionCategory.UTILITIES,
    "Education": TransactionCategory.EDUCATION,
    "Health": TransactionCategory.HEALTH,
    "Healthcare": TransactionCategory.HEALTH,
    "Medical": TransactionCategory.HEALTH,
    "Transfer": TransactionCategory.OTHER,
    "Payment": TransactionCategory.OTHER,
    "Other": TransactionCategory.OTHER,
}

_ENUM_VALUES = {c.value: c for c in TransactionCategory}

# Shorter inputs would match inside almost any label
MIN_PARTIAL_LABEL_LENGTH = 3


def map_category(label: Optional[str]) -> TransactionCategory:
    """
    Map an external category label to the internal enum.

    Never raises; unknown, empty or None labels map to OTHER.
    """
    if not label:
        return TransactionCategory.OTHER

    text = label.strip()
    if text in _ENUM_VALUES:
        return _ENUM_VALUES[text]

    # Exact match first
    if text in BACKEND_CATEGORY_LABELS:
        return BACKEND_CATEGORY_LABELS[text]

    # Then partial match, in table order
    lower = text.lower()
    for key, category in BACKEND_CATEGORY_LABELS.items():
        if key.lower() in lower:
            return category

    if len(lower) >= MIN_PARTIAL_LABEL_LENGTH:
        for key, category in BACKEND_CATEGORY_LABELS.items():
            if lower in key.lower():
                return category

    return TransactionCategory.OTHER
