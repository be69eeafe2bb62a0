"""
Form Validation

Budget and goal forms are validated BEFORE anything is sent to the
backend. A form with any error-level issue is refused outright: no
remote call, no local change.

Warnings and info issues never block a save; they are surfaced so the
user can double-check.

IMPORTANT: Validation NEVER silently fixes issues.
"""

from datetime import datetime
from typing import Optional

from scotty.metrics.categories import map_category
from scotty.models.finance import (
    TransactionCategory,
    ValidationIssue,
    ValidationResult,
)
from scotty.services.backend.interface import BudgetDraft


class FormValidator:
    """Validates user-submitted budget and goal forms."""

    def validate_budget(self, draft: BudgetDraft, creating: bool) -> ValidationResult:
        """
        Check a budget draft.

        Args:
            draft: Fields the user filled in
            creating: True for a new budget (category and amount required),
                      False for an edit (only supplied fields are checked)
        """
        issues = []

        if creating and not (draft.category or "").strip():
            issues.append(ValidationIssue(
                field="category",
                issue_type="missing",
                message="Please choose a category for this budget",
                severity="error",
            ))
        elif draft.category and map_category(draft.category) == TransactionCategory.OTHER:
            issues.append(ValidationIssue(
                field="category",
                issue_type="unrecognized",
                message=f"'{draft.category}' will be tracked against uncategorized spending",
                severity="info",
            ))

        if draft.limit_amount is None:
            if creating:
                issues.append(ValidationIssue(
                    field="limit_amount",
                    issue_type="missing",
                    message="Please enter a budget amount",
                    severity="error",
                ))
        elif draft.limit_amount <= 0:
            issues.append(ValidationIssue(
                field="limit_amount",
                issue_type="invalid_value",
                message="Budget amount must be greater than zero",
                severity="error",
            ))

        if draft.adaptive_max_adjust_pct is not None and not 0 <= draft.adaptive_max_adjust_pct <= 100:
            issues.append(ValidationIssue(
                field="adaptive_max_adjust_pct",
                issue_type="out_of_range",
                message="Adaptive adjustment must be between 0% and 100%",
                severity="error",
            ))

        return ValidationResult(subject="budget", issues=issues)

    def validate_goal(
        self,
        name: Optional[str],
        target_amount: Optional[float],
        budget_percent: Optional[float] = 10.0,
        deadline: Optional[datetime] = None,
        saved_so_far: float = 0.0,
        now: Optional[datetime] = None,
    ) -> ValidationResult:
        issues = []

        if not (name or "").strip():
            issues.append(ValidationIssue(
                field="name",
                issue_type="missing",
                message="Please give your goal a name",
                severity="error",
            ))
        elif len(name.strip()) > 100:
            issues.append(ValidationIssue(
                field="name",
                issue_type="too_long",
                message="Goal name must be 100 characters or fewer",
                severity="error",
            ))

        if target_amount is None or target_amount <= 0:
            issues.append(ValidationIssue(
                field="target_amount",
                issue_type="invalid_value",
                message="Target amount must be greater than zero",
                severity="error",
            ))

        if saved_so_far < 0:
            issues.append(ValidationIssue(
                field="saved_so_far",
                issue_type="invalid_value",
                message="Amount already saved cannot be negative",
                severity="error",
            ))

        if budget_percent is None or not 1 <= budget_percent <= 100:
            issues.append(ValidationIssue(
                field="budget_percent",
                issue_type="out_of_range",
                message="Budget percent must be between 1 and 100",
                severity="error",
            ))

        if deadline is not None and deadline < (now or datetime.now()):
            issues.append(ValidationIssue(
                field="deadline",
                issue_type="past_date",
                message="The deadline is already in the past",
                severity="warning",
            ))

        return ValidationResult(subject="goal", issues=issues)
