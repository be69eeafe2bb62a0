"""
Data Models Package

This package contains all Pydantic models used by the Scotty client core.
All data flowing through the system must conform to these schemas.
"""

from scotty.models.finance import (
    AccountInfo,
    Achievement,
    AchievementSource,
    BudgetFrequency,
    BudgetItem,
    BudgetProjection,
    ChatAction,
    ChatMessage,
    ChatRole,
    ConnectionStatus,
    DailyInsight,
    FoodType,
    HealthMetrics,
    InsightType,
    MonthlySpend,
    Mood,
    SavingsGoal,
    ScottyState,
    Transaction,
    TransactionCategory,
    UpcomingBills,
    UpcomingSubscription,
    UserProfile,
    ValidationIssue,
    ValidationResult,
)
from scotty.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Finance models
    "AccountInfo",
    "Achievement",
    "AchievementSource",
    "BudgetFrequency",
    "BudgetItem",
    "BudgetProjection",
    "ChatAction",
    "ChatMessage",
    "ChatRole",
    "ConnectionStatus",
    "DailyInsight",
    "FoodType",
    "HealthMetrics",
    "InsightType",
    "MonthlySpend",
    "Mood",
    "SavingsGoal",
    "ScottyState",
    "Transaction",
    "TransactionCategory",
    "UpcomingBills",
    "UpcomingSubscription",
    "UserProfile",
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
