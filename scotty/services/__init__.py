"""Services package."""

from scotty.services.backend import (
    AccountsSummary,
    BackendError,
    BackendInterface,
    BackendResponseError,
    BackendUnavailableError,
    BudgetDraft,
    ChatReply,
    DailyPayload,
    HttpBackendClient,
    NotFoundError,
)

__all__ = [
    "AccountsSummary",
    "BackendError",
    "BackendInterface",
    "BackendResponseError",
    "BackendUnavailableError",
    "BudgetDraft",
    "ChatReply",
    "DailyPayload",
    "HttpBackendClient",
    "NotFoundError",
]
