"""
Backend Services Package

Abstract interface to the remote backend plus the httpx implementation.
"""

from scotty.services.backend.interface import (
    AccountsSummary,
    BackendError,
    BackendInterface,
    BackendResponseError,
    BackendUnavailableError,
    BudgetDraft,
    ChatReply,
    DailyPayload,
    NotFoundError,
)
from scotty.services.backend.http_client import HttpBackendClient

__all__ = [
    # Interface
    "BackendInterface",
    "AccountsSummary",
    "BudgetDraft",
    "ChatReply",
    "DailyPayload",
    # Exceptions
    "BackendError",
    "BackendResponseError",
    "BackendUnavailableError",
    "NotFoundError",
    # HTTP implementation
    "HttpBackendClient",
]
