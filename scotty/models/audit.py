"""
Audit Models for Scotty

Every fallback, timeout and user action in the client core is recorded
as an AuditEvent. Nothing here is shown to the user; the events exist so
that a silent fallback is never an invisible one.

Audit logs are append-only for the lifetime of the process.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Grouped by the component that emits them.
    """
    # Reachability
    PROBE_SUCCEEDED = "probe_succeeded"
    PROBE_FAILED = "probe_failed"

    # Backend upgrade
    UPGRADE_STARTED = "upgrade_started"
    WAVE_APPLIED = "wave_applied"
    RESOURCE_FETCH_FAILED = "resource_fetch_failed"
    DAILY_PAYLOAD_NOT_READY = "daily_payload_not_ready"
    UPGRADE_COMPLETED = "upgrade_completed"
    UPGRADE_TIMED_OUT = "upgrade_timed_out"

    # Pet actions
    FEED_APPLIED = "feed_applied"
    FEED_REFUSED = "feed_refused"
    ACHIEVEMENT_COMPLETED = "achievement_completed"
    ACHIEVEMENT_DISMISSED = "achievement_dismissed"

    # Chat
    CHAT_MESSAGE_SENT = "chat_message_sent"
    CHAT_RESPONDER_FAILED = "chat_responder_failed"

    # Budgets and goals
    BUDGET_SAVED = "budget_saved"
    GOAL_SAVED = "goal_saved"
    VALIDATION_FAILED = "validation_failed"

    # Remote mutations
    REMOTE_CALL_FAILED = "remote_call_failed"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """A single audit event."""

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'resource', 'achievement', 'budget')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID or name of the entity this event relates to"
    )

    # Correlation - all events of one upgrade run share an ID
    correlation_id: Optional[UUID] = None

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.probe_failed(reason, correlation_id)
        event = AuditEventBuilder.feed_refused("meal", 5, 4)
    """

    @staticmethod
    def probe_succeeded(correlation_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PROBE_SUCCEEDED,
            entity_type="backend",
            correlation_id=correlation_id,
            description="Backend reachable, upgrading local state",
        )

    @staticmethod
    def probe_failed(reason: str, correlation_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PROBE_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="backend",
            correlation_id=correlation_id,
            description="Backend unreachable, staying local for this session",
            error_message=reason,
        )

    @staticmethod
    def upgrade_started(correlation_id: UUID, timeout_seconds: float) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.UPGRADE_STARTED,
            entity_type="backend",
            correlation_id=correlation_id,
            description="Backend upgrade started",
            details={"timeout_seconds": timeout_seconds},
        )

    @staticmethod
    def wave_applied(
        wave: int,
        succeeded: list[str],
        failed: list[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.WAVE_APPLIED,
            entity_type="wave",
            entity_id=str(wave),
            correlation_id=correlation_id,
            description=f"Wave {wave} applied ({len(succeeded)} ok, {len(failed)} defaulted)",
            details={"succeeded": succeeded, "failed": failed},
        )

    @staticmethod
    def resource_fetch_failed(
        resource: str,
        error_message: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RESOURCE_FETCH_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="resource",
            entity_id=resource,
            correlation_id=correlation_id,
            description=f"Fetch of {resource} failed, using local default",
            error_message=error_message,
        )

    @staticmethod
    def daily_payload_not_ready(
        timeout_seconds: float,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DAILY_PAYLOAD_NOT_READY,
            entity_type="resource",
            entity_id="daily_payload",
            correlation_id=correlation_id,
            description="Daily payload not ready yet, keeping current insight",
            details={"timeout_seconds": timeout_seconds},
        )

    @staticmethod
    def upgrade_completed(state: str, correlation_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.UPGRADE_COMPLETED,
            entity_type="backend",
            correlation_id=correlation_id,
            description=f"Backend upgrade finished: {state}",
            details={"state": state},
        )

    @staticmethod
    def upgrade_timed_out(timeout_seconds: float, correlation_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.UPGRADE_TIMED_OUT,
            severity=AuditSeverity.WARNING,
            entity_type="backend",
            correlation_id=correlation_id,
            description="Backend upgrade timed out, keeping partial results",
            details={"timeout_seconds": timeout_seconds},
        )

    @staticmethod
    def feed_applied(food_type: str, remote: bool, happiness: int, food_credits: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FEED_APPLIED,
            entity_type="scotty",
            entity_id=food_type,
            description=f"Scotty fed a {food_type}",
            details={
                "remote": remote,
                "happiness": happiness,
                "food_credits": food_credits,
            },
            is_user_action=True,
        )

    @staticmethod
    def feed_refused(food_type: str, cost: int, food_credits: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FEED_REFUSED,
            entity_type="scotty",
            entity_id=food_type,
            description=f"Not enough food credits for a {food_type}",
            details={"cost": cost, "food_credits": food_credits},
            is_user_action=True,
        )

    @staticmethod
    def achievement_completed(achievement_id: str, source: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACHIEVEMENT_COMPLETED,
            entity_type="achievement",
            entity_id=achievement_id,
            description="Achievement completed",
            details={"source": source},
            is_user_action=True,
        )

    @staticmethod
    def achievement_dismissed(achievement_id: str, source: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACHIEVEMENT_DISMISSED,
            entity_type="achievement",
            entity_id=achievement_id,
            description="Achievement dismissed",
            details={"source": source},
            is_user_action=True,
        )

    @staticmethod
    def chat_message_sent(responder: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CHAT_MESSAGE_SENT,
            entity_type="chat",
            description=f"Chat reply produced by {responder} responder",
            details={"responder": responder},
            is_user_action=True,
        )

    @staticmethod
    def chat_responder_failed(error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CHAT_RESPONDER_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="chat",
            description="Local chat responder failed, sent apology",
            error_message=error_message,
        )

    @staticmethod
    def budget_saved(budget_id: Optional[str], category: str, created: bool) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_SAVED,
            entity_type="budget",
            entity_id=budget_id,
            description=f"Budget {'created' if created else 'updated'}: {category}",
            details={"category": category, "created": created},
            is_user_action=True,
        )

    @staticmethod
    def goal_saved(goal_name: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GOAL_SAVED,
            entity_type="goal",
            entity_id=goal_name,
            description=f"Savings goal created: {goal_name}",
            is_user_action=True,
        )

    @staticmethod
    def validation_failed(subject: str, issues: list[dict]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type=subject,
            description=f"{subject.capitalize()} rejected by validation",
            details={"issues": issues},
            is_user_action=True,
        )

    @staticmethod
    def remote_call_failed(operation: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REMOTE_CALL_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="operation",
            entity_id=operation,
            description=f"Remote {operation} failed",
            error_message=error_message,
        )
