"""
Audit Logger

Every fallback the client core takes is logged, so a silent fallback is
still a traceable one.

The audit logger:
- Writes each event to the structured log at the event's severity
- Keeps a bounded in-memory history for the current session
- Never raises; a logging failure must not break an action
"""

import logging
from collections import deque
from typing import Optional
from uuid import UUID, uuid4

import structlog

from scotty.models.audit import AuditEvent, AuditEventType


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(debug: bool = False) -> None:
    """Send scotty's log records to stderr at INFO, or DEBUG when `debug`."""
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(format="%(message)s", level=level)
    logging.getLogger("scotty").setLevel(level)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An in-memory history (for inspection within the session)
    """

    def __init__(self, history_size: int = 500):
        """
        Initialize audit logger.

        Args:
            history_size: How many recent events to keep in memory.
        """
        self._events: deque[AuditEvent] = deque(maxlen=history_size)
        self._logger = structlog.get_logger("scotty.audit")

    @property
    def events(self) -> list[AuditEvent]:
        """Events recorded so far, oldest first."""
        return list(self._events)

    def events_of_type(self, event_type: AuditEventType) -> list[AuditEvent]:
        return [e for e in self._events if e.event_type == event_type]

    def log(self, event: AuditEvent) -> None:
        """Record an audit event."""
        self._events.append(event)

        log_dict = event.to_log_dict()
        try:
            if event.severity.value == "error":
                self._logger.error("audit_event", **log_dict)
            elif event.severity.value == "warning":
                self._logger.warning("audit_event", **log_dict)
            elif event.severity.value == "debug":
                self._logger.debug("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception as e:
            # Log failure but don't raise
            self._logger.error(
                "audit_log_failed",
                error=str(e),
                event_id=str(event.event_id),
            )


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use one per upgrade run; pass it to every event the run emits.
    """
    return uuid4()


_default_logger: Optional[AuditLogger] = None


def get_audit_logger() -> AuditLogger:
    """Process-wide logger used when a component is not given one."""
    global _default_logger
    if _default_logger is None:
        _default_logger = AuditLogger()
    return _default_logger
