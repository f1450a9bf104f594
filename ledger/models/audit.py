"""
Audit Models for the Ledger

Every significant action in the system is logged for audit purposes.
This provides:
1. Traceability of who created or deleted what
2. Debugging information when things go wrong
3. A record of failed logins

DESIGN DECISION: Audit events never carry secrets. Passwords, hashes and
tokens are not part of any event.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Identity
    USER_REGISTERED = "user_registered"
    LOGIN_SUCCEEDED = "login_succeeded"
    LOGIN_FAILED = "login_failed"

    # Ledger writes
    CATEGORY_CREATED = "category_created"
    TRANSACTION_CREATED = "transaction_created"
    TRANSACTION_DELETED = "transaction_deleted"

    # Failures
    OPERATION_FAILED = "operation_failed"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - who did it and what is it about?
    user_id: Optional[int] = Field(
        default=None,
        description="Acting user, when known"
    )
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'category')"
    )
    entity_id: Optional[int] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "user_id": self.user_id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.user_registered(user_id, username)
        event = AuditEventBuilder.transaction_deleted(user_id, transaction_id)
    """

    @staticmethod
    def user_registered(user_id: int, username: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_REGISTERED,
            user_id=user_id,
            entity_type="user",
            entity_id=user_id,
            description=f"User registered: {username}",
            details={"username": username},
        )

    @staticmethod
    def login_succeeded(user_id: int, username: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOGIN_SUCCEEDED,
            user_id=user_id,
            entity_type="user",
            entity_id=user_id,
            description=f"User logged in: {username}",
        )

    @staticmethod
    def login_failed(username: str, reason: str) -> AuditEvent:
        # The reason stays internal; callers only ever see "Unauthorized"
        return AuditEvent(
            event_type=AuditEventType.LOGIN_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="user",
            description=f"Login failed for: {username}",
            details={"username": username, "reason": reason},
        )

    @staticmethod
    def category_created(
        user_id: int,
        category_id: int,
        name: str,
        parent_id: Optional[int],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORY_CREATED,
            user_id=user_id,
            entity_type="category",
            entity_id=category_id,
            description=f"Category created: {name}",
            details={"name": name, "parent_id": parent_id},
        )

    @staticmethod
    def transaction_created(
        user_id: int,
        transaction_id: int,
        amount: str,
        transaction_type: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_CREATED,
            user_id=user_id,
            entity_type="transaction",
            entity_id=transaction_id,
            description=f"Transaction created: {transaction_type} {amount}",
            details={"amount": amount, "type": transaction_type},
        )

    @staticmethod
    def transaction_deleted(user_id: int, transaction_id: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            user_id=user_id,
            entity_type="transaction",
            entity_id=transaction_id,
            description=f"Transaction soft-deleted: {transaction_id}",
        )

    @staticmethod
    def operation_failed(
        operation: str,
        error_code: str,
        error_message: str,
        user_id: Optional[int] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OPERATION_FAILED,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            description=f"Operation failed: {operation}",
            details={"operation": operation},
            error_code=error_code,
            error_message=error_message,
        )
