"""
Audit Logger

DESIGN DECISION: Every write and every login attempt is logged.
This provides:
1. Traceability per user
2. Debugging capability
3. Visibility of failed logins

The audit logger:
- Writes structured JSON through structlog
- Never receives secrets (see AuditEventBuilder)
"""

import logging
from typing import Optional

import structlog

from ledger.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


def configure_logging(level: str = "INFO") -> None:
    """
    Configure stdlib logging and structlog for JSON output.

    Called once at startup by create_app_components.
    """
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level.upper(), logging.INFO),
    )
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


class AuditLogger:
    """Central audit logging service."""

    def __init__(self):
        self._logger = structlog.get_logger("ledger.audit")

    def log(self, event: AuditEvent) -> None:
        """Log an audit event at the level matching its severity."""
        log_dict = event.to_log_dict()

        if event.severity == AuditSeverity.ERROR:
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

    def log_user_registered(self, user_id: int, username: str) -> None:
        self.log(AuditEventBuilder.user_registered(user_id, username))

    def log_login_succeeded(self, user_id: int, username: str) -> None:
        self.log(AuditEventBuilder.login_succeeded(user_id, username))

    def log_login_failed(self, username: str, reason: str) -> None:
        self.log(AuditEventBuilder.login_failed(username, reason))

    def log_category_created(
        self,
        user_id: int,
        category_id: int,
        name: str,
        parent_id: Optional[int],
    ) -> None:
        self.log(AuditEventBuilder.category_created(
            user_id=user_id,
            category_id=category_id,
            name=name,
            parent_id=parent_id,
        ))

    def log_transaction_created(
        self,
        user_id: int,
        transaction_id: int,
        amount: str,
        transaction_type: str,
    ) -> None:
        self.log(AuditEventBuilder.transaction_created(
            user_id=user_id,
            transaction_id=transaction_id,
            amount=amount,
            transaction_type=transaction_type,
        ))

    def log_transaction_deleted(self, user_id: int, transaction_id: int) -> None:
        self.log(AuditEventBuilder.transaction_deleted(user_id, transaction_id))

    def log_operation_failed(
        self,
        operation: str,
        error_code: str,
        error_message: str,
        user_id: Optional[int] = None,
    ) -> None:
        """Log a classified failure."""
        self.log(AuditEventBuilder.operation_failed(
            operation=operation,
            error_code=error_code,
            error_message=error_message,
            user_id=user_id,
        ))
