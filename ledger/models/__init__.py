"""
Data Models Package

This package contains all pydantic models used by the ledger.
All data crossing a component boundary must conform to these schemas.
"""

from ledger.models.ledger import (
    AccessToken,
    AuthenticatedUser,
    Category,
    CategoryCreate,
    StoredUser,
    Transaction,
    TransactionCreate,
    TransactionFilters,
    TransactionType,
    User,
)
from ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "AccessToken",
    "AuthenticatedUser",
    "Category",
    "CategoryCreate",
    "StoredUser",
    "Transaction",
    "TransactionCreate",
    "TransactionFilters",
    "TransactionType",
    "User",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
