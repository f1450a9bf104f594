"""
Core Data Models for the Ledger

These pydantic models are the shapes that flow between the boundary, the
services and the stores. ORM records (ledger.services.storage.records)
never leave the store; they are converted to these models first.

DESIGN DECISION: Input models (*Create) only enforce types, not business
rules. Business rules (amount > 0, name lengths) are checked by
LedgerValidator so that violations surface as taxonomy Validation errors
instead of pydantic errors.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# ENUMS
# =============================================================================

class TransactionType(str, Enum):
    """A transaction is exactly one of these."""
    INCOME = "income"
    EXPENSE = "expense"


# =============================================================================
# USERS
# =============================================================================

class User(BaseModel):
    """
    Public view of a user.

    The password hash is deliberately absent so it can never be serialized.
    """
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    created_at: datetime
    updated_at: datetime


class StoredUser(User):
    """User as read from the credential store (includes the hash)."""

    password_hash: str = Field(..., repr=False)

    def public(self) -> User:
        return User(
            id=self.id,
            username=self.username,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class AuthenticatedUser(BaseModel):
    """Identity resolved from a valid session token."""
    model_config = ConfigDict(frozen=True)

    user_id: int
    username: str


class AccessToken(BaseModel):
    """A freshly issued session token."""

    token: str
    token_type: str = "bearer"
    expires_at: datetime


# =============================================================================
# CATEGORIES
# =============================================================================

class CategoryCreate(BaseModel):
    """Input for creating a category."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str
    parent_id: Optional[int] = None


class Category(BaseModel):
    """A category owned by exactly one user."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    parent_id: Optional[int] = None
    user_id: int
    created_at: datetime
    updated_at: datetime


# =============================================================================
# TRANSACTIONS
# =============================================================================

class TransactionCreate(BaseModel):
    """Input for creating a transaction."""
    model_config = ConfigDict(str_strip_whitespace=True)

    description: Optional[str] = None
    amount: Decimal
    type: TransactionType
    date: date
    category_id: int


class Transaction(BaseModel):
    """A transaction owned by exactly one user."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    description: Optional[str] = None
    amount: Decimal
    type: TransactionType
    date: date
    category_id: int
    category_name: str
    user_id: int
    created_at: datetime
    updated_at: datetime


class TransactionFilters(BaseModel):
    """
    Optional listing filters.

    Date bounds are inclusive. The description filter is a
    case-insensitive substring match.
    """

    start_date: Optional[date] = None
    end_date: Optional[date] = None
    type: Optional[TransactionType] = None
    description: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not any(
            (self.start_date, self.end_date, self.type, self.description)
        )
