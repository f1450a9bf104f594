"""
Input Validation

DESIGN DECISION: The boundary validates request bodies, but the services
re-assert every business invariant here before anything reaches storage.
An invalid value is reported as a Validation error; it is never silently
fixed. The one exception is pagination, where out-of-range values are
clamped to defaults instead of failing the request.
"""

from decimal import Decimal
from typing import Optional

from ledger.errors import ValidationFailedError
from ledger.models.ledger import CategoryCreate, TransactionCreate, TransactionType


USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 50
PASSWORD_MIN_LENGTH = 6
CATEGORY_NAME_MIN_LENGTH = 2
CATEGORY_NAME_MAX_LENGTH = 100

# Numeric(10,2)
MAX_AMOUNT = Decimal("99999999.99")
CENT = Decimal("0.01")

# Largest value a 64-bit INTEGER column (and OFFSET) accepts
MAX_ID = 2**63 - 1


def is_storable_id(value: Optional[int]) -> bool:
    """True if value can name a stored row; anything else cannot exist."""
    return value is not None and 0 < value <= MAX_ID


def normalize_pagination(
    limit: Optional[int],
    offset: Optional[int],
    default_limit: int,
) -> tuple[int, int]:
    """
    Clamp client-supplied pagination.

    limit <= 0, missing, or above default_limit becomes default_limit;
    offset < 0 or missing becomes 0; offset above MAX_ID becomes MAX_ID,
    which is past the end of any table and so yields an empty page.
    """
    if limit is None or limit <= 0 or limit > default_limit:
        limit = default_limit
    if offset is None or offset < 0:
        offset = 0
    elif offset > MAX_ID:
        offset = MAX_ID
    return limit, offset


def _raise_if_issues(subject: str, issues: list[str]) -> None:
    if issues:
        raise ValidationFailedError(f"Invalid {subject}: {'; '.join(issues)}")


class LedgerValidator:
    """Re-asserts write invariants for users, categories and transactions."""

    def validate_credentials(self, username: str, password: str) -> str:
        """
        Check registration input.

        Returns:
            The username with surrounding whitespace stripped
        """
        issues = []
        username = (username or "").strip()

        if not username:
            issues.append("username is required")
        elif not USERNAME_MIN_LENGTH <= len(username) <= USERNAME_MAX_LENGTH:
            issues.append(
                f"username must be {USERNAME_MIN_LENGTH}-{USERNAME_MAX_LENGTH} characters"
            )

        if not password:
            issues.append("password is required")
        elif len(password) < PASSWORD_MIN_LENGTH:
            issues.append(
                f"password must be at least {PASSWORD_MIN_LENGTH} characters"
            )

        _raise_if_issues("registration", issues)
        return username

    def validate_new_category(self, data: CategoryCreate) -> None:
        issues = []
        name = (data.name or "").strip()

        if not CATEGORY_NAME_MIN_LENGTH <= len(name) <= CATEGORY_NAME_MAX_LENGTH:
            issues.append(
                f"name must be {CATEGORY_NAME_MIN_LENGTH}-{CATEGORY_NAME_MAX_LENGTH} characters"
            )
        if data.parent_id is not None and not is_storable_id(data.parent_id):
            issues.append("parent_id must be a positive 64-bit id")

        _raise_if_issues("category", issues)

    def validate_new_transaction(self, data: TransactionCreate) -> None:
        issues = []
        amount = data.amount

        if amount is None or not amount.is_finite():
            issues.append("amount must be a number")
        elif amount <= 0:
            issues.append("amount must be greater than zero")
        elif amount > MAX_AMOUNT:
            issues.append(f"amount must not exceed {MAX_AMOUNT}")
        elif amount != amount.quantize(CENT):
            issues.append("amount must have at most 2 decimal places")

        if not isinstance(data.type, TransactionType):
            issues.append("type must be 'income' or 'expense'")

        if not is_storable_id(data.category_id):
            issues.append("category_id must be a positive 64-bit id")

        _raise_if_issues("transaction", issues)
