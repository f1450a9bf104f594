"""
Error Taxonomy

Every failure that crosses a component boundary is a LedgerError carrying
one of a closed set of kinds. Raw driver errors are classified once, at the
store boundary (see classify_storage_error), and never inspected above it.

Higher layers may re-classify a kind only when the caller-facing meaning
changes, e.g. the auth service turns NotFound into Unauthorized so that a
failed login does not reveal whether the username exists.
"""

from enum import Enum
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError


class ErrorKind(str, Enum):
    """The closed set of failure kinds."""
    NOT_FOUND = "NOT_FOUND"
    ALREADY_EXISTS = "ALREADY_EXISTS"
    VALIDATION = "VALIDATION_ERROR"
    INTERNAL = "INTERNAL_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    CONFLICT = "CONFLICT"


class LedgerError(Exception):
    """
    Base exception for all classified failures.

    Subclasses pin the kind; the generic constructor is kept for callers
    that already hold an ErrorKind value.
    """

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(
        self,
        message: str,
        cause: Optional[BaseException] = None,
        kind: Optional[ErrorKind] = None,
    ):
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind
        self.__cause__ = cause

    @property
    def cause(self) -> Optional[BaseException]:
        return self.__cause__

    def __str__(self) -> str:
        if self.__cause__ is not None:
            return f"{self.message}: {self.__cause__}"
        return self.message

    def to_dict(self) -> dict[str, str]:
        """Error payload as returned by the request boundary."""
        return {"error": self.kind.value, "details": self.message}


class NotFoundError(LedgerError):
    """Record absent on a point lookup (or not owned by the caller)."""
    kind = ErrorKind.NOT_FOUND


class AlreadyExistsError(LedgerError):
    """Unique name already taken within its scope."""
    kind = ErrorKind.ALREADY_EXISTS


class ValidationFailedError(LedgerError):
    """Input rejected, or a referenced record does not exist."""
    kind = ErrorKind.VALIDATION


class InternalError(LedgerError):
    """Any unclassified storage or processing failure."""
    kind = ErrorKind.INTERNAL


class UnauthorizedError(LedgerError):
    """Missing or bad credentials / token."""
    kind = ErrorKind.UNAUTHORIZED


class ForbiddenError(LedgerError):
    """Authenticated, but not allowed."""
    kind = ErrorKind.FORBIDDEN


class ConflictError(LedgerError):
    """Duplicate write with no name-scoped meaning."""
    kind = ErrorKind.CONFLICT


ERROR_CLASSES: dict[ErrorKind, type[LedgerError]] = {
    ErrorKind.NOT_FOUND: NotFoundError,
    ErrorKind.ALREADY_EXISTS: AlreadyExistsError,
    ErrorKind.VALIDATION: ValidationFailedError,
    ErrorKind.INTERNAL: InternalError,
    ErrorKind.UNAUTHORIZED: UnauthorizedError,
    ErrorKind.FORBIDDEN: ForbiddenError,
    ErrorKind.CONFLICT: ConflictError,
}


def new_error(
    kind: ErrorKind,
    message: str,
    cause: Optional[BaseException] = None,
) -> LedgerError:
    """Build the LedgerError subclass for a kind."""
    return ERROR_CLASSES[kind](message, cause)


# SQLSTATE codes (PostgreSQL) for the two constraint classes we care about
_UNIQUE_SQLSTATE = "23505"
_FOREIGN_KEY_SQLSTATE = "23503"


def _constraint_violation(error: IntegrityError) -> Optional[str]:
    """Return 'unique', 'foreign_key' or None for an IntegrityError."""
    orig = error.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code == _UNIQUE_SQLSTATE:
        return "unique"
    if code == _FOREIGN_KEY_SQLSTATE:
        return "foreign_key"

    # SQLite reports constraint failures only in the message text
    text = str(orig).lower()
    if "unique constraint" in text or "duplicate key" in text:
        return "unique"
    if "foreign key constraint" in text:
        return "foreign_key"
    return None


def classify_storage_error(
    error: BaseException,
    action: str,
    on_unique: ErrorKind = ErrorKind.CONFLICT,
    unique_message: Optional[str] = None,
) -> LedgerError:
    """
    Map a raw storage failure to a taxonomy kind.

    Args:
        error: The exception raised by SQLAlchemy / the driver
        action: What was being attempted, e.g. "Failed to create category"
        on_unique: Kind to use for unique-constraint violations
            (ALREADY_EXISTS for named entities, CONFLICT otherwise)
        unique_message: Message for unique violations

    Returns:
        A LedgerError wrapping the original exception
    """
    if isinstance(error, LedgerError):
        return error

    if isinstance(error, IntegrityError):
        violation = _constraint_violation(error)
        if violation == "unique":
            return new_error(
                on_unique,
                unique_message or "Record already exists with given details",
                error,
            )
        if violation == "foreign_key":
            return ValidationFailedError(
                "Referenced record does not exist", error
            )

    if isinstance(error, SQLAlchemyError):
        return InternalError(f"{action} due to database error", error)

    return InternalError(action, error)
