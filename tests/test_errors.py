"""Tests for the error taxonomy and storage error classification."""

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from ledger.api.errors import STATUS_BY_KIND
from ledger.errors import (
    ERROR_CLASSES,
    AlreadyExistsError,
    ConflictError,
    ErrorKind,
    InternalError,
    LedgerError,
    NotFoundError,
    UnauthorizedError,
    ValidationFailedError,
    classify_storage_error,
    new_error,
)


class _PgError(Exception):
    """Stand-in for a driver exception carrying a SQLSTATE."""

    def __init__(self, sqlstate: str):
        super().__init__(f"sqlstate {sqlstate}")
        self.sqlstate = sqlstate


def _integrity(orig: Exception) -> IntegrityError:
    return IntegrityError("INSERT INTO ...", {}, orig)


class TestErrorKinds:
    """Tests for the closed set of kinds."""

    def test_every_kind_has_an_error_class(self):
        """Test that no kind is missing a subclass."""
        assert set(ERROR_CLASSES) == set(ErrorKind)

    def test_every_kind_has_an_http_status(self):
        """Test the boundary mapping is exhaustive."""
        assert set(STATUS_BY_KIND) == set(ErrorKind)

    @pytest.mark.parametrize("kind", list(ErrorKind))
    def test_new_error_pins_kind(self, kind):
        """Test new_error builds the matching subclass."""
        error = new_error(kind, "boom")
        assert isinstance(error, LedgerError)
        assert error.kind == kind

    def test_cause_is_wrapped(self):
        """Test the optional cause is kept and shown."""
        cause = RuntimeError("driver exploded")
        error = InternalError("Failed to save", cause)
        assert error.cause is cause
        assert error.__cause__ is cause
        assert "driver exploded" in str(error)

    def test_to_dict_hides_cause(self):
        """Test the boundary payload only carries the message."""
        error = NotFoundError("Transaction 7 not found", RuntimeError("secret"))
        assert error.to_dict() == {
            "error": "NOT_FOUND",
            "details": "Transaction 7 not found",
        }


class TestClassifyStorageError:
    """Tests for classify_storage_error."""

    def test_sqlite_unique_violation_uses_requested_kind(self):
        error = classify_storage_error(
            _integrity(Exception("UNIQUE constraint failed: categories.user_id, categories.name")),
            "Failed to create category",
            on_unique=ErrorKind.ALREADY_EXISTS,
            unique_message="Category with name 'Food' already exists",
        )
        assert isinstance(error, AlreadyExistsError)
        assert error.message == "Category with name 'Food' already exists"

    def test_unique_violation_defaults_to_conflict(self):
        error = classify_storage_error(
            _integrity(Exception("UNIQUE constraint failed: transactions.id")),
            "Failed to create transaction",
        )
        assert isinstance(error, ConflictError)

    def test_postgres_sqlstate_unique(self):
        error = classify_storage_error(
            _integrity(_PgError("23505")),
            "Failed to create user",
            on_unique=ErrorKind.ALREADY_EXISTS,
        )
        assert isinstance(error, AlreadyExistsError)

    def test_postgres_sqlstate_foreign_key(self):
        error = classify_storage_error(_integrity(_PgError("23503")), "Failed to create category")
        assert isinstance(error, ValidationFailedError)

    def test_sqlite_foreign_key_violation(self):
        error = classify_storage_error(
            _integrity(Exception("FOREIGN KEY constraint failed")),
            "Failed to create category",
        )
        assert isinstance(error, ValidationFailedError)

    def test_other_integrity_error_is_internal(self):
        error = classify_storage_error(
            _integrity(Exception("NOT NULL constraint failed: transactions.amount")),
            "Failed to create transaction",
        )
        assert isinstance(error, InternalError)
        assert error.message == "Failed to create transaction due to database error"

    def test_operational_error_is_internal(self):
        error = classify_storage_error(
            OperationalError("SELECT 1", {}, Exception("database is locked")),
            "Failed to retrieve transactions",
        )
        assert error.kind == ErrorKind.INTERNAL

    def test_already_classified_error_passes_through(self):
        original = UnauthorizedError("nope")
        assert classify_storage_error(original, "anything") is original
