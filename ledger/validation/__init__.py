"""Validation package."""

from ledger.validation.validator import (
    MAX_ID,
    LedgerValidator,
    is_storable_id,
    normalize_pagination,
)

__all__ = ["MAX_ID", "LedgerValidator", "is_storable_id", "normalize_pagination"]
