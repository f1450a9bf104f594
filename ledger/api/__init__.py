"""HTTP boundary package."""

from ledger.api.app import create_app
from ledger.api.errors import STATUS_BY_KIND, error_response

__all__ = ["STATUS_BY_KIND", "create_app", "error_response"]
