"""
Request-scoped dependencies: component access, bearer-token resolution and
lenient query parsing.
"""

from datetime import date
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ledger.errors import UnauthorizedError, ValidationFailedError
from ledger.models.ledger import AuthenticatedUser, TransactionType
from ledger.orchestrator import AppComponents


# auto_error=False so missing/malformed headers go through our taxonomy
bearer_scheme = HTTPBearer(auto_error=False)


def get_components(request: Request) -> AppComponents:
    return request.app.state.components


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    components: AppComponents = Depends(get_components),
) -> AuthenticatedUser:
    """Resolve the bearer token or reject the request as Unauthorized."""
    if credentials is None:
        raise UnauthorizedError("Missing or malformed Authorization header")
    return components.auth_service.decode_token(credentials.credentials)


def request_timeout(components: AppComponents = Depends(get_components)) -> float:
    return components.settings.app.request_timeout_seconds


def parse_int(value: Optional[str]) -> Optional[int]:
    """Bad numbers fall back to the default (None) instead of failing."""
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def parse_date(name: str, value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise ValidationFailedError(f"{name} must be a date in YYYY-MM-DD format", e) from e


def parse_transaction_type(value: Optional[str]) -> Optional[TransactionType]:
    if not value:
        return None
    try:
        return TransactionType(value.lower())
    except ValueError as e:
        raise ValidationFailedError("type must be 'income' or 'expense'", e) from e
