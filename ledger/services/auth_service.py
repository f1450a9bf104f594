"""
Auth Service

Registers users and exchanges credentials for signed, time-limited session
tokens (JWT via python-jose, passwords via passlib bcrypt).

Token lifecycle: Issued -> Valid (until exp) -> Expired. There is no
revocation list; expiry is the only way a token stops working, and logging
in again issues a fresh, independent token.

DESIGN DECISION: Failed logins are always Unauthorized. An unknown username
and a wrong password produce the same error, and the unknown-username path
still spends a hash verification so response timing does not tell them apart.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Optional

import structlog
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.ext.asyncio import AsyncSession

from ledger.audit import AuditLogger
from ledger.config import AuthSettings
from ledger.errors import InternalError, NotFoundError, UnauthorizedError
from ledger.models.ledger import AccessToken, AuthenticatedUser, StoredUser, User
from ledger.services.storage import CredentialStoreInterface, TransactionalCoordinator
from ledger.validation import LedgerValidator


logger = structlog.get_logger(__name__)

_INVALID_CREDENTIALS = "Invalid username or password"


class AuthService:
    """User registration, login and token verification."""

    def __init__(
        self,
        store: CredentialStoreInterface,
        coordinator: TransactionalCoordinator,
        settings: AuthSettings,
        validator: Optional[LedgerValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._coordinator = coordinator
        self._settings = settings
        self._validator = validator or LedgerValidator()
        self._audit_logger = audit_logger or AuditLogger()
        self._pwd_context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=settings.bcrypt_rounds,
        )

    # =========================================================================
    # PASSWORDS
    # =========================================================================

    async def _hash_password(self, password: str) -> str:
        # bcrypt is CPU-bound; keep it off the event loop
        return await asyncio.to_thread(self._pwd_context.hash, password)

    async def _verify_password(self, password: str, password_hash: str) -> bool:
        try:
            return await asyncio.to_thread(
                self._pwd_context.verify, password, password_hash
            )
        except (ValueError, TypeError) as e:
            raise InternalError("Stored password hash is unreadable", e) from e

    # =========================================================================
    # REGISTRATION / LOGIN
    # =========================================================================

    async def register_user(
        self,
        username: str,
        password: str,
        timeout: Optional[float] = None,
    ) -> User:
        """
        Register a new user.

        Raises:
            ValidationFailedError: Username not 3-50 chars, password under 6
            AlreadyExistsError: If the username is taken
        """
        username = self._validator.validate_credentials(username, password)
        password_hash = await self._hash_password(password)

        async def work(session: AsyncSession) -> StoredUser:
            return await self._store.create_user(session, username, password_hash)

        user = await self._coordinator.run(work, timeout=timeout)

        self._audit_logger.log_user_registered(user.id, user.username)
        return user.public()

    async def authenticate_user(
        self,
        username: str,
        password: str,
        timeout: Optional[float] = None,
    ) -> AccessToken:
        """
        Check credentials and issue a session token.

        Raises:
            UnauthorizedError: Unknown username or wrong password
        """
        username = (username or "").strip()
        if not username or not password:
            self._audit_logger.log_login_failed(username, "missing_credentials")
            raise UnauthorizedError(_INVALID_CREDENTIALS)

        async def work(session: AsyncSession) -> StoredUser:
            return await self._store.get_user_by_username(session, username)

        try:
            user = await self._coordinator.run(work, timeout=timeout)
        except NotFoundError:
            await asyncio.to_thread(self._pwd_context.dummy_verify)
            self._audit_logger.log_login_failed(username, "unknown_user")
            raise UnauthorizedError(_INVALID_CREDENTIALS) from None

        if not await self._verify_password(password, user.password_hash):
            self._audit_logger.log_login_failed(username, "wrong_password")
            raise UnauthorizedError(_INVALID_CREDENTIALS)

        token = self.issue_token(user)
        self._audit_logger.log_login_succeeded(user.id, user.username)
        return token

    # =========================================================================
    # TOKENS
    # =========================================================================

    def issue_token(self, user: User) -> AccessToken:
        """Sign a token asserting {user id, username, expiry}."""
        issued_at = datetime.now(timezone.utc)
        expires_at = issued_at + timedelta(hours=self._settings.token_ttl_hours)
        claims = {
            "sub": str(user.id),
            "user_id": user.id,
            "username": user.username,
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
        }

        try:
            token = jwt.encode(
                claims,
                self._settings.jwt_secret,
                algorithm=self._settings.jwt_algorithm,
            )
        except JWTError as e:
            raise InternalError("Failed to generate authentication token", e) from e

        return AccessToken(token=token, expires_at=expires_at)

    def decode_token(self, token: Optional[str]) -> AuthenticatedUser:
        """
        Resolve a bearer token to the identity it asserts.

        Raises:
            UnauthorizedError: Missing, malformed, expired, wrongly signed or
                wrong-algorithm tokens, and tokens missing required claims
        """
        if not token:
            raise UnauthorizedError("Missing authentication token")

        try:
            claims = jwt.decode(
                token,
                self._settings.jwt_secret,
                algorithms=[self._settings.jwt_algorithm],
                options={"require_exp": True, "require_sub": True},
            )
        except ExpiredSignatureError as e:
            raise UnauthorizedError("Authentication token expired", e) from e
        except JWTError as e:
            logger.warning("token_rejected", reason=str(e))
            raise UnauthorizedError("Invalid or expired authentication token", e) from e

        user_id = claims.get("user_id")
        username = claims.get("username")
        if (
            not isinstance(user_id, int)
            or isinstance(user_id, bool)
            or not isinstance(username, str)
            or not username
            or claims.get("sub") != str(user_id)
        ):
            raise UnauthorizedError("Invalid authentication token claims")

        return AuthenticatedUser(user_id=user_id, username=username)
