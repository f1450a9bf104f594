"""
Abstract Storage Interface

DESIGN DECISION: We define abstract interfaces for storage operations.
This allows us to:
1. Keep the services decoupled from SQLAlchemy specifics
2. Swap the database backend without touching business rules
3. Substitute fakes in tests

Every operation takes the session of the current atomic unit (supplied by
TransactionalCoordinator) and an explicit owning user id. Nothing is ever
looked up globally.

Every implementation must raise only ledger.errors.LedgerError subclasses.
"""

from abc import ABC, abstractmethod
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ledger.models.ledger import (
    Category,
    CategoryCreate,
    StoredUser,
    Transaction,
    TransactionCreate,
    TransactionFilters,
)


class CredentialStoreInterface(ABC):
    """Persistence for user identities and password hashes."""

    @abstractmethod
    async def create_user(
        self,
        session: AsyncSession,
        username: str,
        password_hash: str,
    ) -> StoredUser:
        """
        Persist a new user.

        Raises:
            AlreadyExistsError: If the username is taken
            InternalError: On any other storage failure
        """
        pass

    @abstractmethod
    async def get_user_by_username(
        self,
        session: AsyncSession,
        username: str,
    ) -> StoredUser:
        """
        Look up a user by username.

        Raises:
            NotFoundError: If no such user exists
        """
        pass


class LedgerStoreInterface(ABC):
    """
    Persistence for categories and transactions.

    Any storage implementation must implement these methods.
    """

    @abstractmethod
    async def create_transaction(
        self,
        session: AsyncSession,
        user_id: int,
        data: TransactionCreate,
    ) -> Transaction:
        """
        Insert a transaction owned by user_id.

        Assigns the id and timestamps.

        Raises:
            ValidationFailedError: If the category does not exist or is
                owned by another user
            ConflictError: On a uniqueness violation
            InternalError: On any other storage failure
        """
        pass

    @abstractmethod
    async def list_transactions(
        self,
        session: AsyncSession,
        user_id: int,
        limit: int,
        offset: int,
        filters: Optional[TransactionFilters] = None,
    ) -> list[Transaction]:
        """
        List live transactions, newest date first (ties: highest id first).

        Args:
            session: Session of the current unit
            user_id: Owning user
            limit: Page size (<= 0 means the default cap)
            offset: Rows to skip (< 0 means 0)
            filters: Optional date range, type and description filters

        Returns:
            Matching transactions, possibly empty
        """
        pass

    @abstractmethod
    async def list_all_transactions(
        self,
        session: AsyncSession,
        user_id: int,
    ) -> list[Transaction]:
        """Every live transaction of user_id, in listing order, unpaginated."""
        pass

    @abstractmethod
    async def delete_transaction(
        self,
        session: AsyncSession,
        user_id: int,
        transaction_id: int,
    ) -> None:
        """
        Soft-delete a transaction.

        Raises:
            NotFoundError: If absent, already deleted, or owned by another
                user (indistinguishable on purpose)
        """
        pass

    @abstractmethod
    async def create_category(
        self,
        session: AsyncSession,
        user_id: int,
        data: CategoryCreate,
    ) -> Category:
        """
        Insert a category owned by user_id.

        Raises:
            AlreadyExistsError: If user_id already has a category of that name
            ValidationFailedError: If the parent reference does not exist
            InternalError: On any other storage failure
        """
        pass

    @abstractmethod
    async def get_category(
        self,
        session: AsyncSession,
        user_id: int,
        category_id: int,
    ) -> Category:
        """
        Point lookup of a category owned by user_id.

        Raises:
            NotFoundError: If absent or owned by another user
        """
        pass

    @abstractmethod
    async def list_categories(
        self,
        session: AsyncSession,
        user_id: int,
        limit: int,
        offset: int,
        name_filter: Optional[str] = None,
    ) -> list[Category]:
        """
        List categories by name.

        Args:
            name_filter: Case-insensitive substring of the name
        """
        pass
