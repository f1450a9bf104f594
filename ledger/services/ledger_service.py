"""
Ledger Service

Business-rule layer above the ledger store:
- validates writes before they reach storage
- runs every store call inside a TransactionalCoordinator unit
- clamps pagination again, so bad client values never reach the store
- guards category hierarchies against cycles and runaway depth

Every method takes the owning user id explicitly; the boundary resolves it
from the session token before calling in.
"""

from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from ledger.audit import AuditLogger
from ledger.config import AppSettings
from ledger.errors import NotFoundError, ValidationFailedError
from ledger.models.ledger import (
    Category,
    CategoryCreate,
    Transaction,
    TransactionCreate,
    TransactionFilters,
)
from ledger.services.storage import LedgerStoreInterface, TransactionalCoordinator
from ledger.validation import LedgerValidator, normalize_pagination


logger = structlog.get_logger(__name__)


class LedgerService:
    """Transactions and categories for authenticated users."""

    def __init__(
        self,
        store: LedgerStoreInterface,
        coordinator: TransactionalCoordinator,
        settings: AppSettings,
        validator: Optional[LedgerValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._coordinator = coordinator
        self._settings = settings
        self._validator = validator or LedgerValidator()
        self._audit_logger = audit_logger or AuditLogger()

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    async def create_transaction(
        self,
        user_id: int,
        data: TransactionCreate,
        timeout: Optional[float] = None,
    ) -> Transaction:
        """
        Create a transaction for user_id.

        Raises:
            ValidationFailedError: Bad amount/type, or category not owned
            ConflictError: On a uniqueness violation
            InternalError: On storage failure
        """
        self._validator.validate_new_transaction(data)

        async def work(session: AsyncSession) -> Transaction:
            return await self._store.create_transaction(session, user_id, data)

        transaction = await self._coordinator.run(work, timeout=timeout)

        self._audit_logger.log_transaction_created(
            user_id=user_id,
            transaction_id=transaction.id,
            amount=str(transaction.amount),
            transaction_type=transaction.type.value,
        )
        return transaction

    async def list_transactions(
        self,
        user_id: int,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        filters: Optional[TransactionFilters] = None,
        timeout: Optional[float] = None,
    ) -> list[Transaction]:
        limit, offset = normalize_pagination(
            limit, offset, self._settings.default_page_limit
        )
        async def work(session: AsyncSession) -> list[Transaction]:
            return await self._store.list_transactions(
                session, user_id, limit, offset, filters
            )

        return await self._coordinator.run(work, timeout=timeout)

    async def export_transactions(
        self,
        user_id: int,
        timeout: Optional[float] = None,
    ) -> list[Transaction]:
        """Every live transaction of user_id, in listing order, for CSV export."""

        async def work(session: AsyncSession) -> list[Transaction]:
            return await self._store.list_all_transactions(session, user_id)

        transactions = await self._coordinator.run(work, timeout=timeout)
        logger.info("transactions_exported", user_id=user_id, count=len(transactions))
        return transactions

    async def delete_transaction(
        self,
        user_id: int,
        transaction_id: int,
        timeout: Optional[float] = None,
    ) -> None:
        """
        Soft-delete a transaction.

        Raises:
            NotFoundError: If absent or not owned by user_id
        """

        async def work(session: AsyncSession) -> None:
            await self._store.delete_transaction(session, user_id, transaction_id)

        await self._coordinator.run(work, timeout=timeout)
        self._audit_logger.log_transaction_deleted(user_id, transaction_id)

    # =========================================================================
    # CATEGORIES
    # =========================================================================

    async def _check_parent_chain(
        self,
        session: AsyncSession,
        user_id: int,
        parent_id: int,
    ) -> None:
        """
        Walk up from parent_id and reject broken or cyclic hierarchies.

        The new category sits one level below its parent, so the chain from
        the parent may hold at most max_category_depth - 1 categories.
        """
        max_depth = self._settings.max_category_depth
        seen: set[int] = set()
        current_id: Optional[int] = parent_id

        while current_id is not None:
            if current_id in seen:
                raise ValidationFailedError(
                    f"Category hierarchy contains a cycle at category {current_id}"
                )
            if len(seen) >= max_depth - 1:
                raise ValidationFailedError(
                    f"Category hierarchy deeper than {max_depth} levels"
                )
            seen.add(current_id)

            try:
                category = await self._store.get_category(session, user_id, current_id)
            except NotFoundError as e:
                # A parent the caller cannot see is simply invalid input
                raise ValidationFailedError(
                    f"Parent category {current_id} does not exist", e
                ) from e
            current_id = category.parent_id

    async def create_category(
        self,
        user_id: int,
        data: CategoryCreate,
        timeout: Optional[float] = None,
    ) -> Category:
        """
        Create a category for user_id.

        Raises:
            ValidationFailedError: Bad name, or invalid parent chain
            AlreadyExistsError: If user_id already has a category of that name
        """
        self._validator.validate_new_category(data)

        async def work(session: AsyncSession) -> Category:
            if data.parent_id is not None:
                await self._check_parent_chain(session, user_id, data.parent_id)
            return await self._store.create_category(session, user_id, data)

        category = await self._coordinator.run(work, timeout=timeout)

        self._audit_logger.log_category_created(
            user_id=user_id,
            category_id=category.id,
            name=category.name,
            parent_id=category.parent_id,
        )
        return category

    async def list_categories(
        self,
        user_id: int,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        name_filter: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> list[Category]:
        limit, offset = normalize_pagination(
            limit, offset, self._settings.default_page_limit
        )

        async def work(session: AsyncSession) -> list[Category]:
            return await self._store.list_categories(
                session, user_id, limit, offset, name_filter
            )

        return await self._coordinator.run(work, timeout=timeout)
