"""
SQLAlchemy Storage Implementation

DESIGN DECISION: Relational storage behind the abstract interfaces, using
SQLAlchemy's asyncio extension. Any async driver works; tests and local
runs use sqlite+aiosqlite, production points DB_URL at PostgreSQL.

Constraint enforcement (unique names, foreign keys) is left to the
database; this module's job is to turn what the database reports into
taxonomy kinds, exactly once, before anything leaves a store method.
"""

from contextlib import contextmanager
from typing import Iterator, Optional

import structlog
from sqlalchemy import event, select, update
from sqlalchemy.engine import make_url
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ledger.config import DatabaseSettings
from ledger.errors import (
    ErrorKind,
    InternalError,
    NotFoundError,
    ValidationFailedError,
    classify_storage_error,
)
from ledger.models.ledger import (
    Category,
    CategoryCreate,
    StoredUser,
    Transaction,
    TransactionCreate,
    TransactionFilters,
    TransactionType,
)
from ledger.services.storage.interface import (
    CredentialStoreInterface,
    LedgerStoreInterface,
)
from ledger.services.storage.records import (
    Base,
    CategoryRecord,
    TransactionRecord,
    UserRecord,
    utcnow,
)
from ledger.validation import is_storable_id, normalize_pagination


logger = structlog.get_logger(__name__)


# =============================================================================
# ENGINE
# =============================================================================

def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # SQLite ignores foreign keys unless asked per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_engine_from_settings(settings: DatabaseSettings) -> AsyncEngine:
    """
    Build the process-wide async engine (and its connection pool).

    In-memory SQLite gets a StaticPool so every session sees one database.
    """
    url = make_url(settings.url)
    kwargs = {"echo": settings.echo}

    is_sqlite = url.get_backend_name() == "sqlite"
    if is_sqlite and url.database in (None, "", ":memory:"):
        kwargs["poolclass"] = StaticPool

    engine = create_async_engine(url, **kwargs)

    if is_sqlite:
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

    return engine


async def init_schema(engine: AsyncEngine, attempts: int = 3) -> None:
    """
    Create missing tables.

    Retries transient connection failures (database still starting).
    Schema migrations are out of scope; this only creates what is absent.
    """
    try:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(attempts),
            wait=wait_exponential(multiplier=1, min=2, max=10),
            retry=retry_if_exception_type(OperationalError),
            reraise=True,
        ):
            with attempt:
                async with engine.begin() as conn:
                    await conn.run_sync(Base.metadata.create_all)
    except SQLAlchemyError as e:
        raise InternalError("Failed to initialize database schema", e) from e

    logger.info("schema_ready", backend=engine.url.get_backend_name())


@contextmanager
def _classified(
    action: str,
    on_unique: ErrorKind = ErrorKind.CONFLICT,
    unique_message: Optional[str] = None,
) -> Iterator[None]:
    """Re-raise any SQLAlchemy or driver failure inside the block as a taxonomy kind."""
    try:
        yield
    except (SQLAlchemyError, OverflowError) as e:
        error = classify_storage_error(
            e,
            action,
            on_unique=on_unique,
            unique_message=unique_message,
        )
        logger.warning(
            "storage_error_classified",
            action=action,
            kind=error.kind.value,
            error=str(e),
        )
        raise error from e


# =============================================================================
# CREDENTIAL STORE
# =============================================================================

class SQLCredentialStore(CredentialStoreInterface):
    """Users table access."""

    @staticmethod
    def _to_user(record: UserRecord) -> StoredUser:
        return StoredUser(
            id=record.id,
            username=record.username,
            password_hash=record.password_hash,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )

    async def create_user(
        self,
        session: AsyncSession,
        username: str,
        password_hash: str,
    ) -> StoredUser:
        now = utcnow()
        record = UserRecord(
            username=username,
            password_hash=password_hash,
            created_at=now,
            updated_at=now,
        )
        with _classified(
            "Failed to create user",
            on_unique=ErrorKind.ALREADY_EXISTS,
            unique_message=f"User with username '{username}' already exists",
        ):
            session.add(record)
            await session.flush()
        return self._to_user(record)

    async def get_user_by_username(
        self,
        session: AsyncSession,
        username: str,
    ) -> StoredUser:
        with _classified("Failed to look up user"):
            result = await session.execute(
                select(UserRecord).where(UserRecord.username == username)
            )
            record = result.scalar_one_or_none()
        if record is None:
            raise NotFoundError(f"User '{username}' not found")
        return self._to_user(record)


# =============================================================================
# LEDGER STORE
# =============================================================================

class SQLLedgerStore(LedgerStoreInterface):
    """
    Categories and transactions table access.

    Listing methods clamp pagination themselves as well, so a caller that
    bypasses the service still cannot run an unbounded page query.
    """

    def __init__(self, default_page_limit: int = 100):
        self._default_page_limit = default_page_limit

    # -------------------------------------------------------------------------
    # Conversion
    # -------------------------------------------------------------------------

    @staticmethod
    def _to_category(record: CategoryRecord) -> Category:
        return Category.model_validate(record)

    @staticmethod
    def _to_transaction(record: TransactionRecord, category_name: str) -> Transaction:
        return Transaction(
            id=record.id,
            description=record.description,
            amount=record.amount,
            type=TransactionType(record.type),
            date=record.date,
            category_id=record.category_id,
            category_name=category_name,
            user_id=record.user_id,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    async def _owned_category(
        self,
        session: AsyncSession,
        user_id: int,
        category_id: int,
    ) -> Optional[CategoryRecord]:
        if not is_storable_id(category_id):
            return None
        with _classified("Failed to look up category"):
            result = await session.execute(
                select(CategoryRecord).where(
                    CategoryRecord.id == category_id,
                    CategoryRecord.user_id == user_id,
                )
            )
            return result.scalar_one_or_none()

    async def create_transaction(
        self,
        session: AsyncSession,
        user_id: int,
        data: TransactionCreate,
    ) -> Transaction:
        # Foreign keys alone would accept another user's category
        category = await self._owned_category(session, user_id, data.category_id)
        if category is None:
            raise ValidationFailedError("Invalid category ID for transaction")

        now = utcnow()
        record = TransactionRecord(
            description=data.description,
            amount=data.amount,
            type=data.type.value,
            date=data.date,
            category_id=category.id,
            user_id=user_id,
            created_at=now,
            updated_at=now,
        )
        with _classified(
            "Failed to create transaction",
            on_unique=ErrorKind.CONFLICT,
            unique_message="Transaction already exists with given details",
        ):
            session.add(record)
            await session.flush()

        return self._to_transaction(record, category.name)

    def _transactions_query(
        self,
        user_id: int,
        filters: Optional[TransactionFilters] = None,
    ):
        stmt = (
            select(TransactionRecord, CategoryRecord.name)
            .join(CategoryRecord, TransactionRecord.category_id == CategoryRecord.id)
            .where(
                TransactionRecord.user_id == user_id,
                TransactionRecord.deleted_at.is_(None),
            )
        )

        if filters is not None and not filters.is_empty:
            if filters.start_date is not None:
                stmt = stmt.where(TransactionRecord.date >= filters.start_date)
            if filters.end_date is not None:
                stmt = stmt.where(TransactionRecord.date <= filters.end_date)
            if filters.type is not None:
                stmt = stmt.where(TransactionRecord.type == filters.type.value)
            if filters.description:
                stmt = stmt.where(
                    TransactionRecord.description.icontains(
                        filters.description, autoescape=True
                    )
                )

        # id breaks date ties so pages never overlap
        return stmt.order_by(TransactionRecord.date.desc(), TransactionRecord.id.desc())

    async def list_transactions(
        self,
        session: AsyncSession,
        user_id: int,
        limit: int,
        offset: int,
        filters: Optional[TransactionFilters] = None,
    ) -> list[Transaction]:
        limit, offset = normalize_pagination(limit, offset, self._default_page_limit)
        stmt = self._transactions_query(user_id, filters).limit(limit).offset(offset)

        with _classified("Failed to retrieve transactions"):
            rows = (await session.execute(stmt)).all()

        return [self._to_transaction(record, name) for record, name in rows]

    async def list_all_transactions(
        self,
        session: AsyncSession,
        user_id: int,
    ) -> list[Transaction]:
        with _classified("Failed to retrieve transactions"):
            rows = (await session.execute(self._transactions_query(user_id))).all()

        return [self._to_transaction(record, name) for record, name in rows]

    async def delete_transaction(
        self,
        session: AsyncSession,
        user_id: int,
        transaction_id: int,
    ) -> None:
        if not is_storable_id(transaction_id):
            raise NotFoundError(f"Transaction {transaction_id} not found")

        now = utcnow()
        stmt = (
            update(TransactionRecord)
            .where(
                TransactionRecord.id == transaction_id,
                TransactionRecord.user_id == user_id,
                TransactionRecord.deleted_at.is_(None),
            )
            .values(deleted_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        with _classified("Failed to delete transaction"):
            result = await session.execute(stmt)

        # Absent and not-yours must look the same
        if result.rowcount == 0:
            raise NotFoundError(f"Transaction {transaction_id} not found")

    # -------------------------------------------------------------------------
    # Categories
    # -------------------------------------------------------------------------

    async def create_category(
        self,
        session: AsyncSession,
        user_id: int,
        data: CategoryCreate,
    ) -> Category:
        now = utcnow()
        record = CategoryRecord(
            name=data.name,
            parent_id=data.parent_id,
            user_id=user_id,
            created_at=now,
            updated_at=now,
        )
        with _classified(
            "Failed to create category",
            on_unique=ErrorKind.ALREADY_EXISTS,
            unique_message=f"Category with name '{data.name}' already exists",
        ):
            session.add(record)
            await session.flush()

        return self._to_category(record)

    async def get_category(
        self,
        session: AsyncSession,
        user_id: int,
        category_id: int,
    ) -> Category:
        record = await self._owned_category(session, user_id, category_id)
        if record is None:
            raise NotFoundError(f"Category {category_id} not found")
        return self._to_category(record)

    async def list_categories(
        self,
        session: AsyncSession,
        user_id: int,
        limit: int,
        offset: int,
        name_filter: Optional[str] = None,
    ) -> list[Category]:
        limit, offset = normalize_pagination(limit, offset, self._default_page_limit)
        stmt = select(CategoryRecord).where(CategoryRecord.user_id == user_id)
        if name_filter:
            stmt = stmt.where(CategoryRecord.name.icontains(name_filter, autoescape=True))
        stmt = (
            stmt.order_by(CategoryRecord.name.asc(), CategoryRecord.id.asc())
            .limit(limit)
            .offset(offset)
        )

        with _classified("Failed to retrieve categories"):
            records = (await session.execute(stmt)).scalars().all()

        return [self._to_category(record) for record in records]
