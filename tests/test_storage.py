"""
Tests for the SQLAlchemy stores and the transactional coordinator.

These run against a real (in-memory) database so constraint handling is
exercised end to end.
"""

import asyncio
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from ledger.errors import (
    AlreadyExistsError,
    InternalError,
    NotFoundError,
    ValidationFailedError,
)
from ledger.models.ledger import (
    CategoryCreate,
    TransactionCreate,
    TransactionFilters,
    TransactionType,
)
from ledger.services.storage import SQLCredentialStore, SQLLedgerStore
from ledger.services.storage.records import CategoryRecord
from ledger.services.storage.sql import _classified


def _tx(category_id: int, amount: str = "10.00", day: int = 1, **kwargs) -> TransactionCreate:
    return TransactionCreate(
        amount=Decimal(amount),
        type=kwargs.pop("type", TransactionType.EXPENSE),
        date=date(2024, 1, day),
        category_id=category_id,
        **kwargs,
    )


@pytest.fixture
def store():
    return SQLLedgerStore(default_page_limit=100)


@pytest.fixture
def coordinator(components):
    return components.coordinator


class TestCredentialStore:
    """Tests for SQLCredentialStore."""

    async def test_duplicate_username_already_exists(self, coordinator, alice):
        store = SQLCredentialStore()
        with pytest.raises(AlreadyExistsError, match="alice"):
            await coordinator.run(lambda s: store.create_user(s, "alice", "hash"))

    async def test_unknown_username_not_found(self, coordinator):
        store = SQLCredentialStore()
        with pytest.raises(NotFoundError):
            await coordinator.run(lambda s: store.get_user_by_username(s, "nobody"))

    async def test_lookup_returns_hash(self, coordinator, alice):
        store = SQLCredentialStore()
        user = await coordinator.run(lambda s: store.get_user_by_username(s, "alice"))
        assert user.id == alice.id
        assert user.password_hash.startswith("$2")


class TestCategoryStore:
    """Tests for category persistence."""

    async def test_name_unique_per_user(self, coordinator, store, alice, bob):
        await coordinator.run(lambda s: store.create_category(s, alice.id, CategoryCreate(name="Rent")))

        with pytest.raises(AlreadyExistsError, match="Rent"):
            await coordinator.run(
                lambda s: store.create_category(s, alice.id, CategoryCreate(name="Rent"))
            )

        other = await coordinator.run(
            lambda s: store.create_category(s, bob.id, CategoryCreate(name="Rent"))
        )
        assert other.user_id == bob.id

    async def test_missing_parent_is_validation_error(self, coordinator, store, alice):
        """Test the foreign-key violation is classified, not leaked."""
        with pytest.raises(ValidationFailedError):
            await coordinator.run(
                lambda s: store.create_category(
                    s, alice.id, CategoryCreate(name="Orphan", parent_id=999)
                )
            )

    async def test_get_category_of_other_user_not_found(self, coordinator, store, groceries, bob):
        with pytest.raises(NotFoundError):
            await coordinator.run(lambda s: store.get_category(s, bob.id, groceries.id))

    async def test_list_filters_by_name_case_insensitive(self, coordinator, store, alice):
        for name in ("Food", "Fuel", "Seafood"):
            await coordinator.run(
                lambda s, name=name: store.create_category(s, alice.id, CategoryCreate(name=name))
            )

        result = await coordinator.run(lambda s: store.list_categories(s, alice.id, 10, 0, "FOOD"))
        assert [c.name for c in result] == ["Food", "Seafood"]

    async def test_list_offset_past_end_is_empty(self, coordinator, store, alice, groceries):
        for offset in (1, 5, 2**63, 10**20):
            result = await coordinator.run(
                lambda s, offset=offset: store.list_categories(s, alice.id, 10, offset)
            )
            assert result == []

    async def test_get_category_beyond_integer_range_not_found(self, coordinator, store, alice):
        with pytest.raises(NotFoundError):
            await coordinator.run(lambda s: store.get_category(s, alice.id, 2**63))


class TestTransactionStore:
    """Tests for transaction persistence."""

    async def test_create_assigns_server_fields(self, coordinator, store, alice, groceries):
        created = await coordinator.run(
            lambda s: store.create_transaction(s, alice.id, _tx(groceries.id, description="Milk"))
        )
        assert created.id > 0
        assert created.user_id == alice.id
        assert created.category_name == "Groceries"
        assert created.created_at is not None

    async def test_category_of_other_user_rejected(self, coordinator, store, groceries, bob):
        with pytest.raises(ValidationFailedError, match="category"):
            await coordinator.run(lambda s: store.create_transaction(s, bob.id, _tx(groceries.id)))

    async def test_order_is_date_then_id_descending(self, coordinator, store, alice, groceries):
        ids = []
        for day in (5, 9, 5):
            created = await coordinator.run(
                lambda s, day=day: store.create_transaction(s, alice.id, _tx(groceries.id, day=day))
            )
            ids.append(created.id)

        result = await coordinator.run(lambda s: store.list_transactions(s, alice.id, 10, 0))
        assert [t.id for t in result] == [ids[1], ids[2], ids[0]]

    async def test_pagination_defaults_and_bounds(self, coordinator, store, alice, groceries):
        for day in range(1, 6):
            await coordinator.run(
                lambda s, day=day: store.create_transaction(s, alice.id, _tx(groceries.id, day=day))
            )

        everything = await coordinator.run(lambda s: store.list_transactions(s, alice.id, 0, -4))
        assert len(everything) == 5

        page = await coordinator.run(lambda s: store.list_transactions(s, alice.id, 2, 2))
        assert [t.date.day for t in page] == [3, 2]

        past_end = await coordinator.run(lambda s: store.list_transactions(s, alice.id, 10, 5))
        assert past_end == []

        far_past_end = await coordinator.run(
            lambda s: store.list_transactions(s, alice.id, 10, 2**63)
        )
        assert far_past_end == []

    async def test_limit_above_cap_is_clamped(self, coordinator, alice, groceries):
        small = SQLLedgerStore(default_page_limit=2)
        for day in (1, 2, 3):
            await coordinator.run(
                lambda s, day=day: small.create_transaction(s, alice.id, _tx(groceries.id, day=day))
            )
        result = await coordinator.run(lambda s: small.list_transactions(s, alice.id, 50, 0))
        assert len(result) == 2

    async def test_filters(self, coordinator, store, alice, groceries):
        await coordinator.run(
            lambda s: store.create_transaction(
                s, alice.id, _tx(groceries.id, day=3, description="Weekly SHOP")
            )
        )
        await coordinator.run(
            lambda s: store.create_transaction(
                s, alice.id,
                _tx(groceries.id, day=20, description="Salary", type=TransactionType.INCOME),
            )
        )

        async def listing(filters):
            return await coordinator.run(
                lambda s: store.list_transactions(s, alice.id, 10, 0, filters)
            )

        by_range = await listing(TransactionFilters(start_date=date(2024, 1, 3), end_date=date(2024, 1, 3)))
        assert [t.description for t in by_range] == ["Weekly SHOP"]

        by_type = await listing(TransactionFilters(type=TransactionType.INCOME))
        assert [t.description for t in by_type] == ["Salary"]

        by_text = await listing(TransactionFilters(description="shop"))
        assert [t.description for t in by_text] == ["Weekly SHOP"]

    async def test_description_wildcards_are_literal(self, coordinator, store, alice, groceries):
        await coordinator.run(
            lambda s: store.create_transaction(s, alice.id, _tx(groceries.id, description="100% juice"))
        )
        await coordinator.run(
            lambda s: store.create_transaction(s, alice.id, _tx(groceries.id, description="1000 apples"))
        )
        result = await coordinator.run(
            lambda s: store.list_transactions(s, alice.id, 10, 0, TransactionFilters(description="100%"))
        )
        assert [t.description for t in result] == ["100% juice"]

    async def test_soft_delete(self, coordinator, store, alice, bob, groceries):
        created = await coordinator.run(
            lambda s: store.create_transaction(s, alice.id, _tx(groceries.id))
        )

        with pytest.raises(NotFoundError):
            await coordinator.run(lambda s: store.delete_transaction(s, bob.id, created.id))

        await coordinator.run(lambda s: store.delete_transaction(s, alice.id, created.id))
        assert await coordinator.run(lambda s: store.list_all_transactions(s, alice.id)) == []

        # Already deleted looks exactly like absent
        with pytest.raises(NotFoundError):
            await coordinator.run(lambda s: store.delete_transaction(s, alice.id, created.id))

    @pytest.mark.parametrize("transaction_id", [2**63, 10**20])
    async def test_delete_beyond_integer_range_not_found(
        self, coordinator, store, alice, transaction_id
    ):
        with pytest.raises(NotFoundError):
            await coordinator.run(
                lambda s: store.delete_transaction(s, alice.id, transaction_id)
            )

    async def test_category_beyond_integer_range_rejected(self, coordinator, store, alice):
        with pytest.raises(ValidationFailedError, match="category"):
            await coordinator.run(
                lambda s: store.create_transaction(s, alice.id, _tx(2**63))
            )


class TestTransactionalCoordinator:
    """Tests for atomic units."""

    async def _count_categories(self, coordinator) -> int:
        async def work(session):
            return (await session.execute(select(func.count(CategoryRecord.id)))).scalar_one()

        return await coordinator.run(work)

    async def test_error_rolls_back_whole_unit(self, coordinator, store, alice):
        failure = ValidationFailedError("second step failed")

        async def work(session):
            await store.create_category(session, alice.id, CategoryCreate(name="First"))
            raise failure

        with pytest.raises(ValidationFailedError) as exc_info:
            await coordinator.run(work)

        # Propagated unchanged, not re-wrapped
        assert exc_info.value is failure
        assert await self._count_categories(coordinator) == 0

    async def test_store_error_mid_unit_rolls_back(self, coordinator, store, alice):
        async def work(session):
            await store.create_category(session, alice.id, CategoryCreate(name="Kept?"))
            await store.create_category(session, alice.id, CategoryCreate(name="Bad", parent_id=424242))

        with pytest.raises(ValidationFailedError):
            await coordinator.run(work)
        assert await self._count_categories(coordinator) == 0

    async def test_success_commits(self, coordinator, store, alice):
        async def work(session):
            await store.create_category(session, alice.id, CategoryCreate(name="One"))
            await store.create_category(session, alice.id, CategoryCreate(name="Two"))

        await coordinator.run(work)
        assert await self._count_categories(coordinator) == 2

    async def test_deadline_cancels_unit(self, coordinator, store, alice):
        async def work(session):
            await store.create_category(session, alice.id, CategoryCreate(name="Slow"))
            await asyncio.sleep(5)

        with pytest.raises(InternalError, match="deadline"):
            await coordinator.run(work, timeout=0.05)
        assert await self._count_categories(coordinator) == 0


class TestClassifiedBlock:
    """Tests for the store's error classification wrapper."""

    def test_driver_overflow_becomes_internal(self):
        """Test a driver OverflowError never leaves a store raw."""
        with pytest.raises(InternalError) as exc_info:
            with _classified("Failed to retrieve transactions"):
                raise OverflowError("Python int too large to convert to SQLite INTEGER")
        assert exc_info.value.message == "Failed to retrieve transactions"
        assert isinstance(exc_info.value.cause, OverflowError)
