"""
Transactional Coordinator

Runs a sequence of store operations as one atomic unit on a single
session: all of them commit, or none do.

Errors raised by the work propagate unchanged. The only failures this
module classifies itself are the ones it causes: a failed commit and an
expired deadline.
"""

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from ledger.errors import InternalError, classify_storage_error


T = TypeVar("T")

Work = Callable[[AsyncSession], Awaitable[T]]

logger = structlog.get_logger(__name__)


class TransactionalCoordinator:
    """
    Owns the session factory and opens one unit of work per call.

    Nesting is not supported; a unit must not call run() again.
    """

    def __init__(self, engine: AsyncEngine):
        self._sessions = async_sessionmaker(engine, expire_on_commit=False)

    async def _run_unit(self, work: Work[T]) -> T:
        async with self._sessions() as session:
            # begin() commits on clean exit and rolls back on any exception
            try:
                async with session.begin():
                    return await work(session)
            except SQLAlchemyError as e:
                # Store methods classify their own errors, so a raw one here
                # comes from the commit itself
                raise classify_storage_error(e, "Failed to commit changes") from e

    async def run(self, work: Work[T], timeout: Optional[float] = None) -> T:
        """
        Execute work(session) atomically.

        Args:
            work: Coroutine function receiving the unit's session
            timeout: Deadline in seconds; on expiry the in-flight storage
                call is cancelled and the unit rolled back

        Returns:
            Whatever work returns

        Raises:
            LedgerError: From work, unchanged
            InternalError: On commit failure or deadline expiry
        """
        if timeout is None:
            return await self._run_unit(work)

        try:
            return await asyncio.wait_for(self._run_unit(work), timeout=timeout)
        except asyncio.TimeoutError as e:
            logger.warning("unit_deadline_exceeded", timeout_seconds=timeout)
            raise InternalError("Request deadline exceeded", e) from e
