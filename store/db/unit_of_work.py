"""
Unit of Work pattern for transaction coordination.

Provides a clean way to work with repositories sharing one StoreDbContext.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from store.db.connection import DatabaseConnection
from store.db.context import StoreDbContext
from store.db.repositories.sales import SalesRepository
from store.models.user import UserInfo

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


class UnitOfWork:
    """
    Unit of Work for one request.

    Owns a session and the StoreDbContext every repository stages into.

    Usage:
        async with UnitOfWork(UserInfo(name="admin")) as uow:
            uow.sales.add(customer)
            uow.sales.add(shipper)
            await uow.commit()  # Both rows in one transaction

        # Repository mutations commit on their own:
        async with UnitOfWork(user) as uow:
            await uow.sales.add_customer(customer)
    """

    def __init__(self, user_info: UserInfo):
        self.user_info = user_info
        self._session: AsyncSession | None = None
        self._context: StoreDbContext | None = None
        self._sales: SalesRepository | None = None

    async def __aenter__(self) -> UnitOfWork:
        self._session = DatabaseConnection.get_session()
        self._context = StoreDbContext(self._session)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None:
            await self.rollback()
        await self._close()
        return False  # Don't suppress exceptions

    @property
    def session(self) -> AsyncSession:
        """Get current session (raises if not in context)."""
        if self._session is None:
            raise RuntimeError("UnitOfWork must be used within a context manager")
        return self._session

    @property
    def context(self) -> StoreDbContext:
        """Get current database context (raises if not in context)."""
        if self._context is None:
            raise RuntimeError("UnitOfWork must be used within a context manager")
        return self._context

    @property
    def sales(self) -> SalesRepository:
        """Sales repository for this unit of work."""
        if self._sales is None:
            self._sales = SalesRepository(self.user_info, self.context)
        return self._sales

    async def commit(self) -> int:
        """Commit staged changes and return the affected-row count."""
        return await self.context.commit()

    async def rollback(self):
        """Drop staged changes and roll back the current transaction."""
        self.context.discard_changes()
        await self.session.rollback()

    async def _close(self):
        """Close the session."""
        if self._session is not None:
            await self._session.close()
            self._session = None
            self._context = None
            self._sales = None
