from __future__ import annotations

import logging
from types import TracebackType
from typing import Callable, Protocol

from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .errors import StoreConflictError
from .repository import EmployeeRepository, PerformanceRepository, TicketRepository

logger = logging.getLogger(__name__)


class TicketUnitOfWork(Protocol):
    """Transaction boundary exposing the repositories touched by one request."""

    tickets: TicketRepository
    employees: EmployeeRepository
    performance: PerformanceRepository

    async def __aenter__(self) -> "TicketUnitOfWork":
        ...

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> bool:
        ...


UnitOfWorkFactory = Callable[[], TicketUnitOfWork]


class SqlAlchemyUnitOfWork:
    """Run every repository call on one session and commit or roll back once.

    A clean exit from the ``async with`` block commits; any exception rolls the
    whole session back. Driver level failures (serialisation aborts, deadlocks,
    constraint violations) are re-raised as :class:`StoreConflictError`.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory
        self._session: AsyncSession | None = None

    @property
    def session(self) -> AsyncSession:
        if self._session is None:
            raise RuntimeError("Unit of work has not been entered")
        return self._session

    async def __aenter__(self) -> "SqlAlchemyUnitOfWork":
        if self._session is not None:
            raise RuntimeError("Unit of work is already active")
        self._session = self._session_factory()
        self.tickets = TicketRepository(self._session)
        self.employees = EmployeeRepository(self._session)
        self.performance = PerformanceRepository(self._session)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> bool:
        session = self.session
        try:
            if exc_type is None:
                await session.commit()
            else:
                await session.rollback()
        except DBAPIError as error:
            logger.warning("Unit of work aborted by the store: %s", error.orig)
            await session.rollback()
            raise StoreConflictError(f"Transaction aborted by the data store: {error.orig}") from error
        finally:
            await session.close()
            self._session = None

        if isinstance(exc, DBAPIError):
            logger.warning("Unit of work rolled back after store error: %s", exc.orig)
            raise StoreConflictError(f"Transaction aborted by the data store: {exc.orig}") from exc
        return False


def sqlalchemy_unit_of_work_factory(session_factory: async_sessionmaker[AsyncSession]) -> UnitOfWorkFactory:
    """Return a factory creating a fresh unit of work per operation."""

    def factory() -> SqlAlchemyUnitOfWork:
        return SqlAlchemyUnitOfWork(session_factory)

    return factory
