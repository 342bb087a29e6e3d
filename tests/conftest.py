from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, select

from backoffice.db.models import EmployeeTable, TicketNoteTable, TicketStatusHistoryTable, TicketTable
from backoffice.security import Actor, Role

ADMIN_EMPLOYEE_ID = "emp-admin"


class FixedClock:
    """Callable clock that tests can move forward explicitly."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class Seeder:
    """Insert and read rows outside of the service under test."""

    def __init__(self, session_factory: async_sessionmaker) -> None:
        self._session_factory = session_factory

    async def employee(
        self,
        *,
        employee_id: str | None = None,
        name: str = "Tech One",
        role: str = "TECHNICIAN",
        is_active: bool = True,
        can_handle_tickets: bool = True,
        handling_status: str = "AVAILABLE",
        max_concurrent_tickets: int = 5,
        current_ticket_count: int = 0,
    ) -> str:
        employee_id = employee_id or str(uuid.uuid4())
        async with self._session_factory() as session:
            session.add(
                EmployeeTable(
                    id=employee_id,
                    name=name,
                    role=role,
                    is_active=is_active,
                    can_handle_tickets=can_handle_tickets,
                    handling_status=handling_status,
                    max_concurrent_tickets=max_concurrent_tickets,
                    current_ticket_count=current_ticket_count,
                )
            )
            await session.commit()
        return employee_id

    async def ticket(
        self,
        *,
        ticket_id: str | None = None,
        title: str = "No internet",
        status: str = "OPEN",
        assigned_to_id: str | None = None,
        customer_id: str | None = "cust-1",
        created_at: datetime | None = None,
        completed_at: datetime | None = None,
    ) -> str:
        ticket_id = ticket_id or str(uuid.uuid4())
        created_at = created_at or datetime.now(timezone.utc)
        async with self._session_factory() as session:
            session.add(
                TicketTable(
                    id=ticket_id,
                    title=title,
                    description="Customer reports an outage",
                    status=status,
                    customer_id=customer_id,
                    assigned_to_id=assigned_to_id,
                    created_at=created_at,
                    updated_at=created_at,
                    completed_at=completed_at,
                )
            )
            await session.commit()
        return ticket_id

    async def load_ticket(self, ticket_id: str) -> TicketTable:
        async with self._session_factory() as session:
            row = await session.get(TicketTable, ticket_id)
        assert row is not None
        return row

    async def load_employee(self, employee_id: str) -> EmployeeTable:
        async with self._session_factory() as session:
            row = await session.get(EmployeeTable, employee_id)
        assert row is not None
        return row

    async def history(self, ticket_id: str) -> list[TicketStatusHistoryTable]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(TicketStatusHistoryTable).where(TicketStatusHistoryTable.ticket_id == ticket_id)
            )
            return list(result.scalars().all())

    async def notes(self, ticket_id: str) -> list[str]:
        async with self._session_factory() as session:
            result = await session.execute(select(TicketNoteTable).where(TicketNoteTable.ticket_id == ticket_id))
            return [row.note for row in result.scalars().all()]


@pytest_asyncio.fixture
async def engine() -> AsyncEngine:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def seed(session_factory: async_sessionmaker) -> Seeder:
    seeder = Seeder(session_factory)
    await seeder.employee(employee_id=ADMIN_EMPLOYEE_ID, name="Admin", role="ADMIN", can_handle_tickets=False)
    return seeder


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2024, 5, 10, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def admin_actor() -> Actor:
    return Actor(username="admin", role=Role.ADMIN, employee_id=ADMIN_EMPLOYEE_ID)
