from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from backoffice.db.models import (
    EmployeePerformanceMetricsTable,
    EmployeeTable,
    TicketNoteTable,
    TicketStatusHistoryTable,
    TicketTable,
)

from .models import Employee, HandlingStatus, Ticket, TicketNote, TicketStatusHistoryEntry
from .performance import EmployeePerformance
from .state import ACTIVE_STATUSES, TicketStatus


class TicketRepository:
    """Data access for tickets and their append-only history and notes."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, ticket_id: str, *, for_update: bool = False) -> Ticket | None:
        statement = select(TicketTable).where(TicketTable.id == ticket_id)
        if for_update:
            statement = statement.with_for_update()
        result = await self._session.execute(statement)
        row = result.scalars().first()
        if row is None:
            return None
        return self._table_to_ticket(row)

    async def list_tickets(
        self,
        *,
        status: TicketStatus | None = None,
        assigned_to_id: str | None = None,
    ) -> list[Ticket]:
        statement = select(TicketTable)
        if status is not None:
            statement = statement.where(TicketTable.status == status.value)
        if assigned_to_id is not None:
            statement = statement.where(TicketTable.assigned_to_id == assigned_to_id)
        result = await self._session.execute(statement.order_by(TicketTable.created_at.desc()))
        return [self._table_to_ticket(row) for row in result.scalars().all()]

    async def add(self, ticket: Ticket) -> None:
        self._session.add(
            TicketTable(
                id=ticket.id,
                title=ticket.title,
                description=ticket.description,
                priority=ticket.priority,
                status=ticket.status.value,
                customer_id=ticket.customer_id,
                assigned_to_id=ticket.assigned_to_id,
                created_at=ticket.created_at,
                updated_at=ticket.updated_at,
                completed_at=ticket.completed_at,
            )
        )
        await self._session.flush()

    async def save(self, ticket: Ticket) -> Ticket:
        """Persist the mutable lifecycle fields of an existing ticket."""

        row = await self._session.get(TicketTable, ticket.id)
        if row is None:
            raise LookupError(f"Ticket {ticket.id} disappeared during the unit of work")
        row.status = ticket.status.value
        row.assigned_to_id = ticket.assigned_to_id
        row.completed_at = ticket.completed_at
        row.updated_at = ticket.updated_at
        await self._session.flush()
        return ticket

    async def add_status_history(self, entry: TicketStatusHistoryEntry) -> None:
        self._session.add(
            TicketStatusHistoryTable(
                id=entry.id,
                ticket_id=entry.ticket_id,
                from_status=entry.from_status.value if entry.from_status else None,
                to_status=entry.to_status.value,
                changed_by=entry.changed_by,
                reason=entry.reason,
                changed_at=entry.changed_at,
            )
        )
        await self._session.flush()

    async def list_status_history(self, ticket_id: str) -> list[TicketStatusHistoryEntry]:
        result = await self._session.execute(
            select(TicketStatusHistoryTable)
            .where(TicketStatusHistoryTable.ticket_id == ticket_id)
            .order_by(TicketStatusHistoryTable.changed_at.asc())
        )
        return [self._table_to_history(row) for row in result.scalars().all()]

    async def add_note(self, note: TicketNote) -> None:
        self._session.add(
            TicketNoteTable(
                id=note.id,
                ticket_id=note.ticket_id,
                created_by_id=note.created_by_id,
                note=note.note,
                created_at=note.created_at,
            )
        )
        await self._session.flush()

    async def list_notes(self, ticket_id: str) -> list[TicketNote]:
        result = await self._session.execute(
            select(TicketNoteTable)
            .where(TicketNoteTable.ticket_id == ticket_id)
            .order_by(TicketNoteTable.created_at.asc())
        )
        return [self._table_to_note(row) for row in result.scalars().all()]

    @staticmethod
    def _table_to_ticket(row: TicketTable) -> Ticket:
        return Ticket(
            id=row.id,
            title=row.title,
            description=row.description,
            priority=row.priority,
            status=TicketStatus(row.status),
            customer_id=row.customer_id,
            assigned_to_id=row.assigned_to_id,
            created_at=_ensure_datetime(row.created_at),
            updated_at=_ensure_datetime(row.updated_at),
            completed_at=_optional_datetime(row.completed_at),
        )

    @staticmethod
    def _table_to_history(row: TicketStatusHistoryTable) -> TicketStatusHistoryEntry:
        from_status = row.from_status
        return TicketStatusHistoryEntry(
            id=row.id,
            ticket_id=row.ticket_id,
            from_status=TicketStatus(from_status) if from_status else None,
            to_status=TicketStatus(row.to_status),
            changed_by=row.changed_by,
            reason=row.reason or "",
            changed_at=_ensure_datetime(row.changed_at),
        )

    @staticmethod
    def _table_to_note(row: TicketNoteTable) -> TicketNote:
        return TicketNote(
            id=row.id,
            ticket_id=row.ticket_id,
            created_by_id=row.created_by_id,
            note=row.note,
            created_at=_ensure_datetime(row.created_at),
        )


class EmployeeRepository:
    """Data access for technicians and their workload counters."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, employee_id: str, *, for_update: bool = False) -> Employee | None:
        statement = select(EmployeeTable).where(EmployeeTable.id == employee_id)
        if for_update:
            statement = statement.with_for_update()
        result = await self._session.execute(statement)
        row = result.scalars().first()
        if row is None:
            return None
        return self._table_to_employee(row)

    async def list_employees(self) -> list[Employee]:
        result = await self._session.execute(select(EmployeeTable).order_by(EmployeeTable.name))
        return [self._table_to_employee(row) for row in result.scalars().all()]

    async def list_technicians(self) -> list[Employee]:
        """Active employees that may be assigned tickets, by name."""

        result = await self._session.execute(
            select(EmployeeTable)
            .where(EmployeeTable.is_active.is_(True))
            .where(EmployeeTable.can_handle_tickets.is_(True))
            .order_by(EmployeeTable.name)
        )
        return [self._table_to_employee(row) for row in result.scalars().all()]

    async def adjust_ticket_count(self, employee_id: str, delta: int) -> None:
        """Apply ``delta`` to the counter as a single store-side update."""

        await self._session.execute(
            update(EmployeeTable)
            .where(EmployeeTable.id == employee_id)
            .values(
                current_ticket_count=EmployeeTable.current_ticket_count + delta,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )

    async def set_ticket_count(self, employee_id: str, count: int) -> None:
        await self._session.execute(
            update(EmployeeTable)
            .where(EmployeeTable.id == employee_id)
            .values(current_ticket_count=count, updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )

    async def count_active_assignments(self, employee_id: str) -> int:
        result = await self._session.execute(
            select(func.count())
            .select_from(TicketTable)
            .where(TicketTable.assigned_to_id == employee_id)
            .where(TicketTable.status.in_([status.value for status in ACTIVE_STATUSES]))
        )
        return int(result.scalar_one())

    async def count_active_by_assignee(self) -> dict[str, int]:
        result = await self._session.execute(
            select(TicketTable.assigned_to_id, func.count())
            .where(TicketTable.assigned_to_id.is_not(None))
            .where(TicketTable.status.in_([status.value for status in ACTIVE_STATUSES]))
            .group_by(TicketTable.assigned_to_id)
        )
        return {assignee: int(count) for assignee, count in result.all()}

    @staticmethod
    def _table_to_employee(row: EmployeeTable) -> Employee:
        return Employee(
            id=row.id,
            name=row.name,
            role=row.role,
            is_active=bool(row.is_active),
            can_handle_tickets=bool(row.can_handle_tickets),
            handling_status=HandlingStatus(row.handling_status),
            max_concurrent_tickets=row.max_concurrent_tickets,
            current_ticket_count=row.current_ticket_count,
        )


class PerformanceRepository:
    """Data access for the ``employee_performance_metrics`` table."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, employee_id: str) -> EmployeePerformance | None:
        row = await self._get_row(employee_id)
        if row is None:
            return None
        return self._table_to_performance(row)

    async def save(self, performance: EmployeePerformance) -> EmployeePerformance:
        row = await self._get_row(performance.employee_id)
        if row is None:
            row = EmployeePerformanceMetricsTable(employee_id=performance.employee_id)
            self._session.add(row)

        row.total_tickets_resolved = performance.total_tickets_resolved
        row.average_resolution_time = performance.average_resolution_time
        row.tickets_resolved_this_month = performance.tickets_resolved_this_month
        row.last_updated = performance.last_updated or datetime.now(timezone.utc)
        await self._session.flush()
        return performance

    async def _get_row(self, employee_id: str) -> EmployeePerformanceMetricsTable | None:
        result = await self._session.execute(
            select(EmployeePerformanceMetricsTable).where(EmployeePerformanceMetricsTable.employee_id == employee_id)
        )
        return result.scalars().first()

    @staticmethod
    def _table_to_performance(row: EmployeePerformanceMetricsTable) -> EmployeePerformance:
        return EmployeePerformance(
            employee_id=row.employee_id,
            total_tickets_resolved=row.total_tickets_resolved,
            average_resolution_time=float(row.average_resolution_time),
            tickets_resolved_this_month=row.tickets_resolved_this_month,
            last_updated=_optional_datetime(row.last_updated),
        )


def _ensure_datetime(value: datetime | None) -> datetime:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value
    raise TypeError("Expected datetime value from database")


def _optional_datetime(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    return _ensure_datetime(value)
