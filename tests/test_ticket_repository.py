from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from backoffice.tickets import HandlingStatus, TicketStatus
from backoffice.tickets.performance import EmployeePerformance
from backoffice.tickets.repository import EmployeeRepository, PerformanceRepository, TicketRepository


@pytest.mark.asyncio
async def test_get_maps_row_to_aware_ticket(session_factory, seed):
    ticket_id = await seed.ticket(status="PENDING", customer_id="cust-3")

    async with session_factory() as session:
        ticket = await TicketRepository(session).get(ticket_id, for_update=True)

    assert ticket is not None
    assert ticket.status is TicketStatus.PENDING
    assert ticket.customer_id == "cust-3"
    assert ticket.created_at.tzinfo is not None


@pytest.mark.asyncio
async def test_list_tickets_filters_by_status_and_assignee(session_factory, seed):
    technician_id = await seed.employee()
    now = datetime.now(timezone.utc)
    older = await seed.ticket(status="OPEN", assigned_to_id=technician_id, created_at=now - timedelta(hours=1))
    newer = await seed.ticket(status="OPEN", assigned_to_id=technician_id, created_at=now)
    await seed.ticket(status="CLOSED", assigned_to_id=technician_id)
    await seed.ticket(status="OPEN")

    async with session_factory() as session:
        tickets = await TicketRepository(session).list_tickets(
            status=TicketStatus.OPEN, assigned_to_id=technician_id
        )

    assert [ticket.id for ticket in tickets] == [newer, older]


@pytest.mark.asyncio
async def test_adjust_ticket_count_is_relative(session_factory, seed):
    technician_id = await seed.employee(current_ticket_count=4, handling_status="BUSY")

    async with session_factory() as session:
        repository = EmployeeRepository(session)
        await repository.adjust_ticket_count(technician_id, -1)
        await repository.adjust_ticket_count(technician_id, -1)
        await session.commit()

    employee = await seed.load_employee(technician_id)
    assert employee.current_ticket_count == 2

    async with session_factory() as session:
        loaded = await EmployeeRepository(session).get(technician_id)
    assert loaded is not None
    assert loaded.handling_status is HandlingStatus.BUSY


@pytest.mark.asyncio
async def test_count_active_assignments_ignores_completed(session_factory, seed):
    technician_id = await seed.employee()
    for status in ("OPEN", "IN_PROGRESS", "PENDING", "RESOLVED", "CLOSED"):
        await seed.ticket(status=status, assigned_to_id=technician_id)

    async with session_factory() as session:
        count = await EmployeeRepository(session).count_active_assignments(technician_id)

    assert count == 3


@pytest.mark.asyncio
async def test_performance_save_creates_then_updates(session_factory, seed):
    technician_id = await seed.employee()
    now = datetime.now(timezone.utc)

    async with session_factory() as session:
        repository = PerformanceRepository(session)
        assert await repository.get(technician_id) is None
        await repository.save(EmployeePerformance.empty(technician_id).record_resolution(2.0, at=now))
        await session.commit()

    async with session_factory() as session:
        repository = PerformanceRepository(session)
        current = await repository.get(technician_id)
        assert current is not None
        await repository.save(current.record_resolution(4.0, at=now))
        await session.commit()
        updated = await repository.get(technician_id)

    assert updated is not None
    assert updated.total_tickets_resolved == 2
    assert updated.average_resolution_time == pytest.approx(3.0)


@pytest.mark.asyncio
async def test_list_technicians_skips_inactive_and_non_handling_staff(session_factory, seed):
    zoe = await seed.employee(name="Zoe")
    adam = await seed.employee(name="Adam", handling_status="BUSY")
    await seed.employee(name="Former", is_active=False)
    await seed.employee(name="Clerk", can_handle_tickets=False)

    async with session_factory() as session:
        technicians = await EmployeeRepository(session).list_technicians()

    assert [technician.id for technician in technicians] == [adam, zoe]
    assert technicians[0].handling_status is HandlingStatus.BUSY


@pytest.mark.asyncio
async def test_count_active_by_assignee_ignores_completed_and_unassigned(session_factory, seed):
    first = await seed.employee(name="First")
    second = await seed.employee(name="Second")
    for status in ("OPEN", "IN_PROGRESS", "PENDING", "RESOLVED"):
        await seed.ticket(status=status, assigned_to_id=first)
    await seed.ticket(status="CLOSED", assigned_to_id=second)
    await seed.ticket(status="OPEN")

    async with session_factory() as session:
        counts = await EmployeeRepository(session).count_active_by_assignee()

    assert counts == {first: 3}
