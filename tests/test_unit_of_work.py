from __future__ import annotations

from datetime import datetime, timezone

import pytest

from backoffice.tickets import SqlAlchemyUnitOfWork, StoreConflictError, Ticket, TicketStatus


def _ticket(ticket_id: str) -> Ticket:
    now = datetime.now(timezone.utc)
    return Ticket(
        id=ticket_id,
        title="Router reboot loop",
        description="",
        priority="HIGH",
        status=TicketStatus.OPEN,
        customer_id=None,
        assigned_to_id=None,
        created_at=now,
        updated_at=now,
    )


@pytest.mark.asyncio
async def test_clean_exit_commits(session_factory, seed):
    async with SqlAlchemyUnitOfWork(session_factory) as uow:
        await uow.tickets.add(_ticket("t-commit"))

    assert (await seed.load_ticket("t-commit")).title == "Router reboot loop"


@pytest.mark.asyncio
async def test_exception_rolls_back_every_write(session_factory, seed):
    technician_id = await seed.employee(current_ticket_count=2)

    with pytest.raises(RuntimeError):
        async with SqlAlchemyUnitOfWork(session_factory) as uow:
            await uow.tickets.add(_ticket("t-rollback"))
            await uow.employees.adjust_ticket_count(technician_id, -1)
            raise RuntimeError("boom")

    async with SqlAlchemyUnitOfWork(session_factory) as uow:
        assert await uow.tickets.get("t-rollback") is None
    assert (await seed.load_employee(technician_id)).current_ticket_count == 2


@pytest.mark.asyncio
async def test_store_errors_become_conflicts(session_factory, seed):
    ticket_id = await seed.ticket()

    with pytest.raises(StoreConflictError) as exc:
        async with SqlAlchemyUnitOfWork(session_factory) as uow:
            await uow.tickets.add(_ticket(ticket_id))

    assert exc.value.kind == "StoreConflict"


@pytest.mark.asyncio
async def test_session_is_only_available_inside_block(session_factory):
    uow = SqlAlchemyUnitOfWork(session_factory)
    with pytest.raises(RuntimeError):
        _ = uow.session
