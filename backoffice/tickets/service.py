from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timezone
from typing import Awaitable, Callable, Iterator, Protocol

from backoffice.core.logging import ticket_operation
from backoffice.metrics import MetricsRegistry, create_metrics_registry, track_duration
from backoffice.metrics.definitions import (
    NOTIFICATION_FAILURES,
    TICKET_ASSIGNMENTS,
    TICKET_OPERATION_DURATION,
    TICKET_RESOLUTION_HOURS,
    TICKET_STATUS_CHANGES,
    TICKET_TRANSITION_REJECTIONS,
    TICKET_UNASSIGNMENTS,
    WORKLOAD_CORRECTIONS,
)
from backoffice.security.permissions import Action, Actor, PermissionPolicy

from .errors import (
    EmployeeNotFoundError,
    InvalidTicketTransitionError,
    TechnicianUnavailableError,
    TicketNotAssignedError,
    TicketNotFoundError,
    TicketValidationError,
    WorkloadLimitExceededError,
)
from .models import (
    HandlingStatus,
    Ticket,
    TicketNote,
    TicketOperationResult,
    TechnicianWorkload,
    TicketStatusHistoryEntry,
    WorkloadReconciliation,
)
from .performance import EmployeePerformance, resolution_time_hours
from .state import REOPEN_STATUSES, TicketStateMachine, TicketStatus, workload_delta
from .unit_of_work import TicketUnitOfWork, UnitOfWorkFactory

logger = logging.getLogger(__name__)

TICKETS = "tickets"
TICKET_NOTES = "ticket-notes"
EMPLOYEES = "employees"


class TicketNotifier(Protocol):
    """Outbound channel invoked after a lifecycle change has committed."""

    async def ticket_status_changed(
        self,
        ticket_id: str,
        old_status: TicketStatus,
        new_status: TicketStatus,
        actor_id: str,
    ) -> None:
        ...

    async def ticket_assigned(self, ticket_id: str, assigned_to_id: str, assigned_by_id: str) -> None:
        ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _with_reason(text: str, reason: str | None) -> str:
    return f"{text}. Reason: {reason}" if reason else text


def coerce_status(value: TicketStatus | str) -> TicketStatus:
    """Return ``value`` as a :class:`TicketStatus` or raise a validation error."""

    if isinstance(value, TicketStatus):
        return value
    try:
        return TicketStatus(value)
    except ValueError as exc:
        allowed = ", ".join(status.value for status in TicketStatus)
        raise TicketValidationError(
            "Invalid data",
            errors={"status": [f"Invalid status '{value}'. Expected one of: {allowed}"]},
        ) from exc


class TicketLifecycleService:
    """High level orchestration for ticket status, assignment and workload.

    Every mutating call authorises the actor, validates input, then runs a
    single unit of work. Preconditions that depend on stored state are checked
    after the ticket row is read and before anything is written, so a rejected
    request leaves the store untouched. Notifications go out only after the
    unit of work has committed and never affect the outcome of the call.
    """

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        *,
        policy: PermissionPolicy | None = None,
        notifier: TicketNotifier | None = None,
        state_machine: TicketStateMachine | None = None,
        metrics: MetricsRegistry | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._uow_factory = uow_factory
        self._policy = policy or PermissionPolicy()
        self._notifier = notifier
        self._state_machine = state_machine or TicketStateMachine()
        self._metrics = metrics or create_metrics_registry()
        self._clock = clock or _utcnow

        self._status_changes = self._metrics.counter(TICKET_STATUS_CHANGES, label_names=("from_status", "to_status"))
        self._rejections = self._metrics.counter(TICKET_TRANSITION_REJECTIONS, label_names=("from_status", "to_status"))
        self._assignments = self._metrics.counter(TICKET_ASSIGNMENTS)
        self._unassignments = self._metrics.counter(TICKET_UNASSIGNMENTS)
        self._durations = self._metrics.distribution(TICKET_OPERATION_DURATION, label_names=("operation",))
        self._resolution_hours = self._metrics.distribution(TICKET_RESOLUTION_HOURS)
        self._notification_failures = self._metrics.counter(NOTIFICATION_FAILURES, label_names=("event",))
        self._workload_corrections = self._metrics.counter(WORKLOAD_CORRECTIONS)

    @property
    def metrics(self) -> MetricsRegistry:
        return self._metrics

    async def create_ticket(
        self,
        *,
        title: str,
        actor: Actor,
        description: str = "",
        priority: str = "MEDIUM",
        customer_id: str | None = None,
    ) -> Ticket:
        self._policy.authorize(actor, TICKETS, Action.CREATE)
        if not title or not title.strip():
            raise TicketValidationError("Invalid data", errors={"title": ["Title is required"]})

        now = self._clock()
        ticket = Ticket(
            id=str(uuid.uuid4()),
            title=title.strip(),
            description=description,
            priority=priority,
            status=self._state_machine.initial_state(),
            customer_id=customer_id,
            assigned_to_id=None,
            created_at=now,
            updated_at=now,
        )
        async with self._uow_factory() as uow:
            await uow.tickets.add(ticket)
            await self._append_history(
                uow, ticket.id, None, ticket.status, actor=actor, reason="Ticket created", at=now
            )
        logger.info("Ticket %s created by %s", ticket.id, actor.username)
        return ticket

    async def get_ticket(self, ticket_id: str, *, actor: Actor) -> Ticket:
        self._policy.authorize(actor, TICKETS, Action.READ)
        async with self._uow_factory() as uow:
            return await self._require_ticket(uow, ticket_id)

    async def list_tickets(
        self,
        *,
        actor: Actor,
        status: TicketStatus | str | None = None,
        assigned_to_id: str | None = None,
    ) -> list[Ticket]:
        self._policy.authorize(actor, TICKETS, Action.READ)
        status_filter = coerce_status(status) if status is not None else None
        async with self._uow_factory() as uow:
            return await uow.tickets.list_tickets(status=status_filter, assigned_to_id=assigned_to_id)

    async def change_status(
        self,
        ticket_id: str,
        *,
        status: TicketStatus | str,
        actor: Actor,
        reason: str | None = None,
        resolution_note: str | None = None,
    ) -> TicketOperationResult:
        self._policy.authorize(actor, TICKETS, Action.UPDATE)
        target = coerce_status(status)

        with self._operation("change_status", ticket_id):
            async with self._uow_factory() as uow:
                ticket = await self._require_ticket(uow, ticket_id, for_update=True)
                previous = ticket.status
                if not self._state_machine.can_transition(previous, target):
                    self._rejections.inc(labels={"from_status": previous.value, "to_status": target.value})
                    raise InvalidTicketTransitionError(previous, target)

                now = self._clock()
                completed_at = ticket.completed_at
                if target.is_completed:
                    completed_at = now
                elif completed_at is not None and target in REOPEN_STATUSES:
                    completed_at = None

                updated = await uow.tickets.save(
                    replace(ticket, status=target, completed_at=completed_at, updated_at=now)
                )
                await self._append_history(
                    uow,
                    ticket_id,
                    previous,
                    target,
                    actor=actor,
                    reason=reason or f"Status changed to {target.value}",
                    at=now,
                )
                if resolution_note and target.is_completed:
                    await self._append_note(uow, ticket_id, f"Resolution: {resolution_note}", actor=actor, at=now)
                await self._append_note(
                    uow,
                    ticket_id,
                    _with_reason(f"Status changed from {previous.value} to {target.value}", reason),
                    actor=actor,
                    at=now,
                )

                assignee = ticket.assigned_to_id
                if assignee is not None:
                    delta = workload_delta(target)
                    if delta:
                        await uow.employees.adjust_ticket_count(assignee, delta)
                    if target is TicketStatus.RESOLVED:
                        await self._record_resolution(uow, assignee, ticket.created_at, completed_at, now)

        self._status_changes.inc(labels={"from_status": previous.value, "to_status": target.value})
        logger.info("Ticket %s moved %s -> %s by %s", ticket_id, previous.value, target.value, actor.username)

        if self._notifier is not None:
            notifier = self._notifier
            await self._notify(
                "status_changed",
                lambda: notifier.ticket_status_changed(ticket_id, previous, target, str(actor.employee_id)),
            )
        return TicketOperationResult(ticket=updated, message=f"Ticket status updated to {target.value}")

    async def unassign(self, ticket_id: str, *, actor: Actor, reason: str | None = None) -> TicketOperationResult:
        self._policy.authorize(actor, TICKETS, Action.UPDATE)

        with self._operation("unassign", ticket_id):
            async with self._uow_factory() as uow:
                ticket = await self._require_ticket(uow, ticket_id, for_update=True)
                former_id = ticket.assigned_to_id
                if former_id is None:
                    raise TicketNotAssignedError(ticket_id)

                former = await uow.employees.get(former_id)
                former_name = former.name if former is not None else former_id
                now = self._clock()

                # Unassignment always reopens the ticket, whatever its current status.
                updated = await uow.tickets.save(
                    replace(
                        ticket,
                        assigned_to_id=None,
                        status=TicketStatus.OPEN,
                        completed_at=None,
                        updated_at=now,
                    )
                )
                await uow.employees.adjust_ticket_count(former_id, -1)
                await self._append_history(
                    uow,
                    ticket_id,
                    ticket.status,
                    TicketStatus.OPEN,
                    actor=actor,
                    reason=reason or f"Unassigned from {former_name}",
                    at=now,
                )
                await self._append_note(
                    uow, ticket_id, _with_reason(f"Ticket unassigned from {former_name}", reason), actor=actor, at=now
                )

        self._unassignments.inc()
        logger.info("Ticket %s unassigned from %s by %s", ticket_id, former_id, actor.username)
        return TicketOperationResult(ticket=updated, message=f"Ticket unassigned from {former_name}")

    async def assign(
        self,
        ticket_id: str,
        *,
        technician_id: str,
        actor: Actor,
        reason: str | None = None,
    ) -> TicketOperationResult:
        self._policy.authorize(actor, TICKETS, Action.UPDATE)
        if not technician_id:
            raise TicketValidationError("Invalid data", errors={"assignedToId": ["Technician is required"]})

        with self._operation("assign", ticket_id):
            async with self._uow_factory() as uow:
                ticket = await self._require_ticket(uow, ticket_id, for_update=True)
                if ticket.status is TicketStatus.CLOSED:
                    raise InvalidTicketTransitionError(
                        ticket.status, ticket.status, "Closed tickets cannot be assigned"
                    )

                technician = await uow.employees.get(technician_id, for_update=True)
                if technician is None:
                    raise EmployeeNotFoundError(technician_id, what="Technician")
                if not technician.can_handle_tickets or not technician.is_active:
                    raise TechnicianUnavailableError(
                        "Technician cannot handle tickets",
                        errors={"assignedToId": ["Technician cannot handle tickets"]},
                    )
                if technician.handling_status is HandlingStatus.OFFLINE:
                    raise TechnicianUnavailableError(
                        "Technician is currently offline",
                        errors={"assignedToId": ["Technician is currently offline"]},
                    )

                previous_id = ticket.assigned_to_id
                reassigned = previous_id is not None and previous_id != technician.id
                changes_assignee = previous_id != technician.id
                new_status = TicketStatus.IN_PROGRESS if ticket.status is TicketStatus.OPEN else ticket.status

                if changes_assignee and technician.current_ticket_count >= technician.max_concurrent_tickets:
                    raise WorkloadLimitExceededError(
                        "Technician has reached maximum concurrent tickets "
                        f"({technician.max_concurrent_tickets})",
                        errors={"assignedToId": ["Technician workload limit reached"]},
                    )

                previous_name = None
                if reassigned:
                    previous = await uow.employees.get(previous_id)
                    previous_name = previous.name if previous is not None else previous_id

                now = self._clock()
                updated = await uow.tickets.save(
                    replace(ticket, assigned_to_id=technician.id, status=new_status, updated_at=now)
                )
                if changes_assignee:
                    if previous_id is not None:
                        await uow.employees.adjust_ticket_count(previous_id, -1)
                    await uow.employees.adjust_ticket_count(technician.id, 1)

                await self._append_history(
                    uow,
                    ticket_id,
                    ticket.status,
                    new_status,
                    actor=actor,
                    reason=reason or f"Assigned to {technician.name}",
                    at=now,
                )
                if reassigned:
                    note = f"Ticket reassigned from {previous_name} to {technician.name}"
                else:
                    note = f"Ticket assigned to {technician.name}"
                await self._append_note(uow, ticket_id, _with_reason(note, reason), actor=actor, at=now)

        self._assignments.inc()
        logger.info("Ticket %s assigned to %s by %s", ticket_id, technician.id, actor.username)

        if self._notifier is not None:
            notifier = self._notifier
            await self._notify(
                "assigned",
                lambda: notifier.ticket_assigned(ticket_id, technician.id, str(actor.employee_id)),
            )
        return TicketOperationResult(ticket=updated, message=f"Ticket assigned to {technician.name}")

    async def get_status_history(self, ticket_id: str, *, actor: Actor) -> list[TicketStatusHistoryEntry]:
        self._policy.authorize(actor, TICKETS, Action.READ)
        async with self._uow_factory() as uow:
            await self._require_ticket(uow, ticket_id)
            return await uow.tickets.list_status_history(ticket_id)

    async def list_notes(self, ticket_id: str, *, actor: Actor) -> list[TicketNote]:
        self._policy.authorize(actor, TICKET_NOTES, Action.READ)
        async with self._uow_factory() as uow:
            await self._require_ticket(uow, ticket_id)
            return await uow.tickets.list_notes(ticket_id)

    async def add_note(self, ticket_id: str, *, content: str, actor: Actor) -> TicketNote:
        self._policy.authorize(actor, TICKET_NOTES, Action.CREATE)
        if not content or not content.strip():
            raise TicketValidationError("Invalid data", errors={"note": ["Note content is required"]})

        async with self._uow_factory() as uow:
            await self._require_ticket(uow, ticket_id)
            return await self._append_note(uow, ticket_id, content.strip(), actor=actor, at=self._clock())

    async def get_performance(self, employee_id: str, *, actor: Actor) -> EmployeePerformance:
        self._policy.authorize(actor, EMPLOYEES, Action.READ)
        async with self._uow_factory() as uow:
            performance = await uow.performance.get(employee_id)
        if performance is None:
            raise EmployeeNotFoundError(employee_id, what="Performance metrics for employee")
        return performance

    async def get_workload(self, *, actor: Actor) -> list[TechnicianWorkload]:
        """Live open-ticket load per technician, available technicians first.

        Counts come from the assigned tickets themselves, not the stored
        counters, so the result is correct even when counters have drifted.
        """

        self._policy.authorize(actor, TICKETS, Action.READ)
        async with self._uow_factory() as uow:
            technicians = await uow.employees.list_technicians()
            active = await uow.employees.count_active_by_assignee()

        workloads = [
            TechnicianWorkload(
                employee_id=technician.id,
                name=technician.name,
                handling_status=technician.handling_status,
                active_tickets=active.get(technician.id, 0),
                max_concurrent_tickets=technician.max_concurrent_tickets,
            )
            for technician in technicians
        ]
        workloads.sort(key=lambda workload: (not workload.can_take_more_tickets, workload.workload_percentage))
        return workloads

    async def reconcile_workload(
        self, *, actor: Actor, employee_id: str | None = None
    ) -> list[WorkloadReconciliation]:
        """Overwrite ticket counters with the number of open assigned tickets."""

        self._policy.authorize(actor, EMPLOYEES, Action.UPDATE)
        results: list[WorkloadReconciliation] = []
        async with self._uow_factory() as uow:
            if employee_id is not None:
                employee = await uow.employees.get(employee_id, for_update=True)
                if employee is None:
                    raise EmployeeNotFoundError(employee_id)
                employees = [employee]
            else:
                employees = await uow.employees.list_employees()

            for employee in employees:
                actual = await uow.employees.count_active_assignments(employee.id)
                result = WorkloadReconciliation(
                    employee_id=employee.id,
                    previous_count=employee.current_ticket_count,
                    actual_count=actual,
                )
                if result.drifted:
                    logger.warning(
                        "Ticket counter for employee %s drifted: stored %d, actual %d",
                        employee.id,
                        result.previous_count,
                        actual,
                    )
                    await uow.employees.set_ticket_count(employee.id, actual)
                results.append(result)

        corrected = sum(1 for result in results if result.drifted)
        if corrected:
            self._workload_corrections.inc(corrected)
        return results

    @contextmanager
    def _operation(self, operation: str, ticket_id: str | None = None) -> Iterator[None]:
        with ticket_operation(operation, ticket_id), track_duration(self._durations, labels={"operation": operation}):
            yield

    async def _require_ticket(self, uow: TicketUnitOfWork, ticket_id: str, *, for_update: bool = False) -> Ticket:
        ticket = await uow.tickets.get(ticket_id, for_update=for_update)
        if ticket is None:
            raise TicketNotFoundError(ticket_id)
        return ticket

    async def _record_resolution(
        self,
        uow: TicketUnitOfWork,
        employee_id: str,
        created_at: datetime | None,
        completed_at: datetime | None,
        now: datetime,
    ) -> None:
        hours = resolution_time_hours(created_at, completed_at)
        current = await uow.performance.get(employee_id) or EmployeePerformance.empty(employee_id)
        await uow.performance.save(current.record_resolution(hours, at=now))
        self._resolution_hours.observe(hours)

    async def _append_history(
        self,
        uow: TicketUnitOfWork,
        ticket_id: str,
        from_status: TicketStatus | None,
        to_status: TicketStatus,
        *,
        actor: Actor,
        reason: str,
        at: datetime,
    ) -> TicketStatusHistoryEntry:
        entry = TicketStatusHistoryEntry(
            id=str(uuid.uuid4()),
            ticket_id=ticket_id,
            from_status=from_status,
            to_status=to_status,
            changed_by=str(actor.employee_id),
            reason=reason,
            changed_at=at,
        )
        await uow.tickets.add_status_history(entry)
        return entry

    async def _append_note(
        self, uow: TicketUnitOfWork, ticket_id: str, text: str, *, actor: Actor, at: datetime
    ) -> TicketNote:
        note = TicketNote(
            id=str(uuid.uuid4()),
            ticket_id=ticket_id,
            created_by_id=str(actor.employee_id),
            note=text,
            created_at=at,
        )
        await uow.tickets.add_note(note)
        return note

    async def _notify(self, event: str, send: Callable[[], Awaitable[None]]) -> None:
        try:
            await send()
        except Exception:
            # The change is already committed; delivery problems are reported, not raised.
            logger.exception("Failed to deliver %s notification", event)
            self._notification_failures.inc(labels={"event": event})
