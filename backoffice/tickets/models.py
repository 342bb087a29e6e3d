from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from .state import TicketStatus


class HandlingStatus(str, Enum):
    """Availability of a technician for new assignments."""

    AVAILABLE = "AVAILABLE"
    BUSY = "BUSY"
    OFFLINE = "OFFLINE"


@dataclass(slots=True)
class Ticket:
    """Aggregate representing a customer support ticket."""

    id: str
    title: str
    description: str
    priority: str
    status: TicketStatus
    customer_id: str | None
    assigned_to_id: str | None
    created_at: datetime
    updated_at: datetime
    completed_at: datetime | None = None


@dataclass(slots=True)
class Employee:
    """Staff member that may be assigned tickets."""

    id: str
    name: str
    role: str
    is_active: bool
    can_handle_tickets: bool
    handling_status: HandlingStatus
    max_concurrent_tickets: int
    current_ticket_count: int


@dataclass(slots=True)
class TicketStatusHistoryEntry:
    """Append-only record of a ticket status change."""

    id: str
    ticket_id: str
    from_status: TicketStatus | None
    to_status: TicketStatus
    changed_by: str
    reason: str
    changed_at: datetime


@dataclass(slots=True)
class TicketNote:
    """Free-text note attached to a ticket."""

    id: str
    ticket_id: str
    created_by_id: str
    note: str
    created_at: datetime


@dataclass(slots=True)
class TicketOperationResult:
    """Outcome returned by lifecycle operations."""

    ticket: Ticket
    message: str


@dataclass(slots=True)
class WorkloadReconciliation:
    """Counter correction applied to a single technician."""

    employee_id: str
    previous_count: int
    actual_count: int

    @property
    def drifted(self) -> bool:
        return self.previous_count != self.actual_count


@dataclass(slots=True)
class TechnicianWorkload:
    """Open ticket load of a technician measured against their limit."""

    employee_id: str
    name: str
    handling_status: HandlingStatus
    active_tickets: int
    max_concurrent_tickets: int

    @property
    def workload_percentage(self) -> int:
        if self.max_concurrent_tickets <= 0:
            return 100
        return round(self.active_tickets * 100 / self.max_concurrent_tickets)

    @property
    def available_slots(self) -> int:
        return self.max_concurrent_tickets - self.active_tickets

    @property
    def can_take_more_tickets(self) -> bool:
        return self.available_slots > 0 and self.handling_status is HandlingStatus.AVAILABLE
