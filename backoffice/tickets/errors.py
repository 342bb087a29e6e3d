from __future__ import annotations

from typing import Mapping

from .state import TicketStatus


class TicketServiceError(RuntimeError):
    """Base error for ticket service issues."""

    kind = "TicketServiceError"


class ResourceNotFoundError(TicketServiceError):
    """Raised when a referenced record does not exist."""

    kind = "NotFound"


class TicketNotFoundError(ResourceNotFoundError):
    """Raised when a ticket could not be located."""

    def __init__(self, ticket_id: str) -> None:
        super().__init__(f"Ticket {ticket_id} not found")
        self.ticket_id = ticket_id


class EmployeeNotFoundError(ResourceNotFoundError):
    """Raised when an employee (or their metrics) could not be located."""

    def __init__(self, employee_id: str, *, what: str = "Employee") -> None:
        super().__init__(f"{what} {employee_id} not found")
        self.employee_id = employee_id


class TicketNotAssignedError(TicketServiceError):
    """Raised when unassigning a ticket that has no technician."""

    kind = "NotAssigned"

    def __init__(self, ticket_id: str) -> None:
        super().__init__("Ticket is not assigned to anyone")
        self.ticket_id = ticket_id


class InvalidTicketTransitionError(TicketServiceError):
    """Raised when attempting to transition to an invalid state."""

    kind = "InvalidTransition"

    def __init__(self, current: TicketStatus, target: TicketStatus, message: str | None = None) -> None:
        super().__init__(message or f"Cannot change status from {current.value} to {target.value}")
        self.current = current
        self.target = target


class TicketValidationError(TicketServiceError):
    """Raised when input is malformed or violates a business precondition."""

    kind = "ValidationError"

    def __init__(self, message: str, *, errors: Mapping[str, list[str]] | None = None) -> None:
        super().__init__(message)
        self.errors = dict(errors or {})


class TechnicianUnavailableError(TicketValidationError):
    """Raised when the selected technician cannot take tickets."""


class WorkloadLimitExceededError(TicketValidationError):
    """Raised when an assignment would exceed the technician's limit."""


class StoreConflictError(TicketServiceError):
    """Raised when the data store aborts the unit of work."""

    kind = "StoreConflict"
