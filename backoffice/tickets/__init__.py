"""Ticket lifecycle domain models and services."""

from .errors import (
    EmployeeNotFoundError,
    InvalidTicketTransitionError,
    ResourceNotFoundError,
    StoreConflictError,
    TechnicianUnavailableError,
    TicketNotAssignedError,
    TicketNotFoundError,
    TicketServiceError,
    TicketValidationError,
    WorkloadLimitExceededError,
)
from .models import (
    Employee,
    HandlingStatus,
    TechnicianWorkload,
    Ticket,
    TicketNote,
    TicketOperationResult,
    TicketStatusHistoryEntry,
)
from .performance import EmployeePerformance
from .service import TicketLifecycleService, TicketNotifier
from .state import TicketStateMachine, TicketStatus
from .unit_of_work import SqlAlchemyUnitOfWork, sqlalchemy_unit_of_work_factory

__all__ = [
    "Employee",
    "EmployeeNotFoundError",
    "EmployeePerformance",
    "HandlingStatus",
    "InvalidTicketTransitionError",
    "ResourceNotFoundError",
    "SqlAlchemyUnitOfWork",
    "StoreConflictError",
    "TechnicianUnavailableError",
    "TechnicianWorkload",
    "Ticket",
    "TicketLifecycleService",
    "TicketNotAssignedError",
    "TicketNote",
    "TicketNotFoundError",
    "TicketNotifier",
    "TicketOperationResult",
    "TicketServiceError",
    "TicketStateMachine",
    "TicketStatus",
    "TicketStatusHistoryEntry",
    "TicketValidationError",
    "WorkloadLimitExceededError",
    "sqlalchemy_unit_of_work_factory",
]
