"""Database models and utilities."""

from .models import (
    EmployeePerformanceMetricsTable,
    EmployeeTable,
    NotificationTable,
    TicketNoteTable,
    TicketStatusHistoryTable,
    TicketTable,
)

__all__ = [
    "EmployeePerformanceMetricsTable",
    "EmployeeTable",
    "NotificationTable",
    "TicketNoteTable",
    "TicketStatusHistoryTable",
    "TicketTable",
]
