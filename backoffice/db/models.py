"""SQLModel table definitions for the back-office data layer."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlmodel import Field, SQLModel


def _utcnow() -> datetime:
    """Return a timezone aware UTC timestamp."""

    return datetime.now(timezone.utc)


def _uuid_str() -> str:
    """Generate a random UUID string."""

    return str(uuid.uuid4())


class EmployeeTable(SQLModel, table=True):
    """Staff members, including technicians that handle tickets."""

    __tablename__ = "employees"

    id: str = Field(default_factory=_uuid_str, primary_key=True, index=True)
    name: str = Field(sa_column=Column(String(255), nullable=False))
    role: str = Field(default="TECHNICIAN", sa_column=Column(String(50), nullable=False))
    is_active: bool = Field(default=True, sa_column=Column(Boolean, nullable=False, default=True))
    can_handle_tickets: bool = Field(default=False, sa_column=Column(Boolean, nullable=False, default=False))
    handling_status: str = Field(default="AVAILABLE", sa_column=Column(String(50), nullable=False))
    max_concurrent_tickets: int = Field(default=5, sa_column=Column(Integer, nullable=False, default=5))
    current_ticket_count: int = Field(default=0, sa_column=Column(Integer, nullable=False, default=0))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class TicketTable(SQLModel, table=True):
    """Customer support tickets."""

    __tablename__ = "tickets"

    id: str = Field(default_factory=_uuid_str, primary_key=True, index=True)
    title: str = Field(sa_column=Column(String(255), nullable=False))
    description: str = Field(default="", sa_column=Column(Text, nullable=False))
    priority: str = Field(default="MEDIUM", sa_column=Column(String(50), nullable=False))
    status: str = Field(default="OPEN", sa_column=Column(String(50), nullable=False, index=True))
    customer_id: str | None = Field(default=None, sa_column=Column(String(36), nullable=True))
    assigned_to_id: str | None = Field(
        default=None,
        sa_column=Column(String(36), ForeignKey("employees.id", ondelete="SET NULL"), nullable=True, index=True),
    )
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
    completed_at: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))


class TicketStatusHistoryTable(SQLModel, table=True):
    """Append-only audit trail of ticket status changes."""

    __tablename__ = "ticket_status_history"

    id: str = Field(default_factory=_uuid_str, primary_key=True, index=True)
    ticket_id: str = Field(
        sa_column=Column(String(36), ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False, index=True)
    )
    from_status: str | None = Field(default=None, sa_column=Column(String(50), nullable=True))
    to_status: str = Field(sa_column=Column(String(50), nullable=False))
    changed_by: str = Field(sa_column=Column(String(36), ForeignKey("employees.id"), nullable=False))
    reason: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    changed_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class TicketNoteTable(SQLModel, table=True):
    """Free-text notes written against a ticket."""

    __tablename__ = "ticket_notes"

    id: str = Field(default_factory=_uuid_str, primary_key=True, index=True)
    ticket_id: str = Field(
        sa_column=Column(String(36), ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False, index=True)
    )
    created_by_id: str = Field(sa_column=Column(String(36), ForeignKey("employees.id"), nullable=False))
    note: str = Field(sa_column=Column(Text, nullable=False))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class EmployeePerformanceMetricsTable(SQLModel, table=True):
    """Rolling resolution statistics, one row per technician."""

    __tablename__ = "employee_performance_metrics"

    id: str = Field(default_factory=_uuid_str, primary_key=True, index=True)
    employee_id: str = Field(
        sa_column=Column(
            String(36), ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, unique=True
        )
    )
    total_tickets_resolved: int = Field(default=0, sa_column=Column(Integer, nullable=False, default=0))
    average_resolution_time: float = Field(default=0.0, sa_column=Column(Float, nullable=False, default=0.0))
    tickets_resolved_this_month: int = Field(default=0, sa_column=Column(Integer, nullable=False, default=0))
    last_updated: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class NotificationTable(SQLModel, table=True):
    """Outbound notifications addressed to customers or employees."""

    __tablename__ = "notifications"

    id: str = Field(default_factory=_uuid_str, primary_key=True, index=True)
    type: str = Field(sa_column=Column(String(50), nullable=False))
    recipient_id: str = Field(sa_column=Column(String(36), nullable=False, index=True))
    recipient_type: str = Field(sa_column=Column(String(50), nullable=False))
    title: str = Field(sa_column=Column(String(255), nullable=False))
    message: str = Field(sa_column=Column(Text, nullable=False))
    channel: str = Field(default="IN_APP", sa_column=Column(String(50), nullable=False))
    status: str = Field(default="PENDING", sa_column=Column(String(50), nullable=False))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
    sent_at: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))
