from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from backoffice.db.models import EmployeeTable, NotificationTable, TicketTable
from backoffice.tickets.state import TicketStatus

from . import templates
from .templates import NotificationTemplate

logger = logging.getLogger(__name__)


class NotificationType(str, Enum):
    TICKET_UPDATE = "TICKET_UPDATE"
    ASSIGNMENT = "ASSIGNMENT"
    ESCALATION = "ESCALATION"
    SYSTEM_ALERT = "SYSTEM_ALERT"


class RecipientType(str, Enum):
    CUSTOMER = "CUSTOMER"
    EMPLOYEE = "EMPLOYEE"


class NotificationChannel(str, Enum):
    EMAIL = "EMAIL"
    SMS = "SMS"
    IN_APP = "IN_APP"


class LoggingTicketNotifier:
    """Notifier that only records events in the application log."""

    async def ticket_status_changed(
        self,
        ticket_id: str,
        old_status: TicketStatus,
        new_status: TicketStatus,
        actor_id: str,
    ) -> None:
        logger.info(
            "Ticket %s status changed %s -> %s by %s", ticket_id, old_status.value, new_status.value, actor_id
        )

    async def ticket_assigned(self, ticket_id: str, assigned_to_id: str, assigned_by_id: str) -> None:
        logger.info("Ticket %s assigned to %s by %s", ticket_id, assigned_to_id, assigned_by_id)


class DatabaseTicketNotifier:
    """Persist in-app notifications for customers and technicians.

    Runs in its own transaction, after the lifecycle change has committed.
    In-app notifications are marked ``SENT`` immediately; other channels stay
    ``PENDING`` for an external delivery worker.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        channel: NotificationChannel = NotificationChannel.IN_APP,
    ) -> None:
        self._session_factory = session_factory
        self._channel = channel

    async def ticket_status_changed(
        self,
        ticket_id: str,
        old_status: TicketStatus,
        new_status: TicketStatus,
        actor_id: str,
    ) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                ticket = await session.get(TicketTable, ticket_id)
                if ticket is None:
                    logger.warning("Skipping status notification for missing ticket %s", ticket_id)
                    return

                template = templates.ticket_status_changed(ticket.title, old_status.value, new_status.value)
                if ticket.customer_id:
                    self._add(session, ticket.customer_id, RecipientType.CUSTOMER, template)
                if ticket.assigned_to_id and ticket.assigned_to_id != actor_id:
                    self._add(session, ticket.assigned_to_id, RecipientType.EMPLOYEE, template)
                if new_status is TicketStatus.RESOLVED and ticket.customer_id:
                    self._add(
                        session, ticket.customer_id, RecipientType.CUSTOMER, templates.ticket_resolved(ticket.title)
                    )

    async def ticket_assigned(self, ticket_id: str, assigned_to_id: str, assigned_by_id: str) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                ticket = await session.get(TicketTable, ticket_id)
                technician = await session.get(EmployeeTable, assigned_to_id)
                if ticket is None or technician is None:
                    logger.warning("Skipping assignment notification for ticket %s", ticket_id)
                    return

                self._add(
                    session,
                    assigned_to_id,
                    RecipientType.EMPLOYEE,
                    templates.assignment_received(ticket.title),
                    notification_type=NotificationType.ASSIGNMENT,
                )
                if ticket.customer_id:
                    self._add(
                        session,
                        ticket.customer_id,
                        RecipientType.CUSTOMER,
                        templates.ticket_assigned(ticket.title, technician.name),
                        notification_type=NotificationType.ASSIGNMENT,
                    )

    def _add(
        self,
        session: AsyncSession,
        recipient_id: str,
        recipient_type: RecipientType,
        template: NotificationTemplate,
        *,
        notification_type: NotificationType = NotificationType.TICKET_UPDATE,
    ) -> None:
        now = datetime.now(timezone.utc)
        in_app = self._channel is NotificationChannel.IN_APP
        session.add(
            NotificationTable(
                type=notification_type.value,
                recipient_id=recipient_id,
                recipient_type=recipient_type.value,
                title=template.title,
                message=template.message,
                channel=self._channel.value,
                status="SENT" if in_app else "PENDING",
                created_at=now,
                sent_at=now if in_app else None,
            )
        )
