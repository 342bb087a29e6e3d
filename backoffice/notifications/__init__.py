"""Notification sinks for committed ticket changes."""

from .service import (
    DatabaseTicketNotifier,
    LoggingTicketNotifier,
    NotificationChannel,
    NotificationType,
    RecipientType,
)

__all__ = [
    "DatabaseTicketNotifier",
    "LoggingTicketNotifier",
    "NotificationChannel",
    "NotificationType",
    "RecipientType",
]
