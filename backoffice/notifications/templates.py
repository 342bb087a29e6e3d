from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class NotificationTemplate:
    title: str
    message: str


def ticket_status_changed(ticket_title: str, old_status: str, new_status: str) -> NotificationTemplate:
    return NotificationTemplate(
        title="Ticket Status Updated",
        message=f'Ticket "{ticket_title}" status changed from {old_status} to {new_status}.',
    )


def ticket_resolved(ticket_title: str) -> NotificationTemplate:
    return NotificationTemplate(
        title="Ticket Resolved",
        message=f'Your ticket "{ticket_title}" has been resolved. Please provide feedback on the service.',
    )


def ticket_assigned(ticket_title: str, technician_name: str) -> NotificationTemplate:
    return NotificationTemplate(
        title="Ticket Assigned",
        message=f'Ticket "{ticket_title}" has been assigned to {technician_name}.',
    )


def assignment_received(ticket_title: str) -> NotificationTemplate:
    return NotificationTemplate(
        title="New Ticket Assignment",
        message=f'You have been assigned a new ticket "{ticket_title}".',
    )
