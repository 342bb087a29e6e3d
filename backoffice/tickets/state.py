from __future__ import annotations

from enum import Enum
from typing import Mapping


class TicketStatus(str, Enum):
    """Supported states for a ticket's lifecycle."""

    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    PENDING = "PENDING"
    RESOLVED = "RESOLVED"
    CLOSED = "CLOSED"

    @property
    def is_completed(self) -> bool:
        return self in COMPLETED_STATUSES


COMPLETED_STATUSES: frozenset[TicketStatus] = frozenset({TicketStatus.RESOLVED, TicketStatus.CLOSED})
ACTIVE_STATUSES: frozenset[TicketStatus] = frozenset(
    {TicketStatus.OPEN, TicketStatus.IN_PROGRESS, TicketStatus.PENDING}
)
REOPEN_STATUSES: frozenset[TicketStatus] = frozenset({TicketStatus.IN_PROGRESS, TicketStatus.PENDING})


class TicketStateMachine:
    """Validate ticket lifecycle transitions."""

    _DEFAULT_TRANSITIONS: Mapping[TicketStatus, frozenset[TicketStatus]] = {
        TicketStatus.OPEN: frozenset({TicketStatus.IN_PROGRESS, TicketStatus.CLOSED}),
        TicketStatus.IN_PROGRESS: frozenset({TicketStatus.PENDING, TicketStatus.RESOLVED, TicketStatus.OPEN}),
        TicketStatus.PENDING: frozenset({TicketStatus.IN_PROGRESS, TicketStatus.RESOLVED}),
        TicketStatus.RESOLVED: frozenset({TicketStatus.CLOSED, TicketStatus.IN_PROGRESS}),
        TicketStatus.CLOSED: frozenset(),
    }

    def __init__(self, transitions: Mapping[TicketStatus, frozenset[TicketStatus]] | None = None) -> None:
        self._transitions = transitions or self._DEFAULT_TRANSITIONS

    @staticmethod
    def initial_state() -> TicketStatus:
        return TicketStatus.OPEN

    def allowed_targets(self, current: TicketStatus) -> frozenset[TicketStatus]:
        return self._transitions.get(current, frozenset())

    def can_transition(self, current: TicketStatus, target: TicketStatus) -> bool:
        # Same-status requests are not listed, so they are rejected too.
        return target in self.allowed_targets(current)


def workload_delta(target: TicketStatus) -> int:
    """Return the change to apply to the assignee's open ticket counter.

    Every move into a completed status releases one slot. Reopening does not
    take the slot back; drift is corrected by workload reconciliation.
    """

    return -1 if target in COMPLETED_STATUSES else 0
