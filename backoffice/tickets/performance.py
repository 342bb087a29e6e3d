from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

_SECONDS_PER_HOUR = 3600.0


def resolution_time_hours(created_at: datetime | None, completed_at: datetime | None) -> float:
    """Hours elapsed between creation and completion, or 0 when either is unknown."""

    if created_at is None or completed_at is None:
        return 0.0
    return (completed_at - created_at).total_seconds() / _SECONDS_PER_HOUR


@dataclass(slots=True)
class EmployeePerformance:
    """Rolling resolution statistics for a single technician."""

    employee_id: str
    total_tickets_resolved: int
    average_resolution_time: float
    tickets_resolved_this_month: int
    last_updated: datetime | None = None

    @classmethod
    def empty(cls, employee_id: str) -> "EmployeePerformance":
        return cls(
            employee_id=employee_id,
            total_tickets_resolved=0,
            average_resolution_time=0.0,
            tickets_resolved_this_month=0,
        )

    def record_resolution(self, resolution_hours: float, *, at: datetime) -> "EmployeePerformance":
        """Return the statistics after one more resolved ticket.

        The average is kept as an incremental running mean, so the first
        resolution sets it to its own time and N equal values average to that
        value. The monthly counter only ever increments here.
        """

        total = self.total_tickets_resolved + 1
        if self.total_tickets_resolved <= 0:
            average = resolution_hours
        else:
            average = self.average_resolution_time + (resolution_hours - self.average_resolution_time) / total

        return EmployeePerformance(
            employee_id=self.employee_id,
            total_tickets_resolved=total,
            average_resolution_time=average,
            tickets_resolved_this_month=self.tickets_resolved_this_month + 1,
            last_updated=at,
        )
