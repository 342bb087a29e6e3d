"""Metric definitions used by the ticket lifecycle."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

TICKET_STATUS_CHANGES = "ticket_status_changes_total"
TICKET_TRANSITION_REJECTIONS = "ticket_transition_rejections_total"
TICKET_ASSIGNMENTS = "ticket_assignments_total"
TICKET_UNASSIGNMENTS = "ticket_unassignments_total"
TICKET_OPERATION_DURATION = "ticket_operation_duration_seconds"
TICKET_RESOLUTION_HOURS = "ticket_resolution_hours"
NOTIFICATION_FAILURES = "ticket_notification_failures_total"
WORKLOAD_CORRECTIONS = "technician_workload_corrections_total"


@dataclass(frozen=True)
class MetricDefinition:
    """Describe a metric that should exist in the registry."""

    name: str
    metric_type: str
    description: str
    label_names: Tuple[str, ...] = ()


DEFAULT_METRIC_DEFINITIONS: Tuple[MetricDefinition, ...] = (
    MetricDefinition(
        name=TICKET_STATUS_CHANGES,
        metric_type="counter",
        description="Committed ticket status changes.",
        label_names=("from_status", "to_status"),
    ),
    MetricDefinition(
        name=TICKET_TRANSITION_REJECTIONS,
        metric_type="counter",
        description="Status change requests rejected by the transition table.",
        label_names=("from_status", "to_status"),
    ),
    MetricDefinition(
        name=TICKET_ASSIGNMENTS,
        metric_type="counter",
        description="Committed ticket assignments.",
    ),
    MetricDefinition(
        name=TICKET_UNASSIGNMENTS,
        metric_type="counter",
        description="Committed ticket unassignments.",
    ),
    MetricDefinition(
        name=TICKET_OPERATION_DURATION,
        metric_type="distribution",
        description="Duration of ticket lifecycle operations in seconds.",
        label_names=("operation",),
    ),
    MetricDefinition(
        name=TICKET_RESOLUTION_HOURS,
        metric_type="distribution",
        description="Hours between ticket creation and resolution.",
    ),
    MetricDefinition(
        name=NOTIFICATION_FAILURES,
        metric_type="counter",
        description="Notifications that failed after a committed change.",
        label_names=("event",),
    ),
    MetricDefinition(
        name=WORKLOAD_CORRECTIONS,
        metric_type="counter",
        description="Technician ticket counters corrected by reconciliation.",
    ),
)
