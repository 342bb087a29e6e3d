from datetime import datetime, timezone
from unittest.mock import AsyncMock

from fastapi.testclient import TestClient
import pytest

from backoffice.dependencies import tickets as ticket_deps
from backoffice.main import create_app
from backoffice.metrics import create_metrics_registry
from backoffice.security import PermissionDeniedError
from backoffice.tickets import (
    HandlingStatus,
    InvalidTicketTransitionError,
    Ticket,
    TicketNotAssignedError,
    TicketNotFoundError,
    TechnicianWorkload,
    TicketStatus,
    WorkloadLimitExceededError,
)
from backoffice.middleware import REQUEST_ID_HEADER
from backoffice.tickets.models import TicketOperationResult, TicketStatusHistoryEntry

TECHNICIAN = {"Authorization": "Bearer technician-token"}


def _make_ticket(*, status: TicketStatus = TicketStatus.OPEN, assigned_to_id: str | None = "emp-technician") -> Ticket:
    now = datetime.now(timezone.utc)
    return Ticket(
        id="t-1",
        title="No internet",
        description="Fibre link down",
        priority="HIGH",
        status=status,
        customer_id="cust-1",
        assigned_to_id=assigned_to_id,
        created_at=now,
        updated_at=now,
        completed_at=now if status.is_completed else None,
    )


@pytest.fixture
def ticket_client():
    app = create_app()
    service = AsyncMock()
    registry = create_metrics_registry()

    async def override_service():
        return service

    async def override_registry():
        return registry

    app.dependency_overrides[ticket_deps.get_ticket_service] = override_service
    app.dependency_overrides[ticket_deps.get_metrics_registry] = override_registry

    client = TestClient(app)
    try:
        yield client, service, registry
    finally:
        app.dependency_overrides.clear()


def test_status_update_returns_operation_envelope(ticket_client):
    client, service, _ = ticket_client
    ticket = _make_ticket(status=TicketStatus.RESOLVED)
    service.change_status = AsyncMock(
        return_value=TicketOperationResult(ticket=ticket, message="Ticket status updated to RESOLVED")
    )

    response = client.post(
        "/tickets/t-1/status",
        json={"status": "RESOLVED", "resolutionNote": "fixed cable"},
        headers=TECHNICIAN,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Ticket status updated to RESOLVED"
    assert body["ticket"]["status"] == "RESOLVED"
    kwargs = service.change_status.await_args.kwargs
    assert kwargs["status"] is TicketStatus.RESOLVED
    assert kwargs["resolution_note"] == "fixed cable"
    assert kwargs["actor"].employee_id == "emp-technician"


def test_invalid_transition_maps_to_conflict(ticket_client):
    client, service, _ = ticket_client
    service.change_status = AsyncMock(
        side_effect=InvalidTicketTransitionError(TicketStatus.IN_PROGRESS, TicketStatus.CLOSED)
    )

    response = client.post("/tickets/t-1/status", json={"status": "CLOSED"}, headers=TECHNICIAN)

    assert response.status_code == 409
    assert response.json()["detail"] == {
        "error": "InvalidTransition",
        "message": "Cannot change status from IN_PROGRESS to CLOSED",
    }


def test_unknown_ticket_maps_to_not_found(ticket_client):
    client, service, _ = ticket_client
    service.change_status = AsyncMock(side_effect=TicketNotFoundError("t-404"))

    response = client.post("/tickets/t-404/status", json={"status": "OPEN"}, headers=TECHNICIAN)

    assert response.status_code == 404
    assert response.json()["detail"]["error"] == "NotFound"


def test_forbidden_maps_to_403(ticket_client):
    client, service, _ = ticket_client
    service.change_status = AsyncMock(side_effect=PermissionDeniedError("tickets", "update"))

    response = client.post("/tickets/t-1/status", json={"status": "OPEN"})

    assert response.status_code == 403
    assert response.json()["detail"]["error"] == "Forbidden"


def test_invalid_status_is_rejected_before_service(ticket_client):
    client, service, _ = ticket_client
    service.change_status = AsyncMock()

    response = client.post("/tickets/t-1/status", json={"status": "DONE"}, headers=TECHNICIAN)

    assert response.status_code == 422
    service.change_status.assert_not_awaited()


def test_unassign_without_body(ticket_client):
    client, service, _ = ticket_client
    ticket = _make_ticket(assigned_to_id=None)
    service.unassign = AsyncMock(
        return_value=TicketOperationResult(ticket=ticket, message="Ticket unassigned from Tech One")
    )

    response = client.post("/tickets/t-1/unassign", headers=TECHNICIAN)

    assert response.status_code == 200
    assert response.json()["ticket"]["assigned_to_id"] is None
    assert service.unassign.await_args.kwargs["reason"] is None


def test_unassign_unassigned_ticket_conflicts(ticket_client):
    client, service, _ = ticket_client
    service.unassign = AsyncMock(side_effect=TicketNotAssignedError("t-1"))

    response = client.post("/tickets/t-1/unassign", json={"reason": "cleanup"}, headers=TECHNICIAN)

    assert response.status_code == 409
    assert response.json()["detail"] == {"error": "NotAssigned", "message": "Ticket is not assigned to anyone"}


def test_assign_validation_error_includes_field_errors(ticket_client):
    client, service, _ = ticket_client
    service.assign = AsyncMock(
        side_effect=WorkloadLimitExceededError("Too many tickets", errors={"assignedToId": ["limit"]})
    )

    response = client.post("/tickets/t-1/assign", json={"assignedToId": "emp-9"}, headers=TECHNICIAN)

    assert response.status_code == 422
    assert response.json()["detail"]["errors"] == {"assignedToId": ["limit"]}
    assert service.assign.await_args.kwargs["technician_id"] == "emp-9"


def test_history_endpoint(ticket_client):
    client, service, _ = ticket_client
    entry = TicketStatusHistoryEntry(
        id="h-1",
        ticket_id="t-1",
        from_status=None,
        to_status=TicketStatus.OPEN,
        changed_by="emp-admin",
        reason="Ticket created",
        changed_at=datetime.now(timezone.utc),
    )
    service.get_status_history = AsyncMock(return_value=[entry])

    response = client.get("/tickets/t-1/history", headers=TECHNICIAN)

    assert response.status_code == 200
    assert response.json()[0]["to_status"] == "OPEN"


def test_metrics_endpoint_renders_prometheus_text(ticket_client):
    client, _, registry = ticket_client
    registry.counter("ticket_assignments_total").inc()

    response = client.get("/metrics")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert "ticket_assignments_total 1.0" in response.text


def test_ping_and_invalid_token(ticket_client):
    client, _, _ = ticket_client

    assert client.get("/ping").json() == {"status": "ok"}
    assert client.get("/ping", headers={"Authorization": "Bearer nope"}).status_code == 401
    assert client.get("/ping/secure", headers=TECHNICIAN).json() == {"status": "ok", "user": "technician"}
    assert client.get("/ping/secure").status_code == 401


def test_workload_endpoint_lists_technicians(ticket_client):
    client, service, _ = ticket_client
    service.get_workload = AsyncMock(
        return_value=[
            TechnicianWorkload(
                employee_id="emp-1",
                name="Rae",
                handling_status=HandlingStatus.AVAILABLE,
                active_tickets=1,
                max_concurrent_tickets=4,
            ),
            TechnicianWorkload(
                employee_id="emp-2",
                name="Dana",
                handling_status=HandlingStatus.BUSY,
                active_tickets=4,
                max_concurrent_tickets=4,
            ),
        ]
    )

    response = client.get("/employees/workload", headers=TECHNICIAN)

    assert response.status_code == 200
    first, second = response.json()
    assert first["employee_id"] == "emp-1"
    assert first["workload_percentage"] == 25
    assert first["available_slots"] == 3
    assert first["can_take_more_tickets"] is True
    assert second["handling_status"] == "BUSY"
    assert second["can_take_more_tickets"] is False
    assert service.get_workload.await_args.kwargs["actor"].username == "technician"


def test_workload_endpoint_maps_forbidden(ticket_client):
    client, service, _ = ticket_client
    service.get_workload = AsyncMock(side_effect=PermissionDeniedError("tickets", "read"))

    response = client.get("/employees/workload", headers={"Authorization": "Bearer hr-token"})

    assert response.status_code == 403


def test_request_id_is_echoed_or_generated(ticket_client):
    client, _, _ = ticket_client

    echoed = client.get("/ping", headers={REQUEST_ID_HEADER: "req-42"})
    generated = client.get("/ping")
    rejected = client.get("/ping", headers={REQUEST_ID_HEADER: "req-43", "Authorization": "Basic abc"})

    assert echoed.headers[REQUEST_ID_HEADER] == "req-42"
    assert len(generated.headers[REQUEST_ID_HEADER]) == 32
    assert rejected.status_code == 401
    assert rejected.headers[REQUEST_ID_HEADER] == "req-43"
