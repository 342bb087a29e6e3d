from __future__ import annotations

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from backoffice.api.errors import SERVICE_ERRORS, to_http_exception
from backoffice.dependencies.auth import CurrentUser
from backoffice.dependencies.tickets import get_ticket_service
from backoffice.tickets.models import HandlingStatus
from backoffice.tickets.service import TicketLifecycleService

router = APIRouter(prefix="/employees", tags=["employees"])


class EmployeePerformanceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    employee_id: str
    total_tickets_resolved: int
    average_resolution_time: float
    tickets_resolved_this_month: int
    last_updated: datetime | None


class WorkloadReconcileRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    employee_id: str | None = Field(default=None, alias="employeeId")


class WorkloadReconciliationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    employee_id: str
    previous_count: int
    actual_count: int
    drifted: bool


class TechnicianWorkloadResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    employee_id: str
    name: str
    handling_status: HandlingStatus
    active_tickets: int
    max_concurrent_tickets: int
    workload_percentage: int
    available_slots: int
    can_take_more_tickets: bool


TicketServiceDep = Annotated[TicketLifecycleService, Depends(get_ticket_service)]


@router.get("/workload", response_model=list[TechnicianWorkloadResponse])
async def get_technician_workload(service: TicketServiceDep, user: CurrentUser) -> list[TechnicianWorkloadResponse]:
    try:
        workloads = await service.get_workload(actor=user.to_actor())
    except SERVICE_ERRORS as exc:
        raise to_http_exception(exc) from exc
    return [TechnicianWorkloadResponse.model_validate(workload) for workload in workloads]


@router.get("/{employee_id}/performance", response_model=EmployeePerformanceResponse)
async def get_employee_performance(
    employee_id: str, service: TicketServiceDep, user: CurrentUser
) -> EmployeePerformanceResponse:
    try:
        performance = await service.get_performance(employee_id, actor=user.to_actor())
    except SERVICE_ERRORS as exc:
        raise to_http_exception(exc) from exc
    return EmployeePerformanceResponse.model_validate(performance)


@router.post("/workload/reconcile", response_model=list[WorkloadReconciliationResponse])
async def reconcile_workload(
    service: TicketServiceDep,
    user: CurrentUser,
    payload: WorkloadReconcileRequest | None = None,
) -> list[WorkloadReconciliationResponse]:
    try:
        results = await service.reconcile_workload(
            actor=user.to_actor(), employee_id=payload.employee_id if payload is not None else None
        )
    except SERVICE_ERRORS as exc:
        raise to_http_exception(exc) from exc
    return [WorkloadReconciliationResponse.model_validate(result) for result in results]
