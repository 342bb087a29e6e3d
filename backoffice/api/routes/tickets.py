from __future__ import annotations

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, ConfigDict, Field

from backoffice.api.errors import SERVICE_ERRORS, to_http_exception
from backoffice.dependencies.auth import CurrentUser
from backoffice.dependencies.tickets import get_ticket_service
from backoffice.tickets.models import Ticket, TicketOperationResult
from backoffice.tickets.service import TicketLifecycleService
from backoffice.tickets.state import TicketStatus

router = APIRouter(prefix="/tickets", tags=["tickets"])


class TicketCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(default="")
    priority: str = Field(default="MEDIUM", max_length=20)
    customer_id: str | None = Field(default=None, alias="customerId")


class TicketStatusUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: TicketStatus
    reason: str | None = Field(default=None, max_length=500)
    resolution_note: str | None = Field(default=None, alias="resolutionNote", max_length=2000)


class TicketUnassignRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=500)


class TicketAssignRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    assigned_to_id: str = Field(..., min_length=1, alias="assignedToId")
    reason: str | None = Field(default=None, max_length=500)


class TicketNoteRequest(BaseModel):
    note: str = Field(..., min_length=1, max_length=2000)


class TicketResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    description: str
    priority: str
    status: TicketStatus
    customer_id: str | None
    assigned_to_id: str | None
    created_at: datetime
    updated_at: datetime
    completed_at: datetime | None


class TicketOperationResponse(BaseModel):
    success: bool = True
    message: str
    ticket: TicketResponse


class TicketHistoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    ticket_id: str
    from_status: TicketStatus | None
    to_status: TicketStatus
    changed_by: str
    reason: str
    changed_at: datetime


class TicketNoteResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    ticket_id: str
    created_by_id: str
    note: str
    created_at: datetime


TicketServiceDep = Annotated[TicketLifecycleService, Depends(get_ticket_service)]


def _to_response(ticket: Ticket) -> TicketResponse:
    return TicketResponse.model_validate(ticket)


def _to_operation_response(result: TicketOperationResult) -> TicketOperationResponse:
    return TicketOperationResponse(message=result.message, ticket=_to_response(result.ticket))


@router.post("", response_model=TicketResponse, status_code=status.HTTP_201_CREATED)
async def create_ticket(payload: TicketCreateRequest, service: TicketServiceDep, user: CurrentUser) -> TicketResponse:
    try:
        ticket = await service.create_ticket(
            title=payload.title,
            description=payload.description,
            priority=payload.priority,
            customer_id=payload.customer_id,
            actor=user.to_actor(),
        )
    except SERVICE_ERRORS as exc:
        raise to_http_exception(exc) from exc
    return _to_response(ticket)


@router.get("", response_model=list[TicketResponse])
async def list_tickets(
    service: TicketServiceDep,
    user: CurrentUser,
    status_filter: TicketStatus | None = Query(default=None, alias="status"),
    assigned_to_id: str | None = Query(default=None, alias="assignedToId"),
) -> list[TicketResponse]:
    try:
        tickets = await service.list_tickets(actor=user.to_actor(), status=status_filter, assigned_to_id=assigned_to_id)
    except SERVICE_ERRORS as exc:
        raise to_http_exception(exc) from exc
    return [_to_response(ticket) for ticket in tickets]


@router.get("/{ticket_id}", response_model=TicketResponse)
async def get_ticket(ticket_id: str, service: TicketServiceDep, user: CurrentUser) -> TicketResponse:
    try:
        ticket = await service.get_ticket(ticket_id, actor=user.to_actor())
    except SERVICE_ERRORS as exc:
        raise to_http_exception(exc) from exc
    return _to_response(ticket)


@router.post("/{ticket_id}/status", response_model=TicketOperationResponse)
async def update_ticket_status(
    ticket_id: str,
    payload: TicketStatusUpdateRequest,
    service: TicketServiceDep,
    user: CurrentUser,
) -> TicketOperationResponse:
    try:
        result = await service.change_status(
            ticket_id,
            status=payload.status,
            actor=user.to_actor(),
            reason=payload.reason,
            resolution_note=payload.resolution_note,
        )
    except SERVICE_ERRORS as exc:
        raise to_http_exception(exc) from exc
    return _to_operation_response(result)


@router.post("/{ticket_id}/unassign", response_model=TicketOperationResponse)
async def unassign_ticket(
    ticket_id: str,
    service: TicketServiceDep,
    user: CurrentUser,
    payload: TicketUnassignRequest | None = None,
) -> TicketOperationResponse:
    try:
        result = await service.unassign(
            ticket_id, actor=user.to_actor(), reason=payload.reason if payload is not None else None
        )
    except SERVICE_ERRORS as exc:
        raise to_http_exception(exc) from exc
    return _to_operation_response(result)


@router.post("/{ticket_id}/assign", response_model=TicketOperationResponse)
async def assign_ticket(
    ticket_id: str,
    payload: TicketAssignRequest,
    service: TicketServiceDep,
    user: CurrentUser,
) -> TicketOperationResponse:
    try:
        result = await service.assign(
            ticket_id,
            technician_id=payload.assigned_to_id,
            actor=user.to_actor(),
            reason=payload.reason,
        )
    except SERVICE_ERRORS as exc:
        raise to_http_exception(exc) from exc
    return _to_operation_response(result)


@router.get("/{ticket_id}/history", response_model=list[TicketHistoryResponse])
async def get_ticket_history(ticket_id: str, service: TicketServiceDep, user: CurrentUser) -> list[TicketHistoryResponse]:
    try:
        entries = await service.get_status_history(ticket_id, actor=user.to_actor())
    except SERVICE_ERRORS as exc:
        raise to_http_exception(exc) from exc
    return [TicketHistoryResponse.model_validate(entry) for entry in entries]


@router.get("/{ticket_id}/notes", response_model=list[TicketNoteResponse])
async def list_ticket_notes(ticket_id: str, service: TicketServiceDep, user: CurrentUser) -> list[TicketNoteResponse]:
    try:
        notes = await service.list_notes(ticket_id, actor=user.to_actor())
    except SERVICE_ERRORS as exc:
        raise to_http_exception(exc) from exc
    return [TicketNoteResponse.model_validate(note) for note in notes]


@router.post("/{ticket_id}/notes", response_model=TicketNoteResponse, status_code=status.HTTP_201_CREATED)
async def add_ticket_note(
    ticket_id: str,
    payload: TicketNoteRequest,
    service: TicketServiceDep,
    user: CurrentUser,
) -> TicketNoteResponse:
    try:
        note = await service.add_note(ticket_id, content=payload.note, actor=user.to_actor())
    except SERVICE_ERRORS as exc:
        raise to_http_exception(exc) from exc
    return TicketNoteResponse.model_validate(note)
