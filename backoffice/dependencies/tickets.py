from __future__ import annotations

from fastapi import HTTPException, Request

from backoffice.metrics import MetricsRegistry
from backoffice.tickets.service import TicketLifecycleService


async def get_ticket_service(request: Request) -> TicketLifecycleService:
    service = getattr(request.app.state, "ticket_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Ticket service is not configured")
    return service


async def get_metrics_registry(request: Request) -> MetricsRegistry:
    registry = getattr(request.app.state, "metrics_registry", None)
    if registry is None:
        raise HTTPException(status_code=503, detail="Metrics are not configured")
    return registry
