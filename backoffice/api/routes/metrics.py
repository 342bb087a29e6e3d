from typing import Annotated

from fastapi import APIRouter, Depends, Response

from backoffice.dependencies.tickets import get_metrics_registry
from backoffice.metrics import MetricsRegistry, PrometheusExporter

router = APIRouter(tags=["observability"])


@router.get("/metrics", include_in_schema=False)
async def metrics(registry: Annotated[MetricsRegistry, Depends(get_metrics_registry)]) -> Response:
    exporter = PrometheusExporter(registry)
    return Response(content=exporter.export(), media_type=exporter.content_type)
