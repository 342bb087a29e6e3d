"""Logging and tracing for the back-office API.

Every log record handled by the application handler carries the request id,
the acting user and, inside a ticket operation, the ticket id. The values live
in context variables bound by the request middleware and by
:func:`ticket_operation`, which also opens an OpenTelemetry span.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from logging.config import dictConfig
from typing import Iterator

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from backoffice.core.config import Settings

UNSET = "-"

_request_id: ContextVar[str] = ContextVar("request_id", default=UNSET)
_actor: ContextVar[str] = ContextVar("actor", default=UNSET)
_ticket_id: ContextVar[str] = ContextVar("ticket_id", default=UNSET)

_provider: TracerProvider | None = None


class RequestContextFilter(logging.Filter):
    """Copy the bound request and ticket context onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = _request_id.get()
        record.actor = _actor.get()
        record.ticket_id = _ticket_id.get()
        return True


@contextmanager
def request_context(request_id: str, actor: str) -> Iterator[None]:
    request_token = _request_id.set(request_id)
    actor_token = _actor.set(actor)
    try:
        yield
    finally:
        _actor.reset(actor_token)
        _request_id.reset(request_token)


@contextmanager
def ticket_operation(operation: str, ticket_id: str | None = None) -> Iterator[trace.Span]:
    """Bind ``ticket_id`` to log records and trace the block as ``tickets.<operation>``."""

    token = _ticket_id.set(ticket_id or UNSET)
    try:
        tracer = trace.get_tracer("backoffice.tickets")
        with tracer.start_as_current_span(f"tickets.{operation}") as span:
            span.set_attribute("backoffice.actor", _actor.get())
            if ticket_id:
                span.set_attribute("backoffice.ticket_id", ticket_id)
            yield span
    finally:
        _ticket_id.reset(token)


def current_context() -> dict[str, str]:
    return {"request_id": _request_id.get(), "actor": _actor.get(), "ticket_id": _ticket_id.get()}


def configure_logging(settings: Settings) -> logging.Logger:
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {"request_context": {"()": RequestContextFilter}},
            "formatters": {"context": {"format": settings.log_format}},
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "context",
                    "filters": ["request_context"],
                    "level": level,
                }
            },
            "root": {"handlers": ["console"], "level": level},
            "loggers": {
                "sqlalchemy.engine": {"level": logging.INFO if settings.database_echo else logging.WARNING},
            },
        }
    )
    return logging.getLogger("backoffice")


def _parse_headers(header_string: str | None) -> dict[str, str]:
    """Parse ``key=value`` pairs separated by commas, skipping malformed items."""

    headers: dict[str, str] = {}
    for item in (header_string or "").split(","):
        key, sep, value = item.partition("=")
        if sep and key.strip():
            headers[key.strip()] = value.strip()
    return headers


def init_tracer(settings: Settings) -> TracerProvider | None:
    """Install the OTLP tracer provider once; ``None`` when tracing is off."""

    global _provider

    if not settings.otel_enabled or _provider is not None:
        return None

    exporter = OTLPSpanExporter(
        endpoint=settings.otel_exporter_otlp_endpoint,
        headers=_parse_headers(settings.otel_exporter_otlp_headers) or None,
    )
    provider = TracerProvider(
        resource=Resource.create(
            {
                "service.name": settings.otel_service_name,
                "deployment.environment": settings.environment,
            }
        )
    )
    provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)
    _provider = provider
    return provider


def shutdown_tracer(provider: TracerProvider | None) -> None:
    global _provider

    if provider is None:
        return
    provider.shutdown()
    if provider is _provider:
        _provider = None
