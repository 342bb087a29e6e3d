from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from backoffice.api.routes import employees, metrics, ping, tickets
from backoffice.core.config import get_settings
from backoffice.core.logging import configure_logging, init_tracer, shutdown_tracer
from backoffice.metrics import create_metrics_registry
from backoffice.middleware import RequestContextMiddleware
from backoffice.notifications import DatabaseTicketNotifier, LoggingTicketNotifier
from backoffice.security import PermissionPolicy
from backoffice.tickets import TicketLifecycleService, sqlalchemy_unit_of_work_factory


def _to_asyncpg_dsn(dsn: str) -> str:
    """Ensure a PostgreSQL DSN uses the asyncpg driver."""

    if dsn.startswith("postgresql+asyncpg://"):
        return dsn
    if dsn.startswith("postgresql://"):
        return "postgresql+asyncpg://" + dsn[len("postgresql://") :]
    return dsn


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:  # pragma: no cover - executed by framework
    settings = get_settings()
    logger = configure_logging(settings)
    tracer_provider = init_tracer(settings)

    app.state.logger = logger
    app.state.tracer_provider = tracer_provider

    db_engine = create_async_engine(_to_asyncpg_dsn(settings.database_url), echo=settings.database_echo, future=True)
    session_factory = async_sessionmaker(db_engine, expire_on_commit=False)
    try:
        if settings.auto_create_schema:
            async with db_engine.begin() as connection:
                await connection.run_sync(SQLModel.metadata.create_all)
            logger.info("Database schema ensured")

        metrics_registry = create_metrics_registry()
        app.state.db_engine = db_engine
        app.state.db_session_factory = session_factory
        app.state.metrics_registry = metrics_registry
        app.state.ticket_service = TicketLifecycleService(
            sqlalchemy_unit_of_work_factory(session_factory),
            policy=PermissionPolicy(),
            notifier=(
                DatabaseTicketNotifier(session_factory) if settings.notifications_enabled else LoggingTicketNotifier()
            ),
            metrics=metrics_registry,
        )
        yield
    finally:
        await db_engine.dispose()
        shutdown_tracer(tracer_provider)


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.add_middleware(RequestContextMiddleware)
    app.include_router(ping.router)
    app.include_router(tickets.router)
    app.include_router(employees.router)
    app.include_router(metrics.router)
    return app


app = create_app()
