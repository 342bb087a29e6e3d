from __future__ import annotations

import importlib.util
from pathlib import Path

import sqlalchemy as sa
from alembic.migration import MigrationContext
from alembic.operations import Operations

MIGRATION = (
    Path(__file__).resolve().parents[1] / "infra" / "alembic" / "versions" / "20261019_000001_ticket_lifecycle_schema.py"
)


def _load_migration():
    spec = importlib.util.spec_from_file_location("ticket_lifecycle_schema", MIGRATION)
    module = importlib.util.module_from_spec(spec)
    assert spec.loader is not None
    spec.loader.exec_module(module)
    return module


def test_upgrade_and_downgrade():
    migration = _load_migration()
    engine = sa.create_engine("sqlite://")

    with engine.begin() as conn:
        with Operations.context(MigrationContext.configure(conn)):
            migration.upgrade()
        tables = set(sa.inspect(conn).get_table_names())
        assert {
            "employees",
            "tickets",
            "ticket_status_history",
            "ticket_notes",
            "employee_performance_metrics",
            "notifications",
        } <= tables

        with Operations.context(MigrationContext.configure(conn)):
            migration.downgrade()
        assert sa.inspect(conn).get_table_names() == []
