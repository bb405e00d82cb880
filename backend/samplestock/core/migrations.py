"""
Ordered, idempotent schema migrations.

Applied once at startup by :func:`run_migrations`.  Each step looks at the
live schema through the SQLAlchemy inspector and only changes what is
missing, so the list can run against a fresh file, a half-upgraded file or a
store created by the earlier desktop release (which lacked the recycle-bin
and lifecycle columns).  Applied step ids are recorded in
``schema_migrations``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

import sqlalchemy as sa
from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy import inspect
from sqlalchemy.engine import Connection, Engine

from samplestock.models import ClfRecord, ClientPurpose, Courier, Lifecycle, MasterRecord, Shipment, StockLot
from samplestock.models.lifecycle import utcnow

logger = logging.getLogger(__name__)

_ledger_meta = sa.MetaData()
schema_migrations = sa.Table(
    "schema_migrations",
    _ledger_meta,
    sa.Column("id", sa.String(64), primary_key=True),
    sa.Column("description", sa.String, nullable=True),
    sa.Column("applied_at", sa.DateTime, nullable=False),
)


@dataclass(frozen=True)
class Migration:
    id: str
    description: str
    apply: Callable[[Operations, Connection], None]


# --------------------------------------------------------------------------- #
# helpers                                                                     #
# --------------------------------------------------------------------------- #
def _columns(conn: Connection, table: str) -> set[str]:
    insp = inspect(conn)
    if not insp.has_table(table):
        return set()
    return {c["name"] for c in insp.get_columns(table)}


def _indexes(conn: Connection, table: str) -> set[str]:
    return {ix["name"] for ix in inspect(conn).get_indexes(table)}


def _create_table(model) -> Callable[[Operations, Connection], None]:
    def step(op: Operations, conn: Connection) -> None:
        if inspect(conn).has_table(model.__tablename__):
            return
        model.__table__.create(conn)
        logger.info("migration: created table %s", model.__tablename__)

    return step


def _add_columns(table: str, *columns: sa.Column) -> Callable[[Operations, Connection], None]:
    def step(op: Operations, conn: Connection) -> None:
        existing = _columns(conn, table)
        missing = [c for c in columns if c.name not in existing]
        if not missing:
            return
        with op.batch_alter_table(table) as batch_op:
            for col in missing:
                batch_op.add_column(col)
        logger.info("migration: %s += %s", table, ", ".join(c.name for c in missing))

    return step


def _soft_delete_columns(op: Operations, conn: Connection) -> None:
    for table in ("inventory", "shipments"):
        _add_columns(table, sa.Column("deleted_at", sa.DateTime, nullable=True))(op, conn)


def _lifecycle_columns(op: Operations, conn: Connection) -> None:
    for table in ("inventory", "shipments"):
        if "lifecycle" not in _columns(conn, table):
            with op.batch_alter_table(table) as batch_op:
                batch_op.add_column(
                    sa.Column("lifecycle", sa.String(16), nullable=False, server_default=Lifecycle.ACTIVE.value)
                )
        if f"ix_{table}_lifecycle" not in _indexes(conn, table):
            op.create_index(f"ix_{table}_lifecycle", table, ["lifecycle"])
        # rows trashed before the tag existed
        conn.execute(
            sa.text(
                f"UPDATE {table} SET lifecycle = :trashed "
                "WHERE deleted_at IS NOT NULL AND lifecycle = :active"
            ),
            {"trashed": Lifecycle.TRASHED.value, "active": Lifecycle.ACTIVE.value},
        )


def _iso_timestamps(op: Operations, conn: Connection) -> None:
    # "2024-08-05T10:00:00.000Z" -> "2024-08-05 10:00:00"
    if conn.dialect.name != "sqlite":
        return
    for table in ("inventory", "shipments"):
        for column in ("created_at", "deleted_at"):
            if column not in _columns(conn, table):
                continue
            conn.execute(
                sa.text(
                    f"UPDATE {table} SET {column} = replace(substr({column}, 1, 19), 'T', ' ') "
                    f"WHERE {column} LIKE '____-__-__T%'"
                )
            )


MIGRATIONS: list[Migration] = [
    Migration("0001_inventory", "stock lot table", _create_table(StockLot)),
    Migration("0002_shipments", "shipment table", _create_table(Shipment)),
    Migration("0003_couriers", "courier table", _create_table(Courier)),
    Migration("0004_master_data", "purchase-order master cache", _create_table(MasterRecord)),
    Migration("0005_client_purposes", "client purpose mapping", _create_table(ClientPurpose)),
    Migration("0006_soft_delete", "recycle-bin timestamps", _soft_delete_columns),
    Migration(
        "0007_shipment_details",
        "shipment attachment, quantity, client and size",
        _add_columns(
            "shipments",
            sa.Column("image_path", sa.String, nullable=True),
            sa.Column("qty", sa.Integer, nullable=False, server_default="1"),
            sa.Column("client", sa.String, nullable=True),
            sa.Column("size", sa.String, nullable=True),
        ),
    ),
    Migration("0008_lifecycle", "tri-state lifecycle tag", _lifecycle_columns),
    Migration("0009_timestamps", "normalise ISO-8601 timestamps written by the desktop release", _iso_timestamps),
    Migration("0010_clf_data", "CLF batch sheet cache", _create_table(ClfRecord)),
]


def pending(conn: Connection) -> list[Migration]:
    schema_migrations.create(conn, checkfirst=True)
    done = set(conn.execute(sa.select(schema_migrations.c.id)).scalars())
    return [m for m in MIGRATIONS if m.id not in done]


def run_migrations(eng: Engine) -> list[str]:
    """Apply every pending step in order inside one transaction; return their ids."""
    applied: list[str] = []
    with eng.begin() as conn:
        op = Operations(MigrationContext.configure(conn))
        for migration in pending(conn):
            migration.apply(op, conn)
            conn.execute(
                schema_migrations.insert().values(
                    id=migration.id,
                    description=migration.description,
                    applied_at=utcnow(),
                )
            )
            applied.append(migration.id)
    if applied:
        logger.info("migrations applied: %s", ", ".join(applied))
    return applied


__all__ = ["MIGRATIONS", "Migration", "run_migrations", "pending"]
