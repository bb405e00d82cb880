"""
Reference data: couriers, client purposes and the purchase-order caches.

None of this touches stock quantities.  Couriers and client purposes are
written with dialect-native ``INSERT ... ON CONFLICT`` so repeated writes of
the same key are harmless.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Sequence

from sqlalchemy import delete, func, insert as sa_insert
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from samplestock.core import config
from samplestock.core.database import atomic
from samplestock.core.errors import ValidationError
from samplestock.models import ClfRecord, ClientPurpose, Courier, MasterRecord, Shipment, StockLot
from samplestock.models.lifecycle import utcnow

logger = logging.getLogger(__name__)


def _text(value: Any) -> str:
    """Trimmed string; None/NaN-ish values become ''."""
    if value is None:
        return ""
    txt = str(value).strip()
    return "" if txt.lower() == "nan" else txt


def _upsert(session: Session, model, row: dict, key: str, update_cols: Sequence[str] = ()) -> None:
    """Dialect-safe single-row upsert on a unique ``key`` column.

    PostgreSQL and SQLite use ``ON CONFLICT``; other dialects fall back to a
    lookup followed by INSERT or UPDATE inside the caller's transaction.
    """
    tbl = model.__table__
    bind = session.get_bind()
    dialect_name = getattr(getattr(bind, "dialect", None), "name", "")

    if dialect_name in ("postgresql", "sqlite"):
        dialect_insert = pg_insert if dialect_name == "postgresql" else sqlite_insert
        stmt = dialect_insert(tbl).values(**row)
        if update_cols:
            stmt = stmt.on_conflict_do_update(
                index_elements=[key],
                set_={c: getattr(stmt.excluded, c) for c in update_cols},
            )
        else:
            stmt = stmt.on_conflict_do_nothing(index_elements=[key])
        session.connection().execute(stmt)
        return

    conn = session.connection()
    exists = conn.execute(select(tbl.c.id).where(tbl.c[key] == row[key])).first()
    if exists is None:
        conn.execute(sa_insert(tbl).values(**row))
    elif update_cols:
        conn.execute(tbl.update().where(tbl.c[key] == row[key]).values({c: row[c] for c in update_cols}))


# --------------------------------------------------------------------------- #
# couriers                                                                    #
# --------------------------------------------------------------------------- #
def list_couriers(session: Session) -> Sequence[Courier]:
    return session.exec(select(Courier).order_by(Courier.name.asc())).all()


def ensure_courier(session: Session, name: str) -> Courier:
    """Return the courier called ``name``, creating it on first use."""
    name = _text(name)
    if not name:
        raise ValidationError("Name is required", field="name")
    with atomic(session):
        _upsert(session, Courier, {"name": name, "created_at": utcnow()}, "name")
        courier = session.exec(select(Courier).where(Courier.name == name)).one()
    return courier


# --------------------------------------------------------------------------- #
# client purposes                                                             #
# --------------------------------------------------------------------------- #
def set_client_purpose(session: Session, client: str, purpose: str | None) -> ClientPurpose:
    client = _text(client)
    if not client:
        raise ValidationError("Client is required", field="client")
    with atomic(session):
        _upsert(
            session,
            ClientPurpose,
            {"client": client, "purpose": purpose, "updated_at": utcnow()},
            "client",
            update_cols=("purpose", "updated_at"),
        )
        row = session.exec(select(ClientPurpose).where(ClientPurpose.client == client)).one()
    logger.info("client purpose set: client=%s", client)
    return row


def get_client_purpose(session: Session, client: str | None) -> str | None:
    if not client:
        return None
    row = session.exec(select(ClientPurpose).where(ClientPurpose.client == _text(client))).first()
    return row.purpose if row else None


def client_purpose_map(session: Session) -> dict[str, str | None]:
    return {r.client: r.purpose for r in session.exec(select(ClientPurpose)).all()}


def list_client_purposes(session: Session) -> Sequence[ClientPurpose]:
    return session.exec(select(ClientPurpose).order_by(ClientPurpose.client.asc())).all()


# --------------------------------------------------------------------------- #
# purchase-order master cache                                                 #
# --------------------------------------------------------------------------- #
def sync_master_data(session: Session, rows: Iterable[Mapping[str, Any]], clear: bool = False) -> dict:
    """Load master rows, optionally replacing the cache first.

    Rows without ``using_po`` are skipped; rows the store rejects are
    reported.  A batch of more than ``IMPORT_REJECT_THRESHOLD`` rows with no
    valid row at all is rejected as a whole (usually a column mapping
    mistake) and nothing, including the clear, is kept.
    """
    rows = list(rows)
    total = len(rows)
    skipped = 0
    errors: list[dict] = []

    with atomic(session):
        if clear:
            session.connection().execute(delete(MasterRecord.__table__))
            logger.info("master data cleared before sync")

        for i, row in enumerate(rows):
            using_po = _text(row.get("using_po"))
            if not using_po:
                skipped += 1
                continue
            try:
                with atomic(session):
                    session.add(
                        MasterRecord(
                            using_po=using_po,
                            client=_text(row.get("client")),
                            client_po=_text(row.get("client_po")),
                            product_name=_text(row.get("product_name")),
                            product_code=_text(row.get("product_code")),
                            quality_note=_text(row.get("quality_note")),
                        )
                    )
                    session.flush()
            except SQLAlchemyError as exc:
                logger.error("master row %s import failed: %s", i, exc)
                errors.append({"row": i, "kind": "store_error", "message": str(exc)})

        valid = total - len(errors) - skipped
        if errors:
            logger.warning("master import: %s rows failed, %s rows skipped", len(errors), skipped)
        if valid == 0 and total > config.IMPORT_REJECT_THRESHOLD:
            logger.error("master import rejected: %s rows, %s skipped (no PO), %s failed", total, skipped, len(errors))
            raise ValidationError(
                f"Import failed. No valid records found in batch of {total}. Check column mapping.",
                field="using_po",
            )

    logger.info("master import: batch of %s records, %s stored", total, valid)
    return {
        "total_rows": total,
        "success_rows": valid,
        "skipped_rows": skipped,
        "error_rows": len(errors),
        "errors": errors,
    }


def list_master_data(session: Session) -> Sequence[MasterRecord]:
    return session.exec(select(MasterRecord).order_by(MasterRecord.id.asc())).all()


def lookup_po(session: Session, po: str) -> MasterRecord | None:
    """Most recently synced master row for a purchase order, used to pre-fill intake."""
    return session.exec(
        select(MasterRecord).where(MasterRecord.using_po == _text(po)).order_by(MasterRecord.id.desc())
    ).first()


def master_data_count(session: Session) -> int:
    return session.exec(select(func.count()).select_from(MasterRecord)).one()


# --------------------------------------------------------------------------- #
# CLF batch sheet cache                                                       #
# --------------------------------------------------------------------------- #
CLF_KEYS: dict[str, tuple[str, ...]] = {
    "ttx_po": ("ttx_po", "TTX单号"),
    "batch": ("batch", "批次"),
    "client_po": ("client_po", "PO"),
}


def _pick(row: Mapping[str, Any], keys: Sequence[str]) -> str | None:
    for key in keys:
        txt = _text(row.get(key))
        if txt:
            return txt
    return None


def sync_clf_data(session: Session, rows: Iterable[Mapping[str, Any]]) -> int:
    """Replace the whole CLF cache with ``rows``; returns the number stored."""
    rows = list(rows)
    with atomic(session):
        session.connection().execute(delete(ClfRecord.__table__))
        for row in rows:
            session.add(ClfRecord(**{name: _pick(row, keys) for name, keys in CLF_KEYS.items()}))
        session.flush()
    logger.info("clf data replaced: %s rows", len(rows))
    return len(rows)


def list_clf_data(session: Session) -> Sequence[ClfRecord]:
    return session.exec(select(ClfRecord).order_by(ClfRecord.id.asc())).all()


# --------------------------------------------------------------------------- #
# debug                                                                       #
# --------------------------------------------------------------------------- #
def reset_store(session: Session) -> None:
    """Wipe shipments, stock lots and couriers in one transaction."""
    with atomic(session):
        conn = session.connection()
        conn.execute(delete(Shipment.__table__))
        conn.execute(delete(StockLot.__table__))
        conn.execute(delete(Courier.__table__))
    logger.warning("store reset: shipments, inventory and couriers deleted")
