"""
Stock lot lifecycle: intake, edit, trash/restore and hard delete.

All functions take an explicit :class:`sqlmodel.Session` and run as one
atomic unit (see :func:`samplestock.core.database.atomic`).  ``current_qty``
is only ever shifted by a SQL expression relative to its stored value, so an
edit cannot overwrite a concurrent shipment debit.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Sequence

from sqlalchemy import update
from sqlmodel import Session, select

from samplestock.core.database import atomic
from samplestock.core.errors import NotFound, ValidationError
from samplestock.models import Lifecycle, Shipment, StockLot
from samplestock.models.lifecycle import utcnow

logger = logging.getLogger(__name__)

_lots = StockLot.__table__
_shipments = Shipment.__table__

# descriptive columns an edit may touch besides original_qty / note
EDITABLE_FIELDS: tuple[str, ...] = (
    "po",
    "client",
    "client_po",
    "product",
    "item_no",
    "batch",
    "date_in",
    "size",
)


# --------------------------------------------------------------------------- #
# validation                                                                  #
# --------------------------------------------------------------------------- #
def _require_po(po: Any) -> str:
    if po is None or str(po).strip() == "":
        raise ValidationError("Purchase order code is required", field="po")
    return str(po).strip()


def _quantity(value: Any, field: str, *, default: int | None = None) -> int:
    if value is None or (isinstance(value, str) and value.strip() == ""):
        if default is None:
            raise ValidationError(f"{field} is required", field=field)
        return default
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer", field=field)
    try:
        number = float(value.replace(",", "").strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer, got {value!r}", field=field) from None
    if not number.is_integer():
        raise ValidationError(f"{field} must be a whole number, got {value!r}", field=field)
    qty = int(number)
    if qty < 0:
        raise ValidationError(f"{field} must not be negative", field=field)
    return qty


def _date(value: Any, field: str) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        raise ValidationError(f"{field} must be an ISO date (YYYY-MM-DD), got {value!r}", field=field) from None


# --------------------------------------------------------------------------- #
# lookups                                                                     #
# --------------------------------------------------------------------------- #
def _load(session: Session, lot_id: int, *states: Lifecycle) -> StockLot:
    lot = session.get(StockLot, lot_id)
    if lot is None or (states and lot.lifecycle not in {s.value for s in states}):
        raise NotFound("stock lot", lot_id)
    return lot


def get_lot(session: Session, lot_id: int) -> StockLot:
    """Return an active or trashed lot."""
    return _load(session, lot_id, Lifecycle.ACTIVE, Lifecycle.TRASHED)


def list_lots(session: Session, include_deleted: bool = False) -> Sequence[StockLot]:
    """Active lots newest first, or (``include_deleted``) the trash, most recently trashed first."""
    if include_deleted:
        stmt = (
            select(StockLot)
            .where(StockLot.lifecycle == Lifecycle.TRASHED.value)
            .order_by(StockLot.deleted_at.desc(), StockLot.id.desc())
        )
    else:
        stmt = (
            select(StockLot)
            .where(StockLot.lifecycle == Lifecycle.ACTIVE.value)
            .order_by(StockLot.created_at.desc(), StockLot.id.desc())
        )
    return session.exec(stmt).all()


# --------------------------------------------------------------------------- #
# transitions                                                                 #
# --------------------------------------------------------------------------- #
def intake(
    session: Session,
    *,
    po: str,
    qty: int | str | None = 0,
    client: str | None = None,
    client_po: str | None = None,
    product: str | None = None,
    item_no: str | None = None,
    batch: str | None = None,
    note: str | None = None,
    date_in: date | str | None = None,
    size: str | None = None,
) -> StockLot:
    """Record a received batch; ``current_qty`` starts equal to ``original_qty``."""
    received = _quantity(qty, "qty", default=0)
    lot = StockLot(
        po=_require_po(po),
        client=client,
        client_po=client_po,
        product=product,
        item_no=item_no,
        batch=batch,
        note=note,
        date_in=_date(date_in, "date_in"),
        size=size,
        original_qty=received,
        current_qty=received,
    )
    with atomic(session):
        session.add(lot)
        session.flush()
        lot_id, po = lot.id, lot.po
    logger.info("intake: lot=%s po=%s qty=%s", lot_id, po, received)
    return lot


def edit(
    session: Session,
    lot_id: int,
    original_qty: int | str | None = None,
    note: str | None = None,
    **fields: Any,
) -> StockLot:
    """Correct a lot's received quantity and/or descriptive fields.

    The quantity already consumed by shipments is preserved: ``current_qty``
    moves by the same delta as ``original_qty``.  ``None`` leaves a field
    untouched.
    """
    unknown = set(fields) - set(EDITABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown field(s): {', '.join(sorted(unknown))}", field=sorted(unknown)[0])

    with atomic(session):
        lot = _load(session, lot_id)
        if original_qty is not None:
            new_original = _quantity(original_qty, "original_qty")
            delta = new_original - lot.original_qty
            if delta:
                lot.original_qty = new_original
                session.connection().execute(
                    update(_lots).where(_lots.c.id == lot_id).values(current_qty=_lots.c.current_qty + delta)
                )
        if note is not None:
            lot.note = note
        for name, value in fields.items():
            if value is None:
                continue
            if name == "po":
                value = _require_po(value)
            elif name == "date_in":
                value = _date(value, "date_in")
            setattr(lot, name, value)
        session.flush()
        session.refresh(lot)
        original, current = lot.original_qty, lot.current_qty
    if current < 0:
        logger.warning(
            "edit: lot=%s original_qty=%s is below the shipped amount (current_qty=%s)",
            lot_id,
            original,
            current,
        )
    logger.info("edit: lot=%s original_qty=%s current_qty=%s", lot_id, original, current)
    return lot


def soft_delete(session: Session, lot_id: int) -> StockLot:
    """Move a lot to the trash.  Quantities and shipments are untouched."""
    with atomic(session):
        lot = _load(session, lot_id, Lifecycle.ACTIVE)
        lot.lifecycle = Lifecycle.TRASHED.value
        lot.deleted_at = utcnow()
        session.flush()
    logger.info("soft_delete: lot=%s", lot_id)
    return lot


def restore(session: Session, lot_id: int) -> StockLot:
    with atomic(session):
        lot = _load(session, lot_id, Lifecycle.TRASHED)
        lot.lifecycle = Lifecycle.ACTIVE.value
        lot.deleted_at = None
        session.flush()
    logger.info("restore: lot=%s", lot_id)
    return lot


def hard_delete(session: Session, lot_id: int) -> Lifecycle:
    """Delete a lot for good.

    Shipments taken from it are kept as history: their ``stock_id`` is set to
    NULL in the same transaction before the lot row goes.
    """
    with atomic(session):
        lot = _load(session, lot_id)
        unlinked = session.connection().execute(
            update(_shipments).where(_shipments.c.stock_id == lot_id).values(stock_id=None)
        ).rowcount
        session.delete(lot)
        session.flush()
    logger.info("hard_delete: lot=%s orphaned_shipments=%s", lot_id, unlinked)
    return Lifecycle.PURGED


__all__ = [
    "EDITABLE_FIELDS",
    "intake",
    "edit",
    "soft_delete",
    "restore",
    "hard_delete",
    "get_lot",
    "list_lots",
]
