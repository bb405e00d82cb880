"""
Shipment lifecycle and the stock debits/credits it drives.

Quantity rules
--------------
* ``confirm_shipment`` debits each lot with a single conditional UPDATE
  (``current_qty >= qty`` in the WHERE clause), so two concurrent requests
  can never push a lot below zero.  Any failing line aborts the whole batch.
* ``trash`` and ``undo`` credit the shipment's quantity back to its lot;
  ``restore`` debits it again.  The lifecycle guard on each transition
  (``active`` for trash/undo, ``trashed`` for restore/permanent delete)
  makes every credit and debit happen exactly once.
* ``permanent_delete`` removes a trashed shipment with no quantity effect:
  the stock was already returned when it was trashed.
* Orphaned shipments (lot hard-deleted) have no lot to credit or debit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable, Mapping, Sequence

from sqlalchemy import update
from sqlmodel import Session, select

from samplestock.core.database import atomic
from samplestock.core.errors import InsufficientStock, NotFound, ValidationError
from samplestock.models import Lifecycle, Shipment, StockLot
from samplestock.models.lifecycle import utcnow
from samplestock.services.reference_data import ensure_courier
from samplestock.services.stock_ledger import _date, _quantity

logger = logging.getLogger(__name__)

_lots = StockLot.__table__


@dataclass
class LineItem:
    """One line of a shipment draft."""

    stock_id: int
    qty: int | None = 1
    po: str | None = None
    product: str | None = None
    recipient: str | None = None
    courier: str | None = None
    tracking: str | None = None
    client: str | None = None
    size: str | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "LineItem":
        """Accept snake_case or the camelCase keys sent by the draft UI."""
        stock_id = data.get("stock_id", data.get("stockId"))
        if stock_id is None or stock_id == "":
            raise ValidationError("Line item is missing its stock lot", field="stock_id")
        try:
            stock_id = int(stock_id)
        except (TypeError, ValueError, OverflowError):
            raise ValidationError(f"stock_id must be an integer, got {stock_id!r}", field="stock_id") from None
        return cls(
            stock_id=stock_id,
            qty=data.get("qty"),
            po=data.get("po"),
            product=data.get("product"),
            recipient=data.get("recipient"),
            courier=data.get("courier"),
            tracking=data.get("tracking"),
            client=data.get("client"),
            size=data.get("size"),
        )


# --------------------------------------------------------------------------- #
# stock movements                                                             #
# --------------------------------------------------------------------------- #
def _debit(session: Session, stock_id: int, qty: int) -> bool:
    """Atomic compare-and-decrement on an active lot; False when it did not apply."""
    result = session.connection().execute(
        update(_lots)
        .where(
            _lots.c.id == stock_id,
            _lots.c.current_qty >= qty,
            _lots.c.lifecycle == Lifecycle.ACTIVE.value,
        )
        .values(current_qty=_lots.c.current_qty - qty)
    )
    return result.rowcount == 1


def _adjust(session: Session, stock_id: int | None, delta: int) -> None:
    """Unconditional credit (+) or debit (-); orphaned shipments have nothing to adjust."""
    if stock_id is None:
        return
    session.connection().execute(
        update(_lots).where(_lots.c.id == stock_id).values(current_qty=_lots.c.current_qty + delta)
    )


def _load(session: Session, shipment_id: int, state: Lifecycle) -> Shipment:
    shipment = session.get(Shipment, shipment_id)
    if shipment is None or shipment.lifecycle != state.value:
        raise NotFound("shipment", shipment_id)
    return shipment


# --------------------------------------------------------------------------- #
# operations                                                                  #
# --------------------------------------------------------------------------- #
def confirm_shipment(
    session: Session,
    items: Iterable[LineItem | Mapping[str, Any]],
    date_sent: date | str | None = None,
    image_path: str | None = None,
) -> list[Shipment]:
    """Ship every line item or none of them."""
    lines = [i if isinstance(i, LineItem) else LineItem.from_mapping(i) for i in items]
    if not lines:
        raise ValidationError("Shipment has no line items", field="items")
    sent_on = _date(date_sent, "date_sent")
    created: list[Shipment] = []

    with atomic(session):
        for line in lines:
            qty = _quantity(line.qty, "qty", default=1)
            if qty == 0:
                raise ValidationError("qty must be at least 1", field="qty")

            if not _debit(session, line.stock_id, qty):
                lot = session.get(StockLot, line.stock_id)
                if lot is None or lot.lifecycle != Lifecycle.ACTIVE.value:
                    raise NotFound("stock lot", line.stock_id)
                raise InsufficientStock(line.po or lot.po, line.stock_id, qty)

            shipment = Shipment(
                stock_id=line.stock_id,
                po=line.po,
                client=line.client,
                product=line.product,
                size=line.size,
                recipient=line.recipient,
                courier=line.courier,
                tracking=line.tracking,
                date_sent=sent_on,
                image_path=image_path or None,
                qty=qty,
            )
            session.add(shipment)
            session.flush()
            if line.courier and line.courier.strip():
                ensure_courier(session, line.courier)
            created.append(shipment)
        shipment_ids = [s.id for s in created]

    logger.info("confirm_shipment: %s line(s) shipment_ids=%s date_sent=%s", len(created), shipment_ids, sent_on)
    return created


def undo(session: Session, shipment_id: int) -> Lifecycle:
    """Reverse an active shipment: credit its lot and delete the record for good."""
    with atomic(session):
        shipment = _load(session, shipment_id, Lifecycle.ACTIVE)
        stock_id, qty = shipment.stock_id, shipment.qty
        _adjust(session, stock_id, qty)
        session.delete(shipment)
        session.flush()
    logger.info("undo: shipment=%s credited lot=%s qty=%s", shipment_id, stock_id, qty)
    return Lifecycle.PURGED


def undo_many(session: Session, shipment_ids: Iterable[int]) -> int:
    """Undo several shipments as one unit; any missing id aborts all of them."""
    ids = list(shipment_ids)
    with atomic(session):
        for shipment_id in ids:
            undo(session, shipment_id)
    return len(ids)


def trash(session: Session, shipment_id: int) -> Shipment:
    """Move an active shipment to the trash, returning its quantity to stock."""
    with atomic(session):
        shipment = _load(session, shipment_id, Lifecycle.ACTIVE)
        stock_id, qty = shipment.stock_id, shipment.qty
        _adjust(session, stock_id, qty)
        shipment.lifecycle = Lifecycle.TRASHED.value
        shipment.deleted_at = utcnow()
        session.flush()
    logger.info("trash: shipment=%s credited lot=%s qty=%s", shipment_id, stock_id, qty)
    return shipment


def restore(session: Session, shipment_id: int) -> Shipment:
    """Bring a trashed shipment back and re-apply its debit.

    No sufficiency check: restoring re-applies a debit the lot already
    carried once, even if that leaves it negative.
    """
    with atomic(session):
        shipment = _load(session, shipment_id, Lifecycle.TRASHED)
        stock_id, qty = shipment.stock_id, shipment.qty
        _adjust(session, stock_id, -qty)
        shipment.lifecycle = Lifecycle.ACTIVE.value
        shipment.deleted_at = None
        session.flush()
    logger.info("restore: shipment=%s debited lot=%s qty=%s", shipment_id, stock_id, qty)
    return shipment


def permanent_delete(session: Session, shipment_id: int) -> Lifecycle:
    """Purge a trashed shipment.  Stock is not touched."""
    with atomic(session):
        shipment = _load(session, shipment_id, Lifecycle.TRASHED)
        session.delete(shipment)
        session.flush()
    logger.info("permanent_delete: shipment=%s", shipment_id)
    return Lifecycle.PURGED


def get_shipment(session: Session, shipment_id: int) -> Shipment:
    shipment = session.get(Shipment, shipment_id)
    if shipment is None:
        raise NotFound("shipment", shipment_id)
    return shipment


def list_shipments(session: Session, include_deleted: bool = False) -> Sequence[Shipment]:
    """Active shipments by ship date (newest first), or the trash by deletion time."""
    if include_deleted:
        stmt = (
            select(Shipment)
            .where(Shipment.lifecycle == Lifecycle.TRASHED.value)
            .order_by(Shipment.deleted_at.desc(), Shipment.id.desc())
        )
    else:
        stmt = (
            select(Shipment)
            .where(Shipment.lifecycle == Lifecycle.ACTIVE.value)
            .order_by(Shipment.date_sent.desc(), Shipment.id.desc())
        )
    return session.exec(stmt).all()


__all__ = [
    "LineItem",
    "confirm_shipment",
    "undo",
    "undo_many",
    "trash",
    "restore",
    "permanent_delete",
    "get_shipment",
    "list_shipments",
]
