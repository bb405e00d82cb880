"""
Bulk spreadsheet imports: stock intake, shipment history and master data.

Every import runs as **one** transaction.  Each row is applied through the
ordinary ledger operation, which (because the import already owns the
transaction) becomes its own SAVEPOINT: a bad row is rolled back and reported
while the good rows stay.  When a batch larger than
``IMPORT_REJECT_THRESHOLD`` yields no good row at all the whole import is
rolled back, since that is almost always a column-mapping problem.

Report shape (plain dict, JSON-ready)::

    {
        "total_rows": 12,
        "success_rows": 11,
        "error_rows": 1,
        "errors": [{"row": 5, "kind": "insufficient_stock", "message": "..."}],
        "ids": [41, 42, ...],
    }

``row`` is the spreadsheet line number (header is line 1).
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable

import pandas as pd
from fastapi import UploadFile
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from samplestock.core import config
from samplestock.core.database import atomic
from samplestock.core.errors import LedgerError, NotFound, ValidationError
from samplestock.models import Lifecycle, StockLot
from samplestock.services.reference_data import sync_master_data
from samplestock.services.shipment_ledger import LineItem, confirm_shipment
from samplestock.services.stock_ledger import intake
from samplestock.utils.file_parser import canonical_header, read_dataframe

logger = logging.getLogger(__name__)


# --------------------------------------------------------------------------- #
# cell helpers                                                                #
# --------------------------------------------------------------------------- #
def _cell(row: pd.Series, name: str) -> str | None:
    """Trimmed cell text, or None when the column is absent or blank."""
    if name not in row.index:
        return None
    val = row[name]
    if val is None or (not isinstance(val, str) and pd.isna(val)):
        return None
    txt = str(val).strip()
    return txt or None


def _safe_date(val: Any, field: str) -> date | None:
    """
    Spreadsheet date to ``date``.

    Accepts ISO strings, ``2024/08/05``, ``20240805`` (also as a float string
    ``'20240805.0'``), Excel cells read as ``'2024-08-05 00:00:00'`` and
    date/datetime objects.  Blank means no date.
    """
    if val is None or (isinstance(val, str) and val.strip() == ""):
        return None
    if isinstance(val, datetime):
        return val.date()
    if isinstance(val, date):
        return val

    txt = str(val).strip()
    try:
        # 20240805.0 -> 20240805
        txt = str(int(float(txt)))
    except (ValueError, OverflowError):
        pass
    parsed = pd.to_datetime(txt, errors="coerce")
    if pd.isna(parsed):
        raise ValidationError(f"Cannot parse {field} {val!r}", field=field)
    return parsed.date()


def _ensure_df(src) -> pd.DataFrame:
    """Convert ``src`` into a DataFrame; parse failures become ValidationError."""
    if isinstance(src, pd.DataFrame):
        return src.rename(columns=canonical_header)
    if isinstance(src, (str, Path, UploadFile, bytes, bytearray)):
        try:
            return read_dataframe(src)
        except ValueError as exc:
            raise ValidationError(str(exc), field="file") from exc
    raise TypeError(f"import helpers accept DataFrame, path, UploadFile or bytes; got {type(src)}")


# --------------------------------------------------------------------------- #
# row loop                                                                    #
# --------------------------------------------------------------------------- #
def _apply_rows(
    session: Session,
    df: pd.DataFrame,
    label: str,
    apply: Callable[[pd.Series], int],
) -> dict:
    total = len(df)
    ids: list[int] = []
    errors: list[dict] = []

    with atomic(session):
        for pos, (_, row) in enumerate(df.iterrows()):
            line_no = pos + 2
            try:
                ids.append(apply(row))
            except LedgerError as exc:
                errors.append({"row": line_no, "kind": exc.kind, "message": exc.message})
            except SQLAlchemyError as exc:
                logger.error("%s import: row %s failed in store: %s", label, line_no, exc)
                errors.append({"row": line_no, "kind": "store_error", "message": str(exc)})

        if errors:
            logger.warning("%s import: %s of %s rows failed", label, len(errors), total)
        if not ids and total > config.IMPORT_REJECT_THRESHOLD:
            logger.error("%s import rejected: no valid row in batch of %s", label, total)
            raise ValidationError(
                f"Import failed. No valid records found in batch of {total}. Check column mapping.",
                field="file",
            )

    logger.info("%s import: %s/%s rows applied", label, len(ids), total)
    return {
        "total_rows": total,
        "success_rows": len(ids),
        "error_rows": len(errors),
        "errors": errors,
        "ids": ids,
    }


# --------------------------------------------------------------------------- #
# stock                                                                       #
# --------------------------------------------------------------------------- #
def _stock_row(session: Session, row: pd.Series) -> int:
    lot = intake(
        session,
        po=_cell(row, "po"),
        qty=_cell(row, "qty"),
        client=_cell(row, "client"),
        client_po=_cell(row, "client_po"),
        product=_cell(row, "product"),
        item_no=_cell(row, "item_no"),
        batch=_cell(row, "batch"),
        note=_cell(row, "note"),
        date_in=_safe_date(_cell(row, "date_in"), "date_in"),
        size=_cell(row, "size"),
    )
    return lot.id


def import_stock(session: Session, src) -> dict:
    """Intake every row of a stock sheet (one lot per row)."""
    df = _ensure_df(src)
    return _apply_rows(session, df, "stock", lambda row: _stock_row(session, row))


# --------------------------------------------------------------------------- #
# shipments                                                                   #
# --------------------------------------------------------------------------- #
def resolve_lot(session: Session, stock_id: Any = None, po: str | None = None, size: str | None = None) -> StockLot:
    """The lot a shipment row draws from: by id, else the newest active lot for ``po`` (and ``size``)."""
    if stock_id is not None and str(stock_id).strip() != "":
        try:
            lot_id = int(float(str(stock_id).strip()))
        except (ValueError, OverflowError):
            raise ValidationError(f"stock_id must be an integer, got {stock_id!r}", field="stock_id") from None
        lot = session.get(StockLot, lot_id)
        if lot is None or lot.lifecycle != Lifecycle.ACTIVE.value:
            raise NotFound("stock lot", lot_id)
        return lot

    if not po:
        raise ValidationError("Row has neither stock_id nor P.O", field="po")
    stmt = select(StockLot).where(StockLot.po == po, StockLot.lifecycle == Lifecycle.ACTIVE.value)
    if size:
        stmt = stmt.where(StockLot.size == size)
    lot = session.exec(stmt.order_by(StockLot.created_at.desc(), StockLot.id.desc())).first()
    if lot is None:
        suffix = f" size {size}" if size else ""
        raise NotFound("stock lot", None, message=f"No active stock lot for P.O {po}{suffix}")
    return lot


def _shipment_row(session: Session, row: pd.Series, default_date: date | None) -> int:
    po, size = _cell(row, "po"), _cell(row, "size")
    lot = resolve_lot(session, _cell(row, "stock_id"), po, size)
    line = LineItem(
        stock_id=lot.id,
        qty=_cell(row, "qty"),
        po=po or lot.po,
        product=_cell(row, "product") or lot.product,
        recipient=_cell(row, "recipient"),
        courier=_cell(row, "courier"),
        tracking=_cell(row, "tracking"),
        client=_cell(row, "client") or lot.client,
        size=size or lot.size,
    )
    sent_on = _safe_date(_cell(row, "date_sent"), "date_sent") or default_date
    (shipment,) = confirm_shipment(session, [line], date_sent=sent_on)
    return shipment.id


def import_shipments(session: Session, src, date_sent: date | str | None = None) -> dict:
    """Confirm one single-line shipment per row; ``date_sent`` fills rows that carry no date."""
    df = _ensure_df(src)
    default_date = _safe_date(date_sent, "date_sent")
    return _apply_rows(session, df, "shipment", lambda row: _shipment_row(session, row, default_date))


# --------------------------------------------------------------------------- #
# master data                                                                 #
# --------------------------------------------------------------------------- #
def import_master_data(session: Session, src, clear: bool = False) -> dict:
    df = _ensure_df(src)
    rows = [
        {
            "using_po": _cell(row, "po"),
            "client": _cell(row, "client"),
            "client_po": _cell(row, "client_po"),
            "product_name": _cell(row, "product"),
            "product_code": _cell(row, "product_code") or _cell(row, "item_no"),
            "quality_note": _cell(row, "quality_note") or _cell(row, "note"),
        }
        for _, row in df.iterrows()
    ]
    return sync_master_data(session, rows, clear=clear)


__all__ = ["import_stock", "import_shipments", "import_master_data", "resolve_lot"]
