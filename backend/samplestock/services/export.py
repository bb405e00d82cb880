"""
Spreadsheet exports of the stock list and the shipment history.

Both return the bytes of an ``.xlsx`` workbook (pandas + openpyxl).  Exports
are pure reads: they list active rows in the same order as the ledgers do,
optionally restricted to the selected ``ids``.
"""

from __future__ import annotations

import io
import logging
from typing import Iterable

import pandas as pd
from sqlmodel import Session

from samplestock.services.reference_data import client_purpose_map
from samplestock.services.shipment_ledger import list_shipments
from samplestock.services.stock_ledger import list_lots

logger = logging.getLogger(__name__)

STOCK_COLUMNS: list[str] = [
    "ID",
    "P.O",
    "Client",
    "Client PO",
    "Product",
    "Item No",
    "Batch",
    "Size",
    "Date In",
    "Original Qty",
    "Shipped Qty",
    "Current Qty",
    "Note",
]

HISTORY_COLUMNS: list[str] = [
    "Date Sent",
    "P.O",
    "Client",
    "Purpose",
    "Product",
    "Size",
    "Qty",
    "Recipient",
    "Courier",
    "Tracking",
    "Stock ID",
]


def _iso(value) -> str:
    return value.isoformat() if value is not None else ""


def _select(rows, ids: Iterable[int] | None):
    if ids is None:
        return list(rows)
    wanted = {int(i) for i in ids}
    return [r for r in rows if r.id in wanted]


def _to_xlsx(records: list[dict], columns: list[str], sheet_name: str) -> bytes:
    buf = io.BytesIO()
    df = pd.DataFrame(records, columns=columns)
    with pd.ExcelWriter(buf, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name=sheet_name, index=False)
    return buf.getvalue()


def export_stock(session: Session, ids: Iterable[int] | None = None) -> bytes:
    lots = _select(list_lots(session), ids)
    records = [
        {
            "ID": lot.id,
            "P.O": lot.po,
            "Client": lot.client or "",
            "Client PO": lot.client_po or "",
            "Product": lot.product or "",
            "Item No": lot.item_no or "",
            "Batch": lot.batch or "",
            "Size": lot.size or "",
            "Date In": _iso(lot.date_in),
            "Original Qty": lot.original_qty,
            "Shipped Qty": lot.shipped_qty,
            "Current Qty": lot.current_qty,
            "Note": lot.note or "",
        }
        for lot in lots
    ]
    logger.info("export_stock: %s rows", len(records))
    return _to_xlsx(records, STOCK_COLUMNS, "Stock")


def export_history(session: Session, ids: Iterable[int] | None = None) -> bytes:
    """Shipment history; each row carries the purpose recorded for its client."""
    shipments = _select(list_shipments(session), ids)
    purposes = client_purpose_map(session)
    records = [
        {
            "Date Sent": _iso(s.date_sent),
            "P.O": s.po or "",
            "Client": s.client or "",
            "Purpose": purposes.get(s.client or "") or "",
            "Product": s.product or "",
            "Size": s.size or "",
            "Qty": s.qty,
            "Recipient": s.recipient or "",
            "Courier": s.courier or "",
            "Tracking": s.tracking or "",
            "Stock ID": s.stock_id if s.stock_id is not None else "",
        }
        for s in shipments
    ]
    logger.info("export_history: %s rows", len(records))
    return _to_xlsx(records, HISTORY_COLUMNS, "History")


__all__ = ["export_stock", "export_history", "STOCK_COLUMNS", "HISTORY_COLUMNS"]
