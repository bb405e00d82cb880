"""xlsx downloads of the stock list and the shipment history."""

from __future__ import annotations

import io
from typing import List, Optional

from fastapi import APIRouter
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from samplestock.routers.deps import SesDep
from samplestock.services.export import export_history, export_stock

router = APIRouter(prefix="/api/export", tags=["export"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


class ExportRequest(BaseModel):
    ids: Optional[List[int]] = None


def _download(payload: bytes, filename: str) -> StreamingResponse:
    return StreamingResponse(
        io.BytesIO(payload),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/stock-template")
def stock_template(body: ExportRequest, ses: SesDep):
    return _download(export_stock(ses, body.ids), "Stock_Export.xlsx")


@router.post("/history-template")
def history_template(body: ExportRequest, ses: SesDep):
    return _download(export_history(ses, body.ids), "History_Export.xlsx")
