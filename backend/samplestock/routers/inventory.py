"""
Stock lot endpoints.

Paths and camelCase bodies follow the inventory screen of the front end:
``DELETE /api/inventory/{id}`` moves a lot to the trash,
``DELETE /api/inventory/trash/{id}`` deletes it for good.
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict, Field

from samplestock.models import StockLot
from samplestock.routers.deps import SesDep
from samplestock.services import stock_ledger

router = APIRouter(prefix="/api/inventory", tags=["inventory"])


class StockIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    po: Optional[str] = None
    client: Optional[str] = None
    client_po: Optional[str] = Field(default=None, alias="clientPO")
    product: Optional[str] = None
    item_no: Optional[str] = Field(default=None, alias="itemNo")
    batch: Optional[str] = None
    note: Optional[str] = None
    date_in: Optional[date] = Field(default=None, alias="date")
    size: Optional[str] = None
    qty: Optional[int] = 0


class StockEdit(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    original_qty: Optional[int] = Field(default=None, alias="originalQty")
    note: Optional[str] = None
    po: Optional[str] = None
    client: Optional[str] = None
    client_po: Optional[str] = Field(default=None, alias="clientPO")
    product: Optional[str] = None
    item_no: Optional[str] = Field(default=None, alias="itemNo")
    batch: Optional[str] = None
    date_in: Optional[date] = Field(default=None, alias="date")
    size: Optional[str] = None


def lot_json(lot: StockLot) -> dict:
    # touching an attribute reloads an expired instance before model_dump
    shipped = lot.shipped_qty
    return {**lot.model_dump(mode="json"), "shipped_qty": shipped}


@router.get("")
def list_inventory(ses: SesDep):
    return [lot_json(lot) for lot in stock_ledger.list_lots(ses)]


@router.get("/trash")
def list_inventory_trash(ses: SesDep):
    return [lot_json(lot) for lot in stock_ledger.list_lots(ses, include_deleted=True)]


@router.get("/{lot_id}")
def get_inventory(lot_id: int, ses: SesDep):
    return lot_json(stock_ledger.get_lot(ses, lot_id))


@router.post("")
def add_stock(body: StockIn, ses: SesDep):
    lot = stock_ledger.intake(ses, **body.model_dump())
    return lot_json(lot)


@router.put("/{lot_id}")
def edit_stock(lot_id: int, body: StockEdit, ses: SesDep):
    lot = stock_ledger.edit(ses, lot_id, **body.model_dump())
    return lot_json(lot)


@router.delete("/{lot_id}")
def trash_stock(lot_id: int, ses: SesDep):
    stock_ledger.soft_delete(ses, lot_id)
    return {"success": True}


@router.post("/restore/{lot_id}")
def restore_stock(lot_id: int, ses: SesDep):
    stock_ledger.restore(ses, lot_id)
    return {"success": True}


@router.delete("/trash/{lot_id}")
def hard_delete_stock(lot_id: int, ses: SesDep):
    state = stock_ledger.hard_delete(ses, lot_id)
    return {"success": True, "lifecycle": state.value}
