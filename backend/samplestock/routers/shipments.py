"""
Shipment endpoints.

``DELETE /api/shipments/{id}`` is the history screen's delete button: the
shipment goes to the trash and its quantity returns to stock.
``POST /api/shipments/{id}/undo`` reverses a shipment outright.
"""

from __future__ import annotations

from datetime import date
from typing import List, Optional

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict, Field

from samplestock.models import Shipment
from samplestock.routers.deps import SesDep
from samplestock.services import shipment_ledger
from samplestock.services.shipment_ledger import LineItem

router = APIRouter(prefix="/api/shipments", tags=["shipments"])


class DraftItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    stock_id: int = Field(alias="stockId")
    qty: Optional[int] = 1
    po: Optional[str] = None
    product: Optional[str] = None
    recipient: Optional[str] = None
    courier: Optional[str] = None
    tracking: Optional[str] = None
    client: Optional[str] = None
    size: Optional[str] = None


class ConfirmShipment(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    items: List[DraftItem]
    date_sent: Optional[date] = Field(default=None, alias="dateSent")
    image_path: Optional[str] = Field(default=None, alias="imagePath")


class UndoMany(BaseModel):
    ids: List[int]


def shipment_json(shipment: Shipment) -> dict:
    orphaned = shipment.orphaned
    return {**shipment.model_dump(mode="json"), "orphaned": orphaned}


@router.get("")
def list_shipments(ses: SesDep):
    return [shipment_json(s) for s in shipment_ledger.list_shipments(ses)]


@router.get("/trash")
def list_shipment_trash(ses: SesDep):
    return [shipment_json(s) for s in shipment_ledger.list_shipments(ses, include_deleted=True)]


@router.get("/{shipment_id}")
def get_shipment(shipment_id: int, ses: SesDep):
    return shipment_json(shipment_ledger.get_shipment(ses, shipment_id))


@router.post("")
def confirm(body: ConfirmShipment, ses: SesDep):
    lines = [LineItem(**item.model_dump()) for item in body.items]
    created = shipment_ledger.confirm_shipment(ses, lines, date_sent=body.date_sent, image_path=body.image_path)
    return {"success": True, "ids": [s.id for s in created]}


@router.post("/undo")
def undo_many(body: UndoMany, ses: SesDep):
    count = shipment_ledger.undo_many(ses, body.ids)
    return {"success": True, "count": count}


@router.post("/{shipment_id}/undo")
def undo(shipment_id: int, ses: SesDep):
    state = shipment_ledger.undo(ses, shipment_id)
    return {"success": True, "lifecycle": state.value}


@router.delete("/{shipment_id}")
def trash(shipment_id: int, ses: SesDep):
    shipment_ledger.trash(ses, shipment_id)
    return {"success": True}


@router.post("/restore/{shipment_id}")
def restore(shipment_id: int, ses: SesDep):
    shipment_ledger.restore(ses, shipment_id)
    return {"success": True}


@router.delete("/trash/{shipment_id}")
def permanent_delete(shipment_id: int, ses: SesDep):
    state = shipment_ledger.permanent_delete(ses, shipment_id)
    return {"success": True, "lifecycle": state.value}
