"""Couriers, client purposes and the purchase-order caches (master data, CLF)."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter
from pydantic import BaseModel

from samplestock.core.errors import NotFound
from samplestock.routers.deps import SesDep
from samplestock.services import reference_data

router = APIRouter(prefix="/api", tags=["reference"])


class CourierIn(BaseModel):
    name: Optional[str] = None


class ClientPurposeIn(BaseModel):
    client: str
    purpose: Optional[str] = None


class MasterSync(BaseModel):
    data: List[Dict[str, Any]]
    clear: bool = False


class ClfSync(BaseModel):
    data: List[Dict[str, Any]]


# ----------------------------- couriers ---------------------------------
@router.get("/couriers")
def list_couriers(ses: SesDep):
    return [c.model_dump(mode="json") for c in reference_data.list_couriers(ses)]


@router.post("/couriers")
def add_courier(body: CourierIn, ses: SesDep):
    courier = reference_data.ensure_courier(ses, body.name or "")
    courier_id = courier.id
    return {**courier.model_dump(mode="json"), "id": courier_id}


# -------------------------- client purposes ------------------------------
@router.get("/client-purposes")
def list_client_purposes(ses: SesDep):
    return [r.model_dump(mode="json") for r in reference_data.list_client_purposes(ses)]


@router.get("/client-purposes/{client}")
def get_client_purpose(client: str, ses: SesDep):
    return {"client": client, "purpose": reference_data.get_client_purpose(ses, client)}


@router.post("/client-purposes")
def set_client_purpose(body: ClientPurposeIn, ses: SesDep):
    row = reference_data.set_client_purpose(ses, body.client, body.purpose)
    row_id = row.id
    return {**row.model_dump(mode="json"), "id": row_id}


# ---------------------------- master data --------------------------------
@router.get("/master-data")
def list_master_data(ses: SesDep):
    return [r.model_dump(mode="json") for r in reference_data.list_master_data(ses)]


@router.get("/master-data/lookup/{po}")
def lookup_po(po: str, ses: SesDep):
    row = reference_data.lookup_po(ses, po)
    if row is None:
        raise NotFound("master record", None, message=f"No master data for P.O {po}")
    return row.model_dump(mode="json")


@router.post("/master-data/sync")
def sync_master_data(body: MasterSync, ses: SesDep):
    report = reference_data.sync_master_data(ses, body.data, clear=body.clear)
    return {"count": report["total_rows"], **report}


# ------------------------------ CLF data ---------------------------------
@router.get("/clf-data")
def list_clf_data(ses: SesDep):
    return [r.model_dump(mode="json") for r in reference_data.list_clf_data(ses)]


@router.post("/clf-data/sync")
def sync_clf_data(body: ClfSync, ses: SesDep):
    return {"count": reference_data.sync_clf_data(ses, body.data)}
