"""Backups on demand, and the debug reset."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException

from samplestock.core import config
from samplestock.routers.deps import SesDep
from samplestock.services import backup, reference_data

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["maintenance"])


@router.get("/backups")
def list_backups():
    return [{"name": p.name, "size": p.stat().st_size} for p in backup.list_backups()]


@router.post("/backups")
def create_backup(ses: SesDep):
    path = backup.create_backup(ses.get_bind())
    removed = backup.prune_backups()
    return {"name": path.name, "pruned": [p.name for p in removed]}


@router.post("/debug/reset-db")
def reset_db(ses: SesDep):
    if not config.ENABLE_DEBUG_ROUTES:
        raise HTTPException(status_code=404, detail="Not Found")
    reference_data.reset_store(ses)
    return {"success": True, "message": "Database reset successfully."}
