"""
Spreadsheet uploads and the shipment photo upload.

Upload endpoints read the file first, so an unreadable file never touches
the store, then hand the DataFrame to :mod:`samplestock.services.ingestion`.
"""

from __future__ import annotations

import logging
import shutil
from datetime import date
from pathlib import Path
from typing import Optional
from uuid import uuid4

import pandas as pd
from fastapi import APIRouter, Form, Query

from samplestock.core import config
from samplestock.core.errors import ValidationError
from samplestock.routers.deps import SesDep, UploadDep
from samplestock.services import ingestion
from samplestock.utils.file_parser import read_dataframe

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["import"])

IMAGE_SUFFIXES = {".jpg", ".jpeg", ".png", ".gif", ".webp", ".bmp", ".heic"}


def _read(file) -> pd.DataFrame:
    try:
        df = read_dataframe(file)
    except ValueError as exc:
        logger.warning("upload rejected: filename=%s reason=%s", getattr(file, "filename", None), exc)
        raise ValidationError(str(exc), field="file") from exc
    logger.info("upload read: filename=%s rows=%s columns=%s", file.filename, len(df), list(df.columns))
    return df


def _with_samples(summary: dict) -> dict:
    summary["sample_errors"] = summary["errors"][:5]
    return summary


@router.post("/import/stock")
async def upload_stock(file: UploadDep, ses: SesDep):
    df = _read(file)
    return _with_samples(ingestion.import_stock(ses, df))


@router.post("/import/shipments")
async def upload_shipments(file: UploadDep, ses: SesDep, date_sent: Optional[date] = Form(None)):
    df = _read(file)
    return _with_samples(ingestion.import_shipments(ses, df, date_sent=date_sent))


@router.post("/import/master-data")
async def upload_master_data(
    file: UploadDep,
    ses: SesDep,
    clear: bool = Query(False, description="Replace the cache instead of appending"),
):
    df = _read(file)
    return _with_samples(ingestion.import_master_data(ses, df, clear=clear))


@router.post("/upload")
async def upload_image(file: UploadDep):
    """Store a shipment photo and return its opaque path for ``imagePath``."""
    suffix = Path(file.filename or "").suffix.lower()
    if suffix not in IMAGE_SUFFIXES:
        raise ValidationError(f"Unsupported image type {suffix or '(none)'}", field="file")
    config.UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
    target = config.UPLOAD_DIR / f"{uuid4().hex}{suffix}"
    with target.open("wb") as out:
        shutil.copyfileobj(file.file, out)
    logger.info("image stored: %s (%s bytes)", target, target.stat().st_size)
    return {"path": target.as_posix()}
