"""Shared FastAPI dependencies and the ledger error -> HTTP mapping."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Depends, File, Request, UploadFile
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from samplestock.core.database import get_session
from samplestock.core.errors import InsufficientStock, LedgerError, NotFound, StoreError, ValidationError

logger = logging.getLogger(__name__)

UploadDep = Annotated[UploadFile, File(...)]
SesDep = Annotated[Session, Depends(get_session)]

STATUS_BY_KIND: dict[str, int] = {
    NotFound.kind: 404,
    InsufficientStock.kind: 409,
    ValidationError.kind: 400,
    StoreError.kind: 500,
}


async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    status = STATUS_BY_KIND.get(exc.kind, 500)
    if status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=status, content=exc.to_dict())


async def store_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("%s %s: store error", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"kind": StoreError.kind, "detail": str(exc)})
