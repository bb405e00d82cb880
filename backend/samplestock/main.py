"""
FastAPI application.

Run with ``uvicorn samplestock.main:app --app-dir backend``.  ``.env`` files
are loaded by :mod:`samplestock.core.config` before anything else reads the
environment.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from samplestock.core import config
from samplestock.core.database import engine, init_db
from samplestock.core.errors import LedgerError
from samplestock.routers import exports, imports, inventory, maintenance, reference, shipments
from samplestock.routers.deps import ledger_error_handler, store_error_handler

logger = logging.getLogger(__name__)

if config.LOADED_ENV_FILES:
    logger.info("Loaded env files: %s", ", ".join(config.LOADED_ENV_FILES))


@asynccontextmanager
async def lifespan(_app: FastAPI):
    if config.AUTO_MIGRATE:
        init_db(engine)
    yield


app = FastAPI(title="Sample Stock API", lifespan=lifespan)


# ---- CORS (dev-friendly) ----------------------------------------------
_default_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:1420",
    "tauri://localhost",
]
origins = sorted(set(_default_origins + config.FRONTEND_ORIGINS))

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_origin_regex=r"^https?://(localhost|127\.0\.0\.1|0\.0\.0\.0)(:\d+)?$",
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
    max_age=86400,
)

# ---- errors ------------------------------------------------------------
app.add_exception_handler(LedgerError, ledger_error_handler)
app.add_exception_handler(SQLAlchemyError, store_error_handler)

# ---- register routers --------------------------------------------------
app.include_router(inventory.router)
app.include_router(shipments.router)
app.include_router(reference.router)
app.include_router(imports.router)
app.include_router(exports.router)
app.include_router(maintenance.router)


# ---- simple health check -----------------------------------------------
@app.get("/health")
async def health() -> dict[str, str]:
    """Liveness check."""
    return {"status": "ok"}
