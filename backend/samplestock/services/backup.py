"""
Online backups of the SQLite store.

``create_backup`` uses SQLite's backup API on a pooled connection: the copy is
a single consistent snapshot, taken while other connections keep working.
Files are named ``samplestock-<UTC timestamp>.db`` so that name order is age
order.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy.engine import Engine

from samplestock.core import config
from samplestock.core.errors import StoreError

logger = logging.getLogger(__name__)

BACKUP_PREFIX = "samplestock-"
BACKUP_SUFFIX = ".db"


def _backup_dir(backup_dir: str | Path | None) -> Path:
    return Path(backup_dir) if backup_dir is not None else config.BACKUP_DIR


def create_backup(engine: Engine, backup_dir: str | Path | None = None) -> Path:
    """Write a snapshot of the store into ``backup_dir`` and return its path."""
    if engine.dialect.name != "sqlite":
        raise StoreError(f"Backups are only supported for SQLite stores (got {engine.dialect.name})")

    target_dir = _backup_dir(backup_dir)
    target_dir.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S-%f")
    target = target_dir / f"{BACKUP_PREFIX}{stamp}{BACKUP_SUFFIX}"

    raw = engine.raw_connection()
    try:
        dest = sqlite3.connect(str(target))
        try:
            raw.driver_connection.backup(dest)
        finally:
            dest.close()
    except sqlite3.Error as exc:
        target.unlink(missing_ok=True)
        logger.exception("backup failed: %s", target)
        raise StoreError(f"Backup failed: {exc}") from exc
    finally:
        raw.close()

    logger.info("backup written: %s (%s bytes)", target, target.stat().st_size)
    return target


def list_backups(backup_dir: str | Path | None = None) -> list[Path]:
    """Backup files, newest first."""
    target_dir = _backup_dir(backup_dir)
    if not target_dir.is_dir():
        return []
    files = [p for p in target_dir.glob(f"{BACKUP_PREFIX}*{BACKUP_SUFFIX}") if p.is_file()]
    return sorted(files, key=lambda p: p.name, reverse=True)


def prune_backups(backup_dir: str | Path | None = None, keep: int | None = None) -> list[Path]:
    """Delete all but the ``keep`` newest backups; returns the removed paths."""
    keep = config.BACKUP_KEEP if keep is None else keep
    if keep < 0:
        raise ValueError("keep must not be negative")
    removed = list_backups(backup_dir)[keep:]
    for path in removed:
        path.unlink(missing_ok=True)
    if removed:
        logger.info("pruned %s old backup(s), kept %s", len(removed), keep)
    return removed


__all__ = ["create_backup", "list_backups", "prune_backups"]
