"""
Celery maintenance tasks.

* ``maintenance.backup_database(keep=None)``: snapshot the store, then drop
  all but the ``keep`` newest backups (``BACKUP_KEEP`` by default).
"""

from __future__ import annotations

import datetime as _dt
import logging
import time

from celery import shared_task

from samplestock.core import config
from samplestock.core.database import engine
from samplestock.services.backup import create_backup, prune_backups

logger = logging.getLogger(__name__)


def run_backup(eng=None, backup_dir=None, keep: int | None = None) -> dict:
    start = time.perf_counter()
    path = create_backup(eng or engine, backup_dir)
    removed = prune_backups(backup_dir, config.BACKUP_KEEP if keep is None else keep)
    return {
        "path": str(path),
        "pruned": [str(p) for p in removed],
        "elapsed_sec": round(time.perf_counter() - start, 3),
        "run_at": _dt.datetime.now(_dt.timezone.utc).isoformat(),
    }


@shared_task(name="maintenance.backup_database")
def backup_database(keep: int | None = None) -> dict:
    result = run_backup(keep=keep)
    logger.info("scheduled backup done: %s", result["path"])
    return result
