"""
Runtime configuration.

Every setting is read from the environment once, at import time.  ``.env``
files are loaded first (``backend/.env.local``, ``backend/.env``, then the
repo-level equivalents) without overriding variables that are already set,
so a value exported in the shell always wins.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Final

from dotenv import load_dotenv

CURRENT_FILE = Path(__file__).resolve()
BACKEND_DIR = CURRENT_FILE.parents[2]
REPO_ROOT = CURRENT_FILE.parents[3]

_env_candidates = [
    BACKEND_DIR / ".env.local",
    BACKEND_DIR / ".env",
    REPO_ROOT / ".env.local",
    REPO_ROOT / ".env",
]
LOADED_ENV_FILES: list[str] = []
for env_path in _env_candidates:
    if env_path.exists():
        load_dotenv(env_path, override=False)
        LOADED_ENV_FILES.append(str(env_path))


def _flag(name: str, default: str) -> bool:
    return (os.getenv(name, default) or default).strip().lower() in ("1", "true", "yes", "on", "y", "t")


# --------------------------------------------------------------------------- #
# store                                                                       #
# --------------------------------------------------------------------------- #
DATABASE_URL: Final[str] = os.getenv("DATABASE_URL") or "sqlite:///./samplestock.db"
SQLITE_BUSY_TIMEOUT_MS: Final[int] = int(os.getenv("SQLITE_BUSY_TIMEOUT_MS", "60000"))
AUTO_MIGRATE: Final[bool] = _flag("AUTO_MIGRATE", "true")

# --------------------------------------------------------------------------- #
# files                                                                       #
# --------------------------------------------------------------------------- #
UPLOAD_DIR: Final[Path] = Path(os.getenv("UPLOAD_DIR", "uploads"))
BACKUP_DIR: Final[Path] = Path(os.getenv("BACKUP_DIR", "backups"))
BACKUP_KEEP: Final[int] = int(os.getenv("BACKUP_KEEP", "14"))
BACKUP_INTERVAL_HOURS: Final[float] = float(os.getenv("BACKUP_INTERVAL_HOURS", "6"))

# --------------------------------------------------------------------------- #
# background jobs                                                             #
# --------------------------------------------------------------------------- #
CELERY_BROKER_URL: Final[str] = os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0")
CELERY_RESULT_BACKEND: Final[str] = os.getenv("CELERY_RESULT_BACKEND", CELERY_BROKER_URL)
APP_TIMEZONE: Final[str] = os.getenv("APP_TIMEZONE", "Asia/Shanghai")

# --------------------------------------------------------------------------- #
# web                                                                         #
# --------------------------------------------------------------------------- #
FRONTEND_ORIGINS: Final[list[str]] = [
    o.strip()
    for o in (os.getenv("FRONTEND_ORIGINS") or os.getenv("FRONTEND_ORIGIN") or "").split(",")
    if o and o.strip()
]
ENABLE_DEBUG_ROUTES: Final[bool] = _flag("ENABLE_DEBUG_ROUTES", "false")

# Imports with more rows than this and no valid row are rejected as a whole.
IMPORT_REJECT_THRESHOLD: Final[int] = 5
