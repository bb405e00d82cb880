from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum


class Lifecycle(str, Enum):
    """Recycle-bin state shared by stock lots and shipments.

    ``active`` and ``trashed`` are stored on the row.  ``purged`` is terminal:
    the row is deleted in the transaction that reaches it, so it only ever
    appears as the outcome of a purge operation.
    """

    ACTIVE = "active"
    TRASHED = "trashed"
    PURGED = "purged"


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)
