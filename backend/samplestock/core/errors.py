"""
Typed failures raised by the ledgers.

Every error carries a machine-readable ``kind`` plus structured ``detail`` so
callers (HTTP layer, bulk import reports) never have to parse messages::

    LedgerError
    +-- NotFound            kind="not_found"
    +-- InsufficientStock   kind="insufficient_stock"
    +-- ValidationError     kind="validation_error"
    +-- StoreError          kind="store_error"

SQLAlchemy errors are not wrapped by the ledgers; they propagate unchanged and
the HTTP layer reports them with the ``store_error`` kind.
"""

from __future__ import annotations

from typing import Any


class LedgerError(Exception):
    """Base class for all ledger failures."""

    kind: str = "ledger_error"

    def __init__(self, message: str, **detail: Any) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "detail": self.message, **self.detail}


class NotFound(LedgerError):
    """The id does not resolve to a row in the required lifecycle state."""

    kind = "not_found"

    def __init__(self, entity: str, entity_id: int | None, message: str | None = None) -> None:
        super().__init__(
            message or f"{entity} {entity_id} not found",
            entity=entity,
            id=entity_id,
        )
        self.entity = entity
        self.entity_id = entity_id


class InsufficientStock(LedgerError):
    """A conditional debit matched no row."""

    kind = "insufficient_stock"

    def __init__(self, po: str | None, stock_id: int | None, requested: int) -> None:
        super().__init__(
            f"Insufficient stock for P.O: {po}",
            po=po,
            stock_id=stock_id,
            requested=requested,
        )
        self.po = po
        self.stock_id = stock_id
        self.requested = requested


class ValidationError(LedgerError):
    kind = "validation_error"

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message, field=field)
        self.field = field


class StoreError(LedgerError):
    """The store cannot perform the requested operation."""

    kind = "store_error"


__all__ = [
    "LedgerError",
    "NotFound",
    "InsufficientStock",
    "ValidationError",
    "StoreError",
]
