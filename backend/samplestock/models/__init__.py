"""
Aggregate export for all SQLModel table classes.

Importing ``samplestock.models`` registers every table in
``SQLModel.metadata`` so ``create_all`` and the migration runner see them.
"""

from .lifecycle import Lifecycle  # noqa: F401

# --- Stock & shipments -----------------------------------------------------
from .stock import StockLot  # noqa: F401
from .shipment import Shipment  # noqa: F401

# --- Reference data --------------------------------------------------------
from .reference import ClfRecord, ClientPurpose, Courier, MasterRecord  # noqa: F401

__all__ = [
    "Lifecycle",
    "StockLot",
    "Shipment",
    "Courier",
    "ClientPurpose",
    "MasterRecord",
    "ClfRecord",
]
