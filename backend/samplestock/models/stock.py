from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from sqlalchemy import Column, Date, DateTime, Integer, String, Text
from sqlmodel import Field, SQLModel

from samplestock.models.lifecycle import Lifecycle, utcnow


class StockLot(SQLModel, table=True):
    """One intake batch of a sample product against a purchase order."""

    __tablename__ = "inventory"

    id: Optional[int] = Field(default=None, primary_key=True)

    # purchase order (required) and client references
    po: str = Field(sa_column=Column(String, nullable=False, index=True), description="Purchase order code")
    client: Optional[str] = Field(default=None, description="Client name")
    client_po: Optional[str] = Field(default=None, description="Client purchase order code")

    # product
    product: Optional[str] = Field(default=None, description="Product name")
    item_no: Optional[str] = Field(default=None, description="Item number")
    batch: Optional[str] = Field(default=None, description="Batch code")
    size: Optional[str] = Field(default=None, description="Size label")
    note: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    date_in: Optional[date] = Field(
        default=None,
        sa_column=Column(Date, nullable=True),
        description="Intake date",
    )

    # quantities (pieces)
    original_qty: int = Field(
        default=0,
        sa_column=Column(Integer, nullable=False, server_default="0"),
        description="Quantity as received",
    )
    current_qty: int = Field(
        default=0,
        sa_column=Column(Integer, nullable=False, server_default="0"),
        description="Quantity still on hand",
    )

    # recycle bin
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime, nullable=False, index=True),
    )
    deleted_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime, nullable=True))
    lifecycle: str = Field(
        default=Lifecycle.ACTIVE.value,
        sa_column=Column(String(16), nullable=False, server_default=Lifecycle.ACTIVE.value, index=True),
    )

    @property
    def shipped_qty(self) -> int:
        """Quantity currently encumbered by shipments (net of edit corrections)."""
        return self.original_qty - self.current_qty
