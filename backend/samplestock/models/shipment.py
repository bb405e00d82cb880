"""Outbound shipment records.

A shipment keeps its own copy of the purchase order, client and product so
that the history survives a hard delete of the lot it was taken from (the
``stock_id`` reference is nulled and the shipment becomes orphaned).
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String
from sqlmodel import Field, SQLModel

from samplestock.models.lifecycle import Lifecycle, utcnow


class Shipment(SQLModel, table=True):
    __tablename__ = "shipments"

    id: Optional[int] = Field(default=None, primary_key=True)

    # owning lot; NULL once the lot has been hard-deleted
    stock_id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("inventory.id", ondelete="SET NULL"), nullable=True, index=True),
    )

    # historical copy of the lot fields
    po: Optional[str] = Field(default=None, index=True)
    client: Optional[str] = None
    product: Optional[str] = None
    size: Optional[str] = None

    # delivery
    recipient: Optional[str] = None
    courier: Optional[str] = None
    tracking: Optional[str] = None
    date_sent: Optional[date] = Field(default=None, sa_column=Column(Date, nullable=True, index=True))
    image_path: Optional[str] = Field(default=None, description="Opaque attachment path")

    qty: int = Field(default=1, sa_column=Column(Integer, nullable=False, server_default="1"))

    # recycle bin
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime, nullable=False))
    deleted_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime, nullable=True))
    lifecycle: str = Field(
        default=Lifecycle.ACTIVE.value,
        sa_column=Column(String(16), nullable=False, server_default=Lifecycle.ACTIVE.value, index=True),
    )

    @property
    def orphaned(self) -> bool:
        return self.stock_id is None
