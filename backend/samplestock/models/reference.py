"""Reference data: couriers, client purposes and the purchase-order caches."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Column, DateTime, String, Text
from sqlmodel import Field, SQLModel

from samplestock.models.lifecycle import utcnow


class Courier(SQLModel, table=True):
    __tablename__ = "couriers"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(sa_column=Column(String, nullable=False, unique=True))
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime, nullable=False))


class ClientPurpose(SQLModel, table=True):
    """Free-text purpose per client, printed on the history export."""

    __tablename__ = "client_purposes"

    id: Optional[int] = Field(default=None, primary_key=True)
    client: str = Field(sa_column=Column(String, nullable=False, unique=True))
    purpose: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    updated_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime, nullable=False))


class MasterRecord(SQLModel, table=True):
    """Cached row of the purchase-order master spreadsheet."""

    __tablename__ = "master_data"

    id: Optional[int] = Field(default=None, primary_key=True)
    using_po: str = Field(sa_column=Column(String, nullable=False, index=True))
    client: Optional[str] = None
    client_po: Optional[str] = None
    product_name: Optional[str] = None
    product_code: Optional[str] = None
    quality_note: Optional[str] = None


class ClfRecord(SQLModel, table=True):
    """Cached row of the CLF batch sheet: internal PO, batch and the client's PO."""

    __tablename__ = "clf_data"

    id: Optional[int] = Field(default=None, primary_key=True)
    ttx_po: Optional[str] = Field(default=None, sa_column=Column(String, nullable=True, index=True))
    batch: Optional[str] = None
    client_po: Optional[str] = None
