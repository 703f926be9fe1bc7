from datetime import datetime
from typing import Optional
from uuid import uuid4

from sqlmodel import SQLModel, Field
from sqlalchemy import Column, Index, JSON

from storefront.constants.order_status import OrderEventType


class OrderEvent(SQLModel, table=True):
    """Timeline entry written by each checkout step that commits."""

    __tablename__ = "order_event"
    __table_args__ = (Index("ix_order_event_order_created", "order_id", "created_at"),)

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    order_id: int = Field(foreign_key="order.id")

    event_type: str = Field(default=OrderEventType.ORDER_PLACED.value)
    label: str
    meta: Optional[dict] = Field(default=None, sa_column=Column(JSON))

    created_at: datetime = Field(default_factory=datetime.utcnow)
