from decimal import Decimal
from sqlmodel import SQLModel, Field
from sqlalchemy import Column, JSON
from typing import Optional
from datetime import datetime

from storefront.constants.order_status import PaymentStatus


class Payment(SQLModel, table=True):
    """Payment intent: one per order, created before the gateway session."""

    id: Optional[int] = Field(default=None, primary_key=True)

    order_id: int = Field(foreign_key="order.id", index=True)

    provider: str  # mercadopago | razorpay
    status: str = Field(default=PaymentStatus.CREATED.value)
    amount: Decimal = Field(max_digits=12, decimal_places=2)
    currency: str = Field(default="PEN")

    preference_id: Optional[str] = Field(default=None, index=True)
    raw: Optional[dict] = Field(default=None, sa_column=Column(JSON))

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
