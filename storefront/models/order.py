from decimal import Decimal
from sqlmodel import SQLModel, Field, Relationship
from typing import List, Optional
from datetime import datetime

from storefront.constants.order_status import FulfillmentStatus, OrderStatus
from storefront.models.order_item import OrderItem


class Order(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    buyer_id: int = Field(foreign_key="buyer.id", index=True)

    customer_name: str = ""
    customer_email: str = ""
    customer_phone: str = ""

    shipping_address: str
    shipping_reference: Optional[str] = None
    shipping_district: Optional[str] = None
    shipping_notes: Optional[str] = None

    currency: str = Field(default="PEN")
    subtotal: Decimal = Field(max_digits=12, decimal_places=2)
    discount_amount: Decimal = Field(default=Decimal("0.00"), max_digits=12, decimal_places=2)
    total: Decimal = Field(max_digits=12, decimal_places=2)

    discount_code: Optional[str] = None
    discount_id: Optional[int] = Field(default=None, foreign_key="discount.id")

    status: str = Field(default=OrderStatus.PAYMENT_PENDING.value, index=True)
    fulfillment_status: str = Field(default=FulfillmentStatus.PENDING.value)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    items: List["OrderItem"] = Relationship(back_populates="order")
