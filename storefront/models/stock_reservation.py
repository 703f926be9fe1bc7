from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime

from storefront.constants.order_status import ReservationStatus


class StockReservation(SQLModel, table=True):
    __tablename__ = "stock_reservation"
    id: Optional[int] = Field(default=None, primary_key=True)

    order_id: int = Field(index=True)
    product_id: int = Field(foreign_key="product.id", index=True)
    quantity: int

    status: str = Field(default=ReservationStatus.ACTIVE.value, index=True)
    release_reason: Optional[str] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    released_at: Optional[datetime] = None
