from decimal import Decimal
from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime

from storefront.config import settings


class PriceList(SQLModel, table=True):
    __tablename__ = "price_list"
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    currency: str = Field(default=settings.CURRENCY)
    is_default: bool = Field(default=False)
    active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)


class PriceListItem(SQLModel, table=True):
    __tablename__ = "price_list_item"
    id: Optional[int] = Field(default=None, primary_key=True)
    price_list_id: int = Field(foreign_key="price_list.id", index=True)

    # exactly one of these is set
    product_id: Optional[int] = Field(default=None, foreign_key="product.id", index=True)
    pack_id: Optional[int] = Field(default=None, foreign_key="pack.id", index=True)

    price: Decimal = Field(max_digits=12, decimal_places=2)
