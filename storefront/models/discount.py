from decimal import Decimal
from enum import Enum
from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime

from storefront.config import settings


class DiscountType(str, Enum):
    PERCENT = "PERCENT"
    FIXED = "FIXED"


class DiscountScope(str, Enum):
    ALL = "ALL"
    PRODUCT = "PRODUCT"
    PRICE_LIST = "PRICE_LIST"
    SCHOOL_PRODUCT = "SCHOOL_PRODUCT"


class Discount(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    code: str = Field(index=True, unique=True)
    type: str = Field(default=DiscountType.PERCENT.value)
    value: Decimal = Field(max_digits=12, decimal_places=2)
    currency: str = Field(default=settings.CURRENCY)
    active: bool = Field(default=True)

    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None

    min_subtotal: Optional[Decimal] = Field(default=None, max_digits=12, decimal_places=2)
    max_uses: Optional[int] = None
    uses_count: int = Field(default=0)

    scope: str = Field(default=DiscountScope.ALL.value)
    product_id: Optional[int] = Field(default=None, foreign_key="product.id")
    price_list_id: Optional[int] = Field(default=None, foreign_key="price_list.id")
    school_id: Optional[int] = Field(default=None, foreign_key="school.id")

    created_at: datetime = Field(default_factory=datetime.utcnow)


class DiscountRedemption(SQLModel, table=True):
    __tablename__ = "discount_redemption"
    id: Optional[int] = Field(default=None, primary_key=True)
    discount_id: int = Field(foreign_key="discount.id", index=True)
    order_id: int = Field(index=True)
    buyer_id: int = Field(index=True)
    code: str
    amount: Decimal = Field(max_digits=12, decimal_places=2)
    created_at: datetime = Field(default_factory=datetime.utcnow)
