from decimal import Decimal
from enum import Enum
from sqlmodel import SQLModel, Field, Relationship
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from storefront.models.order import Order


class LineKind(str, Enum):
    PRODUCT = "PRODUCT"
    # zero-priced rows that only carry stock consumption of a pack
    PACK_COMPONENT = "PACK_COMPONENT"
    # the pack's sale price; never touches stock
    PACK_HEADER = "PACK_HEADER"


class OrderItem(SQLModel, table=True):
    __tablename__ = "order_item"
    id: Optional[int] = Field(default=None, primary_key=True)
    order_id: int = Field(foreign_key="order.id", index=True)

    kind: str = Field(default=LineKind.PRODUCT.value)
    product_id: Optional[int] = Field(default=None, foreign_key="product.id")
    pack_id: Optional[int] = Field(default=None, foreign_key="pack.id")

    title_snapshot: str
    sale_code_snapshot: Optional[str] = None

    quantity: int
    unit_list_price: Decimal = Field(max_digits=12, decimal_places=2)
    unit_price: Decimal = Field(max_digits=12, decimal_places=2)
    line_total: Decimal = Field(max_digits=12, decimal_places=2)

    order: Optional["Order"] = Relationship(back_populates="items")
