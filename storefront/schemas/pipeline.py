"""Request-scoped value types flowing through the checkout pipeline.

All of them are frozen: each step takes these as input and returns new
instances, nothing is mutated in place.
"""

from decimal import Decimal
from enum import Enum
from typing import Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, model_validator

from storefront.models.order_item import LineKind
from storefront.utils.money import ZERO, round2


class CartLineKind(str, Enum):
    PRODUCT = "PRODUCT"
    PACK = "PACK"


class FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True)


class CartLineRequest(FrozenModel):
    kind: CartLineKind
    ref_id: int
    quantity: int


class CatalogProduct(FrozenModel):
    id: int
    title: str
    sale_code: Optional[str] = None
    visible: bool = True


class PackComponent(FrozenModel):
    product_id: int
    quantity: int


class CatalogPack(FrozenModel):
    id: int
    title: str
    sale_code: Optional[str] = None
    visible: bool = True
    components: Tuple[PackComponent, ...] = ()


class CatalogSnapshot(FrozenModel):
    products: Dict[int, CatalogProduct]
    packs: Dict[int, CatalogPack]


class PricedLine(FrozenModel):
    """A revenue line: a direct product or the header of a pack."""

    kind: LineKind
    base_product_id: Optional[int] = None
    pack_id: Optional[int] = None
    title: str
    sale_code: Optional[str] = None
    quantity: int
    unit_list_price: Decimal
    unit_final_price: Decimal
    line_total: Decimal

    @model_validator(mode="after")
    def _check_kind(self):
        if self.kind == LineKind.PRODUCT and self.base_product_id is None:
            raise ValueError("product lines need a base product")
        if self.kind == LineKind.PACK_HEADER and self.base_product_id is not None:
            raise ValueError("pack header lines never carry a base product")
        if self.kind == LineKind.PACK_COMPONENT:
            raise ValueError("pack components are reservation lines, not priced lines")
        return self

    @classmethod
    def at_list_price(cls, **kwargs) -> "PricedLine":
        unit = round2(kwargs.pop("unit_list_price"))
        return cls(
            unit_list_price=unit,
            unit_final_price=unit,
            line_total=round2(unit * kwargs["quantity"]),
            **kwargs,
        )

    @property
    def list_total(self) -> Decimal:
        return round2(self.unit_list_price * self.quantity)

    def with_unit_price(self, unit_final_price: Decimal) -> "PricedLine":
        unit = min(max(round2(unit_final_price), ZERO), self.unit_list_price)
        return self.model_copy(update={
            "unit_final_price": unit,
            "line_total": round2(unit * self.quantity),
        })


class ReservationLine(FrozenModel):
    """A stock-bearing order line. Prices of pack components are always zero."""

    kind: LineKind
    product_id: int
    pack_id: Optional[int] = None
    title: str
    sale_code: Optional[str] = None
    quantity: int
    unit_list_price: Decimal = ZERO
    unit_price: Decimal = ZERO
    line_total: Decimal = ZERO

    @model_validator(mode="after")
    def _check_kind(self):
        if self.kind == LineKind.PACK_HEADER:
            raise ValueError("pack headers never reserve stock")
        if self.kind == LineKind.PACK_COMPONENT and self.line_total != ZERO:
            raise ValueError("pack components are never priced")
        return self

    @classmethod
    def from_priced_line(cls, line: PricedLine) -> "ReservationLine":
        return cls(
            kind=LineKind.PRODUCT,
            product_id=line.base_product_id,
            title=line.title,
            sale_code=line.sale_code,
            quantity=line.quantity,
            unit_list_price=line.unit_list_price,
            unit_price=line.unit_final_price,
            line_total=line.line_total,
        )


class PricingResult(FrozenModel):
    price_list_id: int
    currency: str
    priced_lines: Tuple[PricedLine, ...]
    component_lines: Tuple[ReservationLine, ...]
    subtotal: Decimal


class DiscountResult(FrozenModel):
    normalized_code: Optional[str] = None
    applied: bool = False
    message: Optional[str] = None
    discount_id: Optional[int] = None
    priced_lines: Tuple[PricedLine, ...]
    subtotal: Decimal
    discount_amount: Decimal = ZERO
    total: Decimal

    @property
    def reservation_lines(self) -> Tuple[ReservationLine, ...]:
        return tuple(
            ReservationLine.from_priced_line(line)
            for line in self.priced_lines
            if line.kind == LineKind.PRODUCT
        )

    @property
    def header_lines(self) -> Tuple[PricedLine, ...]:
        return tuple(line for line in self.priced_lines if line.kind == LineKind.PACK_HEADER)
