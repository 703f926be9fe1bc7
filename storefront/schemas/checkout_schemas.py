# storefront/schemas/checkout_schemas.py
from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Any, Dict, List, Optional


class ShippingIn(BaseModel):
    address: Optional[str] = None
    reference: Optional[str] = None
    district: Optional[str] = None
    notes: Optional[str] = None


class CheckoutRequest(BaseModel):
    # raw entries; the cart normalizer decides what survives
    items: List[Dict[str, Any]] = []
    shipping: Optional[ShippingIn] = None
    discount_code: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("discountCode", "discount_code"),
    )
    preview_only: bool = Field(
        default=False,
        validation_alias=AliasChoices("previewOnly", "preview_only"),
    )


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CheckoutPreviewResponse(CamelModel):
    ok: bool = True
    preview: bool = True
    normalized_code: Optional[str] = None
    applied: bool
    message: Optional[str] = None
    subtotal: float
    discount_amount: float
    total: float


class AppliedDiscount(CamelModel):
    code: str
    amount: float


class CheckoutResponse(CamelModel):
    ok: bool = True
    order_id: int
    payment_id: int
    preference_id: str
    payment_redirect_url: str
    sandbox_redirect_url: Optional[str] = None
    subtotal: float
    discount_amount: float
    total: float
    applied_discount: Optional[AppliedDiscount] = None
    discount_message: Optional[str] = None
