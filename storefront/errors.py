"""Checkout error taxonomy.

Every error the checkout pipeline raises on purpose carries a stable ``code``
(the value clients switch on), the HTTP status it maps to and an optional
``detail`` payload. They are rendered as ``{"error": code, "detail": ...}`` by
the exception handler registered in ``storefront.main``.
"""

from typing import Any, Optional


class CheckoutError(Exception):
    code = "CHECKOUT_FAILED"
    status_code = 400

    def __init__(self, detail: Optional[Any] = None, message: Optional[str] = None):
        self.detail = detail
        super().__init__(message or self.code)

    def to_dict(self) -> dict:
        body = {"error": self.code}
        if self.detail is not None:
            body["detail"] = self.detail
        return body


# -------------------------
# Client / validation errors
# -------------------------

class AuthRequired(CheckoutError):
    code = "AUTH_REQUIRED"
    status_code = 401


class BuyerProfileRequired(CheckoutError):
    code = "BUYER_PROFILE_REQUIRED"
    status_code = 403


class EmptyCart(CheckoutError):
    code = "EMPTY_CART"


class InvalidPacksInCart(CheckoutError):
    code = "INVALID_PACKS_IN_CART"


class InvalidProductsInCart(CheckoutError):
    code = "INVALID_PRODUCTS_IN_CART"


class CatalogEntryNotFound(CheckoutError):
    code = "NOT_FOUND"
    status_code = 404


class NoPrice(CheckoutError):
    code = "NO_PRICE"


class AddressRequired(CheckoutError):
    code = "ADDRESS_REQUIRED"


class NothingToPay(CheckoutError):
    """The discounted total is 0.00; processors refuse zero-amount sessions."""

    code = "NOTHING_TO_PAY"


class SchoolRequiredForDiscount(CheckoutError):
    code = "SCHOOL_REQUIRED_FOR_DISCOUNT"


class DiscountNotAllowedForSchool(CheckoutError):
    code = "DISCOUNT_NOT_ALLOWED_FOR_SCHOOL"
    status_code = 403


# -------------------------
# Inventory conflicts
# -------------------------

class InsufficientStock(CheckoutError):
    code = "INSUFFICIENT_STOCK"
    status_code = 409

    def __init__(self, product_id: int, available: int, required: int):
        super().__init__(
            detail={"productId": product_id, "available": available, "required": required},
            message=f"Insufficient stock for product {product_id}: "
                    f"available {available}, required {required}",
        )
        self.product_id = product_id
        self.available = available
        self.required = required


class OutOfStock(CheckoutError):
    code = "OUT_OF_STOCK"
    status_code = 409


# -------------------------
# Downstream failures
# -------------------------

class PaymentGatewayError(CheckoutError):
    """The payment processor refused or failed to create a session."""

    status_code = 502

    def __init__(self, message: str, response: Optional[Any] = None):
        super().__init__(message=message)
        self.response = response

    def to_dict(self) -> dict:
        return {"error": str(self)}


class CheckoutFailed(CheckoutError):
    """Anything unexpected; raised after compensation has been attempted."""

    code = "CHECKOUT_FAILED"
    status_code = 500
