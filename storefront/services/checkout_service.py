"""Checkout order creation.

normalize -> resolve catalog -> stock pre-check -> price -> discount
-> [preview stops here] -> order -> reserve -> pack headers -> payment intent
-> payment session.

Every step after the order row exists commits on its own; failures are undone
through ``CheckoutSaga`` compensations (release stock, delete order).
"""

import logging
from typing import Optional, Union

from sqlmodel import Session

from storefront.constants.order_status import OrderEventType
from storefront.errors import AddressRequired, NothingToPay
from storefront.models.buyer import Buyer
from storefront.repositories.buyers import BuyerStore
from storefront.repositories.catalog import CatalogStore
from storefront.repositories.discounts import DiscountStore
from storefront.repositories.orders import OrderStore
from storefront.repositories.prices import PriceStore
from storefront.repositories.stock import StockStore
from storefront.schemas.checkout_schemas import (
    AppliedDiscount,
    CheckoutPreviewResponse,
    CheckoutRequest,
    CheckoutResponse,
    ShippingIn,
)
from storefront.schemas.pipeline import DiscountResult, PricingResult
from storefront.services.cart_normalizer import normalize_cart
from storefront.services.catalog_resolver import resolve_catalog
from storefront.services.discount_service import evaluate_discount
from storefront.services.order_service import OrderAssembler
from storefront.services.payment_gateway import build_session_request
from storefront.services.pricing_service import price_cart
from storefront.services.reservation_service import ReservationCoordinator
from storefront.services.saga import CheckoutSaga
from storefront.services.stock_service import aggregate_requirements, check_availability

logger = logging.getLogger(__name__)


def _clean(value: Optional[str]) -> Optional[str]:
    value = (value or "").strip()
    return value or None


def resolve_shipping(request: CheckoutRequest, buyer: Buyer) -> ShippingIn:
    """Shipping from the request, falling back to the buyer's saved address."""
    given = request.shipping or ShippingIn()
    address = _clean(given.address)

    if address:
        return ShippingIn(
            address=address,
            reference=_clean(given.reference),
            district=_clean(given.district),
            notes=_clean(given.notes),
        )

    saved = _clean(buyer.address_line1)
    if not saved:
        raise AddressRequired()

    return ShippingIn(
        address=saved,
        reference=_clean(given.reference) or _clean(buyer.reference),
        district=_clean(given.district) or _clean(buyer.district),
        notes=_clean(given.notes),
    )


class CheckoutService:
    def __init__(self, session: Session, gateway):
        self.session = session
        self.gateway = gateway

        self.catalog = CatalogStore(session)
        self.prices = PriceStore(session)
        self.stock = StockStore(session)
        self.orders = OrderStore(session)
        self.discounts = DiscountStore(session)
        self.buyers = BuyerStore(session)

        self.assembler = OrderAssembler(self.orders)
        self.reservations = ReservationCoordinator(self.orders, self.stock)

    def quote(self, request: CheckoutRequest, buyer: Buyer):
        """Everything up to and including the discount. Read-only."""
        lines = normalize_cart(request.items)
        catalog = resolve_catalog(self.catalog, lines)

        check_availability(self.stock, aggregate_requirements(lines, catalog))

        pricing = price_cart(lines, catalog, self.prices)
        discount = evaluate_discount(
            request.discount_code,
            pricing,
            self.discounts,
            school=self.buyers.get_school(buyer.school_id),
            currency=pricing.currency,
        )
        return pricing, discount

    def checkout(
        self, request: CheckoutRequest, buyer: Buyer
    ) -> Union[CheckoutPreviewResponse, CheckoutResponse]:
        shipping = None if request.preview_only else resolve_shipping(request, buyer)

        pricing, discount = self.quote(request, buyer)

        if request.preview_only:
            return CheckoutPreviewResponse(
                normalized_code=discount.normalized_code,
                applied=discount.applied,
                message=discount.message,
                subtotal=float(discount.subtotal),
                discount_amount=float(discount.discount_amount),
                total=float(discount.total),
            )

        if discount.total <= 0:
            raise NothingToPay(detail={"subtotal": float(discount.subtotal)})

        return self.place_order(buyer, shipping, pricing, discount)

    def place_order(
        self,
        buyer: Buyer,
        shipping: ShippingIn,
        pricing: PricingResult,
        discount: DiscountResult,
    ) -> CheckoutResponse:
        saga = CheckoutSaga(f"checkout buyer={buyer.id}")
        order_id = None

        try:
            order = self.assembler.create_order(
                buyer=buyer,
                shipping=shipping,
                currency=pricing.currency,
                discount=discount,
            )
            order_id = order.id
            saga.record("delete_order", lambda: self.orders.delete_order(order_id))
            self.assembler.mark_placed(order)

            self.reservations.reserve(
                order_id,
                discount.reservation_lines + pricing.component_lines,
                saga,
            )

            self.assembler.attach_pack_headers(order_id, discount.header_lines)
            payment = self.assembler.create_payment_intent(order, provider=self.gateway.provider)

            session_request = build_session_request(order, payment, list(discount.priced_lines), buyer)
            payment_session = self.gateway.create_payment_session(session_request)

            self.orders.save_payment_session(payment.id, payment_session.id, payment_session.raw)
        except Exception as exc:
            logger.error(f"Checkout failed for buyer {buyer.id} (order {order_id}): {exc}")
            # a failed commit leaves the session unusable for compensation
            self.session.rollback()
            saga.compensate()
            raise

        self._log_session_created(order_id, payment_session.id)
        self._record_discount_usage(order_id, buyer, discount)

        logger.info(f"Order {order_id} ready for payment via {self.gateway.provider}")
        return CheckoutResponse(
            order_id=order_id,
            payment_id=payment.id,
            preference_id=payment_session.id,
            payment_redirect_url=payment_session.redirect_url,
            sandbox_redirect_url=payment_session.sandbox_url,
            subtotal=float(discount.subtotal),
            discount_amount=float(discount.discount_amount),
            total=float(discount.total),
            applied_discount=(
                AppliedDiscount(code=discount.normalized_code, amount=float(discount.discount_amount))
                if discount.applied else None
            ),
            discount_message=discount.message,
        )

    def _log_session_created(self, order_id: int, preference_id: str) -> None:
        """Best-effort: the order already has a payable session at this point."""
        try:
            self.orders.log_event(
                order_id,
                OrderEventType.PAYMENT_SESSION_CREATED,
                "Payment session created",
                meta={"provider": self.gateway.provider, "preference_id": preference_id},
            )
        except Exception:
            logger.exception(f"Could not log payment session {preference_id} for order {order_id}")
            self.session.rollback()

    def _record_discount_usage(self, order_id: int, buyer: Buyer, discount: DiscountResult) -> None:
        """Best-effort: a bookkeeping failure never undoes a placed order."""
        if not discount.applied:
            return
        try:
            self.discounts.increment_usage(discount.discount_id)
            self.discounts.insert_redemption(
                discount_id=discount.discount_id,
                order_id=order_id,
                buyer_id=buyer.id,
                code=discount.normalized_code,
                amount=discount.discount_amount,
            )
        except Exception:
            logger.exception(f"Could not record usage of discount {discount.normalized_code} for order {order_id}")
            self.session.rollback()
