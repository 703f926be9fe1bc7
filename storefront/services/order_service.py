import logging
from typing import Iterable

from storefront.constants.order_status import FulfillmentStatus, OrderEventType, OrderStatus
from storefront.models.buyer import Buyer
from storefront.models.order import Order
from storefront.models.payment import Payment
from storefront.repositories.orders import OrderStore
from storefront.schemas.checkout_schemas import ShippingIn
from storefront.schemas.pipeline import DiscountResult, PricedLine

logger = logging.getLogger(__name__)


class OrderAssembler:
    def __init__(self, orders: OrderStore):
        self.orders = orders

    def create_order(
        self,
        *,
        buyer: Buyer,
        shipping: ShippingIn,
        currency: str,
        discount: DiscountResult,
    ) -> Order:
        order = self.orders.insert_order(
            buyer_id=buyer.id,
            customer_name=buyer.full_name,
            customer_email=buyer.email or "",
            customer_phone=buyer.phone or "",
            shipping_address=shipping.address,
            shipping_reference=shipping.reference,
            shipping_district=shipping.district,
            shipping_notes=shipping.notes,
            currency=currency,
            subtotal=discount.subtotal,
            discount_amount=discount.discount_amount,
            total=discount.total,
            discount_code=discount.normalized_code if discount.applied else None,
            discount_id=discount.discount_id if discount.applied else None,
            status=OrderStatus.PAYMENT_PENDING.value,
            fulfillment_status=FulfillmentStatus.PENDING.value,
        )
        logger.info(f"Order {order.id} created for buyer {buyer.id}: total {order.total} {currency}")
        return order

    def mark_placed(self, order: Order) -> None:
        """Timeline entry for a new order; written once its delete is recorded."""
        self.orders.log_event(order.id, OrderEventType.ORDER_PLACED, "Order placed", meta={"total": str(order.total)})

    def attach_pack_headers(self, order_id: int, lines: Iterable[PricedLine]) -> int:
        """Pack header rows go in only after stock is reserved."""
        return self.orders.insert_header_lines(order_id, lines)

    def create_payment_intent(self, order: Order, provider: str) -> Payment:
        return self.orders.insert_payment_intent(
            order_id=order.id,
            provider=provider,
            amount=order.total,
            currency=order.currency,
        )
