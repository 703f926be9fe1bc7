import logging
from typing import Iterable

from storefront.constants.order_status import OrderEventType
from storefront.errors import OutOfStock
from storefront.models.order_item import LineKind
from storefront.repositories.orders import OrderStore
from storefront.repositories.stock import StockStore
from storefront.schemas.pipeline import ReservationLine
from storefront.services.saga import CheckoutSaga

logger = logging.getLogger(__name__)


class ReservationCoordinator:
    """Persists stock-bearing lines and reserves them atomically per order."""

    def __init__(self, orders: OrderStore, stock: StockStore):
        self.orders = orders
        self.stock = stock

    def reserve(self, order_id: int, lines: Iterable[ReservationLine], saga: CheckoutSaga) -> None:
        lines = list(lines)
        if any(line.kind == LineKind.PACK_HEADER for line in lines):
            raise ValueError("pack header lines cannot be reserved")

        self.orders.insert_reservation_lines(order_id, lines)

        # release is a no-op when nothing was reserved, so it is recorded
        # up front and also covers a partially applied reservation
        saga.record("release_stock", lambda: self.stock.release_for_order(order_id, reason="checkout_rollback"))

        if not self.stock.reserve_for_order(order_id):
            raise OutOfStock(detail={"orderId": order_id})

        self.orders.log_event(
            order_id,
            OrderEventType.STOCK_RESERVED,
            "Stock reserved",
            meta={"lines": len(lines), "units": sum(l.quantity for l in lines)},
        )
        logger.info(f"Order {order_id}: stock reserved for {len(lines)} line(s)")
