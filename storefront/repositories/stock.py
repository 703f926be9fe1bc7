import logging
from datetime import datetime
from typing import Dict, Iterable

from sqlalchemy import func, update
from sqlmodel import Session, select

from storefront.constants.order_status import ReservationStatus
from storefront.models.order_item import OrderItem
from storefront.models.product import Product
from storefront.models.stock_reservation import StockReservation

logger = logging.getLogger(__name__)


class StockStore:
    """Available stock plus the reserve / release operations keyed by order.

    Reservation is a single transaction of conditional decrements
    (``stock >= qty``), so two orders racing for the same units cannot both
    succeed beyond what is available.
    """

    def __init__(self, session: Session):
        self.session = session

    def get_available(self, ids: Iterable[int]) -> Dict[int, int]:
        ids = sorted(set(ids))
        if not ids:
            return {}
        rows = self.session.exec(
            select(Product.id, Product.stock).where(Product.id.in_(ids))
        ).all()
        available = {product_id: 0 for product_id in ids}
        for product_id, stock in rows:
            available[product_id] = stock or 0
        return available

    def _required_for_order(self, order_id: int) -> Dict[int, int]:
        rows = self.session.exec(
            select(OrderItem.product_id, func.sum(OrderItem.quantity))
            .where(OrderItem.order_id == order_id)
            .where(OrderItem.product_id.is_not(None))
            .group_by(OrderItem.product_id)
        ).all()
        return {product_id: int(qty) for product_id, qty in rows}

    def _has_active_reservation(self, order_id: int) -> bool:
        return self.session.exec(
            select(StockReservation.id)
            .where(StockReservation.order_id == order_id)
            .where(StockReservation.status == ReservationStatus.ACTIVE.value)
            .limit(1)
        ).first() is not None

    def reserve_for_order(self, order_id: int) -> bool:
        """Reserve every stock-bearing line of the order, all or nothing."""
        if self._has_active_reservation(order_id):
            logger.info(f"Order {order_id} already holds a reservation")
            return True

        required = self._required_for_order(order_id)
        conn = self.session.connection()
        now = datetime.utcnow()

        try:
            # fixed product order keeps concurrent reservations from deadlocking
            for product_id in sorted(required):
                qty = required[product_id]
                result = conn.execute(
                    update(Product)
                    .where(Product.id == product_id)
                    .where(Product.stock >= qty)
                    .values(stock=Product.stock - qty, updated_at=now)
                )
                if result.rowcount != 1:
                    logger.warning(
                        f"Reservation failed for order {order_id}: "
                        f"product {product_id} cannot cover {qty}"
                    )
                    self.session.rollback()
                    return False

                self.session.add(StockReservation(
                    order_id=order_id,
                    product_id=product_id,
                    quantity=qty,
                    created_at=now,
                ))

            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        logger.info(f"Reserved {sum(required.values())} units across {len(required)} products for order {order_id}")
        return True

    def release_for_order(self, order_id: int, reason: str) -> int:
        """Return reserved units to stock. Safe to call repeatedly."""
        reservations = self.session.exec(
            select(StockReservation)
            .where(StockReservation.order_id == order_id)
            .where(StockReservation.status == ReservationStatus.ACTIVE.value)
        ).all()

        conn = self.session.connection()
        now = datetime.utcnow()
        released = 0

        try:
            for reservation in reservations:
                claimed = conn.execute(
                    update(StockReservation)
                    .where(StockReservation.id == reservation.id)
                    .where(StockReservation.status == ReservationStatus.ACTIVE.value)
                    .values(
                        status=ReservationStatus.RELEASED.value,
                        release_reason=reason,
                        released_at=now,
                    )
                )
                if claimed.rowcount != 1:
                    # someone else released it in the meantime
                    continue

                conn.execute(
                    update(Product)
                    .where(Product.id == reservation.product_id)
                    .values(stock=Product.stock + reservation.quantity, updated_at=now)
                )
                released += reservation.quantity

            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        if released:
            logger.info(f"Released {released} units for order {order_id} ({reason})")
        return released
