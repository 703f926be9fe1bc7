"""Reconciliation for checkouts whose rollback did not finish.

Compensation during checkout is best-effort. When it fails half way it can
leave an unpaid order with reserved stock and no payment session, or a
reservation whose order row is already gone. This job cleans both up; run it
periodically (cron, scheduler) with ``python -m storefront.jobs.reservation_janitor``.
"""

import logging
from datetime import datetime, timedelta
from typing import Dict, Optional

from sqlmodel import Session, select

from storefront.config import settings
from storefront.constants.order_status import OrderStatus, ReservationStatus
from storefront.database import engine
from storefront.models.order import Order
from storefront.models.stock_reservation import StockReservation
from storefront.repositories.orders import OrderStore
from storefront.repositories.stock import StockStore

logger = logging.getLogger(__name__)


def release_stale_checkouts(
    session: Session,
    older_than_minutes: Optional[int] = None,
    now: Optional[datetime] = None,
) -> Dict[str, int]:
    minutes = older_than_minutes if older_than_minutes is not None else settings.RESERVATION_STALE_MINUTES
    cutoff = (now or datetime.utcnow()) - timedelta(minutes=minutes)

    orders = OrderStore(session)
    stock = StockStore(session)

    stale_ids = session.exec(
        select(Order.id)
        .where(Order.status == OrderStatus.PAYMENT_PENDING.value)
        .where(Order.created_at < cutoff)
    ).all()

    deleted = 0
    for order_id in stale_ids:
        payment = orders.get_payment_intent(order_id)
        if payment is not None and payment.preference_id:
            # the buyer got a payment link; only the webhook may settle it
            continue

        stock.release_for_order(order_id, reason="janitor")
        orders.delete_order(order_id)
        deleted += 1

    existing_orders = select(Order.id)
    orphan_ids = session.exec(
        select(StockReservation.order_id)
        .where(StockReservation.status == ReservationStatus.ACTIVE.value)
        .where(StockReservation.created_at < cutoff)
        .where(StockReservation.order_id.not_in(existing_orders))
        .distinct()
    ).all()

    released_units = 0
    for order_id in orphan_ids:
        released_units += stock.release_for_order(order_id, reason="janitor_orphan")

    if deleted or orphan_ids:
        logger.warning(
            f"Janitor deleted {deleted} abandoned order(s) and released "
            f"{released_units} orphaned unit(s) from {len(orphan_ids)} order(s)"
        )

    return {
        "orders_deleted": deleted,
        "orphan_orders_released": len(orphan_ids),
        "orphan_units_released": released_units,
    }


def run():
    logging.basicConfig(level=settings.LOG_LEVEL.upper())
    with Session(engine) as session:
        result = release_stale_checkouts(session)
    logger.info(f"Reservation janitor finished: {result}")
    return result


if __name__ == "__main__":
    run()
