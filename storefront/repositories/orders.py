import logging
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy import delete
from sqlmodel import Session, select

from storefront.constants.order_status import OrderEventType, PaymentStatus
from storefront.models.order import Order
from storefront.models.order_event import OrderEvent
from storefront.models.order_item import LineKind, OrderItem
from storefront.models.payment import Payment
from storefront.schemas.pipeline import PricedLine, ReservationLine

logger = logging.getLogger(__name__)


class OrderStore:
    def __init__(self, session: Session):
        self.session = session

    def insert_order(self, **fields) -> Order:
        order = Order(**fields)
        self.session.add(order)
        self.session.commit()
        self.session.refresh(order)
        return order

    def insert_reservation_lines(self, order_id: int, lines: Iterable[ReservationLine]) -> int:
        count = 0
        for line in lines:
            self.session.add(OrderItem(
                order_id=order_id,
                kind=line.kind.value,
                product_id=line.product_id,
                pack_id=line.pack_id,
                title_snapshot=line.title,
                sale_code_snapshot=line.sale_code,
                quantity=line.quantity,
                unit_list_price=line.unit_list_price,
                unit_price=line.unit_price,
                line_total=line.line_total,
            ))
            count += 1
        self.session.commit()
        return count

    def insert_header_lines(self, order_id: int, lines: Iterable[PricedLine]) -> int:
        count = 0
        for line in lines:
            if line.kind != LineKind.PACK_HEADER:
                raise ValueError(f"expected a pack header line, got {line.kind.value}")
            self.session.add(OrderItem(
                order_id=order_id,
                kind=line.kind.value,
                product_id=None,
                pack_id=line.pack_id,
                title_snapshot=line.title,
                sale_code_snapshot=line.sale_code,
                quantity=line.quantity,
                unit_list_price=line.unit_list_price,
                unit_price=line.unit_final_price,
                line_total=line.line_total,
            ))
            count += 1
        self.session.commit()
        return count

    def insert_payment_intent(
        self,
        *,
        order_id: int,
        provider: str,
        amount: Decimal,
        currency: str,
    ) -> Payment:
        payment = Payment(
            order_id=order_id,
            provider=provider,
            status=PaymentStatus.CREATED.value,
            amount=amount,
            currency=currency,
        )
        self.session.add(payment)
        self.session.commit()
        self.session.refresh(payment)
        return payment

    def save_payment_session(self, payment_id: int, preference_id: str, raw: Optional[dict] = None) -> Payment:
        payment = self.session.get(Payment, payment_id)
        payment.preference_id = preference_id
        payment.raw = raw
        payment.updated_at = datetime.utcnow()
        self.session.add(payment)
        self.session.commit()
        self.session.refresh(payment)
        return payment

    def get_payment_intent(self, order_id: int) -> Optional[Payment]:
        return self.session.exec(select(Payment).where(Payment.order_id == order_id)).first()

    def log_event(
        self,
        order_id: int,
        event_type: OrderEventType,
        label: str,
        meta: Optional[dict] = None,
    ) -> None:
        """Append-only event log for the order timeline."""
        self.session.add(OrderEvent(
            order_id=order_id,
            event_type=event_type.value,
            label=label,
            meta=meta,
            created_at=datetime.utcnow(),
        ))
        self.session.commit()

    def delete_order(self, order_id: int) -> None:
        """Remove the order with its lines, payment intents and timeline.

        Stock reservations are left alone; releasing them is the stock
        store's job and their rows stay as the stock ledger.
        """
        conn = self.session.connection()
        try:
            conn.execute(delete(OrderEvent).where(OrderEvent.order_id == order_id))
            conn.execute(delete(Payment).where(Payment.order_id == order_id))
            conn.execute(delete(OrderItem).where(OrderItem.order_id == order_id))
            conn.execute(delete(Order).where(Order.id == order_id))
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        logger.info(f"Deleted order {order_id}")
