from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, update
from sqlmodel import Session, select

from storefront.models.discount import Discount, DiscountRedemption


class DiscountStore:
    def __init__(self, session: Session):
        self.session = session

    def get_by_code(self, code: str) -> Optional[Discount]:
        return self.session.exec(
            select(Discount).where(func.upper(func.trim(Discount.code)) == code)
        ).first()

    def increment_usage(self, discount_id: int) -> None:
        # not serialized against max_uses: two checkouts racing on the last
        # use can both redeem it
        self.session.connection().execute(
            update(Discount)
            .where(Discount.id == discount_id)
            .values(uses_count=Discount.uses_count + 1)
        )
        self.session.commit()

    def insert_redemption(
        self,
        *,
        discount_id: int,
        order_id: int,
        buyer_id: int,
        code: str,
        amount: Decimal,
    ) -> DiscountRedemption:
        redemption = DiscountRedemption(
            discount_id=discount_id,
            order_id=order_id,
            buyer_id=buyer_id,
            code=code,
            amount=amount,
            created_at=datetime.utcnow(),
        )
        self.session.add(redemption)
        self.session.commit()
        self.session.refresh(redemption)
        return redemption
