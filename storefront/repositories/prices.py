from decimal import Decimal
from typing import Dict, Iterable, Optional

from sqlmodel import Session, select

from storefront.models.price_list import PriceList, PriceListItem
from storefront.utils.money import round2


class PriceStore:
    def __init__(self, session: Session):
        self.session = session

    def get_active_price_list(self) -> Optional[PriceList]:
        """The default active list, falling back to the oldest active one."""
        preferred = self.session.exec(
            select(PriceList)
            .where(PriceList.active == True)  # noqa: E712
            .where(PriceList.is_default == True)  # noqa: E712
            .order_by(PriceList.id)
            .limit(1)
        ).first()
        if preferred:
            return preferred

        return self.session.exec(
            select(PriceList)
            .where(PriceList.active == True)  # noqa: E712
            .order_by(PriceList.created_at, PriceList.id)
            .limit(1)
        ).first()

    def get_product_prices(self, price_list_id: int, product_ids: Iterable[int]) -> Dict[int, Decimal]:
        product_ids = sorted(set(product_ids))
        if not product_ids:
            return {}
        rows = self.session.exec(
            select(PriceListItem)
            .where(PriceListItem.price_list_id == price_list_id)
            .where(PriceListItem.product_id.in_(product_ids))
        ).all()
        return {row.product_id: round2(row.price) for row in rows if row.price is not None}

    def get_pack_prices(self, price_list_id: int, pack_ids: Iterable[int]) -> Dict[int, Decimal]:
        pack_ids = sorted(set(pack_ids))
        if not pack_ids:
            return {}
        rows = self.session.exec(
            select(PriceListItem)
            .where(PriceListItem.price_list_id == price_list_id)
            .where(PriceListItem.pack_id.in_(pack_ids))
        ).all()
        return {row.pack_id: round2(row.price) for row in rows if row.price is not None}

    def get_unit_price(
        self,
        price_list_id: int,
        product_id: Optional[int] = None,
        pack_id: Optional[int] = None,
    ) -> Optional[Decimal]:
        if (product_id is None) == (pack_id is None):
            raise ValueError("pass exactly one of product_id or pack_id")
        if product_id is not None:
            return self.get_product_prices(price_list_id, [product_id]).get(product_id)
        return self.get_pack_prices(price_list_id, [pack_id]).get(pack_id)
