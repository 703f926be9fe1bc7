from typing import Dict, Iterable, List

from sqlmodel import Session, select

from storefront.models.pack import Pack, PackItem
from storefront.models.product import Product
from storefront.schemas.pipeline import CatalogPack, CatalogProduct, PackComponent


class CatalogStore:
    """Read-only view of products, packs and pack composition."""

    def __init__(self, session: Session):
        self.session = session

    def get_products(self, ids: Iterable[int]) -> Dict[int, CatalogProduct]:
        ids = sorted(set(ids))
        if not ids:
            return {}
        rows = self.session.exec(select(Product).where(Product.id.in_(ids))).all()
        return {
            p.id: CatalogProduct(id=p.id, title=p.title, sale_code=p.sale_code, visible=p.visible)
            for p in rows
        }

    def get_packs(self, ids: Iterable[int]) -> Dict[int, CatalogPack]:
        """Packs without their components; see ``get_pack_components``."""
        ids = sorted(set(ids))
        if not ids:
            return {}
        rows = self.session.exec(select(Pack).where(Pack.id.in_(ids))).all()
        return {
            p.id: CatalogPack(id=p.id, title=p.title, sale_code=p.sale_code, visible=p.visible)
            for p in rows
        }

    def get_pack_components(self, pack_ids: Iterable[int]) -> Dict[int, List[PackComponent]]:
        pack_ids = sorted(set(pack_ids))
        components: Dict[int, List[PackComponent]] = {pid: [] for pid in pack_ids}
        if not pack_ids:
            return components

        rows = self.session.exec(
            select(PackItem)
            .where(PackItem.pack_id.in_(pack_ids))
            .order_by(PackItem.pack_id, PackItem.id)
        ).all()

        for item in rows:
            components[item.pack_id].append(
                PackComponent(product_id=item.product_id, quantity=max(1, item.quantity))
            )
        return components
