import logging
from typing import Dict, List

from storefront.errors import InsufficientStock
from storefront.repositories.stock import StockStore
from storefront.schemas.pipeline import CartLineKind, CartLineRequest, CatalogSnapshot

logger = logging.getLogger(__name__)


def aggregate_requirements(lines: List[CartLineRequest], catalog: CatalogSnapshot) -> Dict[int, int]:
    """Units needed per base product, with packs expanded into components."""
    required: Dict[int, int] = {}

    for line in lines:
        if line.kind == CartLineKind.PRODUCT:
            required[line.ref_id] = required.get(line.ref_id, 0) + line.quantity
            continue

        for component in catalog.packs[line.ref_id].components:
            required[component.product_id] = (
                required.get(component.product_id, 0) + line.quantity * component.quantity
            )

    return required


def check_availability(store: StockStore, required: Dict[int, int]) -> None:
    """Early exit before pricing. Only a read; reservation is the real check."""
    available = store.get_available(required.keys())

    for product_id, qty in required.items():
        have = available.get(product_id, 0)
        if have < qty:
            logger.info(f"Insufficient stock for product {product_id}: available {have}, required {qty}")
            raise InsufficientStock(product_id, have, qty)
