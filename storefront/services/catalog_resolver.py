from typing import List

from storefront.errors import CatalogEntryNotFound, InvalidPacksInCart, InvalidProductsInCart
from storefront.repositories.catalog import CatalogStore
from storefront.schemas.pipeline import CartLineKind, CartLineRequest, CatalogSnapshot


def _unique(values) -> List[int]:
    return list(dict.fromkeys(values))


def resolve_catalog(store: CatalogStore, lines: List[CartLineRequest]) -> CatalogSnapshot:
    """Load every pack and product the cart touches, directly or through a pack.

    Hidden entries are rejected no matter how the request was built, and so
    are packs without components.
    """
    pack_ids = _unique(l.ref_id for l in lines if l.kind == CartLineKind.PACK)
    direct_product_ids = _unique(l.ref_id for l in lines if l.kind == CartLineKind.PRODUCT)

    packs = store.get_packs(pack_ids)

    missing_packs = [pid for pid in pack_ids if pid not in packs]
    if missing_packs:
        raise CatalogEntryNotFound(detail={"packIds": missing_packs})

    hidden_packs = [pid for pid in pack_ids if not packs[pid].visible]
    if hidden_packs:
        raise InvalidPacksInCart(detail={"packIds": hidden_packs})

    components = store.get_pack_components(pack_ids)
    empty_packs = [pid for pid in pack_ids if not components.get(pid)]
    if empty_packs:
        raise CatalogEntryNotFound(detail={"packIds": empty_packs, "reason": "PACK_WITHOUT_COMPONENTS"})

    packs = {
        pid: packs[pid].model_copy(update={"components": tuple(components[pid])})
        for pid in pack_ids
    }

    product_ids = _unique(
        direct_product_ids
        + [c.product_id for pid in pack_ids for c in packs[pid].components]
    )
    products = store.get_products(product_ids)

    missing_products = [pid for pid in product_ids if pid not in products]
    if missing_products:
        raise CatalogEntryNotFound(detail={"productIds": missing_products})

    hidden_products = [pid for pid in product_ids if not products[pid].visible]
    if hidden_products:
        raise InvalidProductsInCart(detail={"productIds": hidden_products})

    return CatalogSnapshot(products=products, packs=packs)
