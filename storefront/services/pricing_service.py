from typing import List

from storefront.errors import NoPrice
from storefront.models.order_item import LineKind
from storefront.repositories.prices import PriceStore
from storefront.schemas.pipeline import (
    CartLineKind,
    CartLineRequest,
    CatalogSnapshot,
    PricedLine,
    PricingResult,
    ReservationLine,
)
from storefront.utils.money import ZERO, money_sum


def _no_price(line: CartLineRequest) -> NoPrice:
    key = "packId" if line.kind == CartLineKind.PACK else "productId"
    return NoPrice(detail={key: line.ref_id}, message=f"No price set for {key} {line.ref_id}")


def price_cart(
    lines: List[CartLineRequest],
    catalog: CatalogSnapshot,
    store: PriceStore,
) -> PricingResult:
    """Price every line from the active price list.

    Packs are priced as a unit: one header line at the pack price, plus
    zero-priced component lines that exist only for stock bookkeeping.
    """
    price_list = store.get_active_price_list()
    if price_list is None:
        raise _no_price(lines[0])

    product_prices = store.get_product_prices(
        price_list.id, [l.ref_id for l in lines if l.kind == CartLineKind.PRODUCT]
    )
    pack_prices = store.get_pack_prices(
        price_list.id, [l.ref_id for l in lines if l.kind == CartLineKind.PACK]
    )

    priced: List[PricedLine] = []
    components: List[ReservationLine] = []

    for line in lines:
        if line.kind == CartLineKind.PRODUCT:
            unit = product_prices.get(line.ref_id)
            if unit is None or unit < ZERO:
                raise _no_price(line)

            product = catalog.products[line.ref_id]
            priced.append(PricedLine.at_list_price(
                kind=LineKind.PRODUCT,
                base_product_id=product.id,
                title=product.title,
                sale_code=product.sale_code,
                quantity=line.quantity,
                unit_list_price=unit,
            ))
            continue

        unit = pack_prices.get(line.ref_id)
        if unit is None or unit < ZERO:
            raise _no_price(line)

        pack = catalog.packs[line.ref_id]
        priced.append(PricedLine.at_list_price(
            kind=LineKind.PACK_HEADER,
            pack_id=pack.id,
            title=pack.title,
            sale_code=pack.sale_code,
            quantity=line.quantity,
            unit_list_price=unit,
        ))

        for component in pack.components:
            product = catalog.products[component.product_id]
            components.append(ReservationLine(
                kind=LineKind.PACK_COMPONENT,
                product_id=product.id,
                pack_id=pack.id,
                title=product.title,
                sale_code=product.sale_code,
                quantity=line.quantity * component.quantity,
            ))

    return PricingResult(
        price_list_id=price_list.id,
        currency=price_list.currency,
        priced_lines=tuple(priced),
        component_lines=tuple(components),
        subtotal=money_sum(l.line_total for l in priced),
    )
