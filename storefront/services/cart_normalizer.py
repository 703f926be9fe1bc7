import logging
import math
from typing import Any, Iterable, List, Optional

from storefront.errors import EmptyCart
from storefront.schemas.pipeline import CartLineKind, CartLineRequest

logger = logging.getLogger(__name__)

PACK_TYPES = {"PACK", "BUNDLE"}
PRODUCT_TYPES = {"PRODUCT"}


def _as_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def _as_id(value: Any) -> Optional[int]:
    number = _as_number(value)
    if number is None or number <= 0 or number != int(number):
        return None
    return int(number)


def _as_quantity(value: Any) -> int:
    number = _as_number(value)
    if number is None:
        return 1
    return max(1, math.floor(number))


def _first(raw: dict, *keys: str) -> Any:
    for key in keys:
        if raw.get(key) is not None:
            return raw[key]
    return None


def normalize_cart(raw_items: Optional[Iterable[Any]]) -> List[CartLineRequest]:
    """Turn raw cart entries into typed line requests.

    Entries without a usable numeric id (or with an unknown type) are
    dropped. Quantity defaults to 1 and never goes below 1.
    """
    lines: List[CartLineRequest] = []

    for raw in raw_items or []:
        if not isinstance(raw, dict):
            continue

        declared = str(raw.get("type") or "").strip().upper()
        pack_ref = _first(raw, "packId", "pack_id")
        product_ref = _first(raw, "productId", "product_id")

        if declared in PACK_TYPES or (not declared and pack_ref is not None and product_ref is None):
            kind, ref_id = CartLineKind.PACK, _as_id(pack_ref)
        elif declared in PRODUCT_TYPES or not declared:
            kind, ref_id = CartLineKind.PRODUCT, _as_id(product_ref)
        else:
            logger.debug(f"Dropping cart entry with unknown type {declared!r}")
            continue

        if ref_id is None:
            logger.debug(f"Dropping cart entry without a usable id: {raw!r}")
            continue

        lines.append(CartLineRequest(
            kind=kind,
            ref_id=ref_id,
            quantity=_as_quantity(raw.get("quantity")),
        ))

    if not lines:
        raise EmptyCart()
    return lines
