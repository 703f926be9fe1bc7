"""Discount code validation and redistribution over priced lines.

Only one code is evaluated per order. A code that fails validation never
aborts checkout: the result comes back with ``applied=False`` and a message
for the buyer. The two school checks are the exception and raise.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from storefront.errors import DiscountNotAllowedForSchool, SchoolRequiredForDiscount
from storefront.models.discount import Discount, DiscountScope, DiscountType
from storefront.models.school import School
from storefront.repositories.discounts import DiscountStore
from storefront.schemas.pipeline import DiscountResult, PricedLine, PricingResult
from storefront.utils.money import ZERO, floor_cents, money_sum, round2, to_decimal

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")


def normalize_code(raw: Optional[str]) -> Optional[str]:
    code = str(raw or "").strip().upper()
    return code or None


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _check_school_prefix(code: str, school: School) -> None:
    # school codes are issued as "<PREFIX>-<rest>"
    if "-" not in code or not school.discount_prefix:
        return
    prefix = code.split("-", 1)[0]
    if prefix != school.discount_prefix.strip().upper():
        raise DiscountNotAllowedForSchool(detail={"code": code})


def eligible_line_indexes(
    rule: Discount,
    code: str,
    pricing: PricingResult,
    school: Optional[School],
) -> List[int]:
    scope = str(rule.scope or "").upper()
    lines = pricing.priced_lines

    if scope == DiscountScope.ALL.value:
        return list(range(len(lines)))

    if scope == DiscountScope.PRODUCT.value:
        return [i for i, l in enumerate(lines) if l.base_product_id == rule.product_id]

    if scope == DiscountScope.PRICE_LIST.value:
        if rule.price_list_id in (None, pricing.price_list_id):
            return list(range(len(lines)))
        return []

    if scope == DiscountScope.SCHOOL_PRODUCT.value:
        if school is None:
            raise SchoolRequiredForDiscount(detail={"code": code})
        _check_school_prefix(code, school)
        if rule.school_id != school.id:
            return []
        return [i for i, l in enumerate(lines) if l.base_product_id == rule.product_id]

    logger.warning(f"Discount {rule.id} has unknown scope {rule.scope!r}")
    return []


def apply_percent(lines: List[PricedLine], indexes: List[int], value: Decimal) -> List[PricedLine]:
    percent = min(max(to_decimal(value), ZERO), HUNDRED)
    factor = (HUNDRED - percent) / HUNDRED

    out = list(lines)
    for i in indexes:
        line = out[i]
        out[i] = line.with_unit_price(round2(line.unit_list_price * factor))
    return out


def apply_fixed(lines: List[PricedLine], indexes: List[int], value: Decimal) -> List[PricedLine]:
    """Spread a fixed amount over the eligible lines, in order.

    Each line takes a whole-cent reduction per unit, truncated so that
    ``quantity * per_unit`` never exceeds what is left to give away.
    ``remaining`` shrinks by what the line actually lost and the leftover
    carries to the next line. Further passes run while a pass still moves
    money, so a cent that a large-quantity line cannot absorb lands on a
    line with fewer units when there is one.
    """
    remaining = round2(max(to_decimal(value), ZERO))

    out = list(lines)
    progressed = True
    while remaining > ZERO and progressed:
        progressed = False
        for i in indexes:
            if remaining <= ZERO:
                break

            line = out[i]
            amount = min(remaining, line.line_total)
            per_unit = floor_cents(amount / line.quantity)
            if per_unit <= ZERO:
                continue

            updated = line.with_unit_price(line.unit_final_price - per_unit)
            realized = round2(line.line_total - updated.line_total)
            if realized <= ZERO:
                continue

            out[i] = updated
            remaining = round2(remaining - realized)
            progressed = True

    return out


def _not_applied(base: DiscountResult, message: str) -> DiscountResult:
    return base.model_copy(update={"message": message})


def evaluate_discount(
    raw_code: Optional[str],
    pricing: PricingResult,
    store: DiscountStore,
    *,
    school: Optional[School],
    currency: str,
    now: Optional[datetime] = None,
) -> DiscountResult:
    code = normalize_code(raw_code)
    base = DiscountResult(
        normalized_code=code,
        priced_lines=pricing.priced_lines,
        subtotal=pricing.subtotal,
        total=pricing.subtotal,
    )
    if code is None:
        return base

    rule = store.get_by_code(code)
    if rule is None:
        return _not_applied(base, "Discount code not found.")

    if not rule.active:
        return _not_applied(base, "This discount code is not active.")

    now = _naive_utc(now or datetime.utcnow())
    if rule.starts_at and now < _naive_utc(rule.starts_at):
        return _not_applied(base, "This discount code is not valid yet.")
    if rule.ends_at and now > _naive_utc(rule.ends_at):
        return _not_applied(base, "This discount code has expired.")

    if rule.max_uses is not None and rule.uses_count >= rule.max_uses:
        return _not_applied(base, "This discount code has reached its usage limit.")

    if rule.min_subtotal is not None and pricing.subtotal < round2(rule.min_subtotal):
        return _not_applied(base, f"A minimum purchase of {round2(rule.min_subtotal)} is required for this code.")

    if str(rule.currency or currency).upper() != currency.upper():
        return _not_applied(base, "This discount code is not valid for the order currency.")

    indexes = eligible_line_indexes(rule, code, pricing, school)
    if not indexes:
        return _not_applied(base, "This discount code does not apply to the items in your cart.")

    if str(rule.type).upper() == DiscountType.FIXED.value:
        lines = apply_fixed(list(pricing.priced_lines), indexes, rule.value)
    else:
        lines = apply_percent(list(pricing.priced_lines), indexes, rule.value)

    discount_amount = round2(pricing.subtotal - money_sum(l.line_total for l in lines))
    if discount_amount <= ZERO:
        return _not_applied(base, "This discount code does not reduce the order total.")

    logger.info(f"Discount {code} applied: -{discount_amount} on subtotal {pricing.subtotal}")
    return DiscountResult(
        normalized_code=code,
        applied=True,
        discount_id=rule.id,
        priced_lines=tuple(lines),
        subtotal=pricing.subtotal,
        discount_amount=discount_amount,
        total=round2(pricing.subtotal - discount_amount),
    )
