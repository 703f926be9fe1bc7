"""Tests for discount evaluation.

Covers:
- PERCENT and FIXED redistribution, including a fixed amount above the subtotal
- prices never go negative or above list, discount never exceeds the subtotal
- validation failures come back as messages, not errors
- scope rules: PRODUCT, PRICE_LIST and SCHOOL_PRODUCT
"""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from storefront.errors import DiscountNotAllowedForSchool, SchoolRequiredForDiscount
from storefront.models.order_item import LineKind
from storefront.repositories.discounts import DiscountStore
from storefront.schemas.pipeline import PricedLine, PricingResult
from storefront.services.discount_service import apply_fixed, evaluate_discount, normalize_code
from storefront.utils.money import money_sum


def product(product_id, unit, qty=1):
    return PricedLine.at_list_price(
        kind=LineKind.PRODUCT,
        base_product_id=product_id,
        title=f"Product {product_id}",
        quantity=qty,
        unit_list_price=Decimal(unit),
    )


def header(pack_id, unit, qty=1):
    return PricedLine.at_list_price(
        kind=LineKind.PACK_HEADER,
        pack_id=pack_id,
        title=f"Pack {pack_id}",
        quantity=qty,
        unit_list_price=Decimal(unit),
    )


def pricing(*lines, price_list_id=1, currency="PEN"):
    return PricingResult(
        price_list_id=price_list_id,
        currency=currency,
        priced_lines=tuple(lines),
        component_lines=(),
        subtotal=money_sum(l.line_total for l in lines),
    )


def evaluate(session, code, result, school=None, **kw):
    return evaluate_discount(code, result, DiscountStore(session), school=school, currency=result.currency, **kw)


class TestNormalizeCode:
    @pytest.mark.parametrize("raw, expected", [("  save10 ", "SAVE10"), ("", None), (None, None), ("   ", None)])
    def test_trim_and_upper(self, raw, expected):
        assert normalize_code(raw) == expected


class TestPercent:
    def test_ten_percent_of_everything(self, session, seed):
        seed.discount("SAVE10", "PERCENT", "10")
        result = evaluate(session, "save10", pricing(product(1, "50.00", 2)))

        assert result.applied
        assert result.normalized_code == "SAVE10"
        assert result.discount_amount == Decimal("10.00")
        assert result.total == Decimal("90.00")
        assert result.priced_lines[0].unit_final_price == Decimal("45.00")

    def test_percent_over_hundred_is_capped(self, session, seed):
        seed.discount("ALL", "PERCENT", "150")
        result = evaluate(session, "ALL", pricing(product(1, "20.00")))

        assert result.total == Decimal("0.00")
        assert result.discount_amount == Decimal("20.00")

    def test_no_code_is_a_no_op(self, session):
        base = pricing(product(1, "20.00"))
        result = evaluate(session, None, base)

        assert not result.applied
        assert result.message is None
        assert result.total == base.subtotal
        assert result.priced_lines == base.priced_lines


class TestFixed:
    def test_amount_within_subtotal_is_conserved(self, session, seed):
        seed.discount("MINUS25", "FIXED", "25.00")
        result = evaluate(session, "MINUS25", pricing(product(1, "10.00", 2), product(2, "15.00", 5)))

        assert result.discount_amount == Decimal("25.00")
        assert result.total == Decimal("70.00")
        assert result.priced_lines[0].line_total == Decimal("0.00")

    def test_amount_above_subtotal_stops_at_zero(self, session, seed):
        seed.discount("BIG", "FIXED", "50.00")
        result = evaluate(session, "BIG", pricing(product(1, "30.00")))

        assert result.discount_amount == Decimal("30.00")
        assert result.total == Decimal("0.00")

    def test_uneven_split_stays_within_a_cent(self):
        lines = [product(1, "10.00", 3)]
        out = apply_fixed(lines, [0], Decimal("10.00"))

        reduction = lines[0].line_total - out[0].line_total
        assert abs(reduction - Decimal("10.00")) <= Decimal("0.03")
        assert out[0].unit_final_price <= lines[0].unit_list_price

    @pytest.mark.parametrize("value", ["0.01", "7.77", "33.33", "60.00", "1000"])
    def test_bounds_hold_for_any_amount(self, value):
        lines = [product(1, "9.99", 3), product(2, "12.50", 1), header(3, "20.00")]
        out = apply_fixed(lines, [0, 1, 2], Decimal(value))
        subtotal = money_sum(l.line_total for l in lines)
        discount = subtotal - money_sum(l.line_total for l in out)

        for before, after in zip(lines, out):
            assert Decimal("0") <= after.unit_final_price <= before.unit_list_price
        assert Decimal("0") <= discount <= subtotal
        assert discount <= Decimal(value)

    def test_large_quantity_line_never_overshoots(self):
        lines = [product(1, "1.00", 1000)]
        out = apply_fixed(lines, [0], Decimal("5.00"))

        # half a cent per unit cannot be expressed; nothing is taken rather than 10.00
        assert out[0].line_total == Decimal("1000.00")

        out = apply_fixed(lines, [0], Decimal("25.00"))
        assert out[0].unit_final_price == Decimal("0.98")
        assert out[0].line_total == Decimal("980.00")

    def test_leftover_carries_to_a_smaller_line(self):
        lines = [product(1, "1.00", 1000), product(2, "10.00", 1)]
        out = apply_fixed(lines, [0, 1], Decimal("5.00"))
        discount = money_sum(l.line_total for l in lines) - money_sum(l.line_total for l in out)

        assert discount == Decimal("5.00")
        assert out[0].line_total == Decimal("1000.00")
        assert out[1].unit_final_price == Decimal("5.00")

    def test_unabsorbable_leftover_stays_unspent(self):
        lines = [product(1, "10.00", 1), product(2, "1.00", 1000)]
        out = apply_fixed(lines, [0, 1], Decimal("12.50"))
        discount = money_sum(l.line_total for l in lines) - money_sum(l.line_total for l in out)

        # line 0 absorbs 10.00, line 1 takes 0.00 per unit, 2.50 stays unspent
        assert discount == Decimal("10.00")
        assert discount <= Decimal("12.50")


class TestValidation:
    @pytest.mark.parametrize(
        "fields, message",
        [
            ({"active": False}, "This discount code is not active."),
            ({"starts_at": datetime(2030, 1, 1)}, "This discount code is not valid yet."),
            ({"ends_at": datetime(2020, 1, 1)}, "This discount code has expired."),
            ({"max_uses": 2, "uses_count": 2}, "This discount code has reached its usage limit."),
            ({"currency": "USD"}, "This discount code is not valid for the order currency."),
        ],
    )
    def test_invalid_codes_are_not_applied(self, session, seed, fields, message):
        seed.discount("PROMO", "PERCENT", "10", **fields)
        result = evaluate(session, "promo", pricing(product(1, "100.00")), now=datetime(2025, 6, 1))

        assert not result.applied
        assert result.message == message
        assert result.total == Decimal("100.00")
        assert result.discount_amount == Decimal("0")

    def test_unknown_code(self, session):
        result = evaluate(session, "NOPE", pricing(product(1, "10.00")))
        assert not result.applied
        assert result.message == "Discount code not found."

    def test_minimum_subtotal(self, session, seed):
        seed.discount("MIN", "PERCENT", "10", min_subtotal=Decimal("200.00"))
        result = evaluate(session, "MIN", pricing(product(1, "100.00")))
        assert not result.applied
        assert "200.00" in result.message

    def test_window_is_open_between_start_and_end(self, session, seed):
        now = datetime(2025, 6, 1)
        seed.discount("WINDOW", "PERCENT", "10", starts_at=now - timedelta(days=1), ends_at=now + timedelta(days=1))
        result = evaluate(session, "WINDOW", pricing(product(1, "100.00")), now=now)
        assert result.applied

    def test_zero_value_is_not_applied(self, session, seed):
        seed.discount("ZERO", "FIXED", "0")
        result = evaluate(session, "ZERO", pricing(product(1, "10.00")))
        assert not result.applied
        assert result.discount_amount == Decimal("0")


class TestScopes:
    def test_product_scope_only_touches_that_product(self, session, seed):
        seed.discount("ONLY2", "PERCENT", "50", scope="PRODUCT", product_id=2)
        result = evaluate(session, "ONLY2", pricing(product(1, "10.00"), product(2, "10.00")))

        assert [l.unit_final_price for l in result.priced_lines] == [Decimal("10.00"), Decimal("5.00")]
        assert result.discount_amount == Decimal("5.00")

    def test_product_scope_not_in_cart(self, session, seed):
        seed.discount("ONLY9", "PERCENT", "50", scope="PRODUCT", product_id=9)
        result = evaluate(session, "ONLY9", pricing(product(1, "10.00")))
        assert not result.applied
        assert result.message == "This discount code does not apply to the items in your cart."

    def test_price_list_scope_matches_active_list(self, session, seed):
        seed.discount("LIST", "PERCENT", "10", scope="PRICE_LIST", price_list_id=1)
        applied = evaluate(session, "LIST", pricing(product(1, "10.00"), header(2, "20.00"), price_list_id=1))
        assert applied.discount_amount == Decimal("3.00")

        other = evaluate(session, "LIST", pricing(product(1, "10.00"), price_list_id=2))
        assert not other.applied

    def test_school_scope_requires_a_school(self, session, seed):
        school = seed.school()
        seed.discount("SMA-BOOKS", "PERCENT", "10", scope="SCHOOL_PRODUCT", product_id=1, school_id=school.id)

        with pytest.raises(SchoolRequiredForDiscount):
            evaluate(session, "SMA-BOOKS", pricing(product(1, "10.00")))

    def test_school_prefix_must_match(self, session, seed):
        school = seed.school(discount_prefix="SMA")
        other = seed.school(name="Other", discount_prefix="OTR")
        seed.discount("SMA-BOOKS", "PERCENT", "10", scope="SCHOOL_PRODUCT", product_id=1, school_id=school.id)

        with pytest.raises(DiscountNotAllowedForSchool) as err:
            evaluate(session, "sma-books", pricing(product(1, "10.00")), school=other)
        assert err.value.status_code == 403

    def test_school_scope_applies_for_its_school(self, session, seed):
        school = seed.school(discount_prefix="SMA")
        seed.discount("SMA-BOOKS", "PERCENT", "10", scope="SCHOOL_PRODUCT", product_id=1, school_id=school.id)

        result = evaluate(session, "SMA-BOOKS", pricing(product(1, "10.00"), product(2, "10.00")), school=school)

        assert result.applied
        assert result.discount_amount == Decimal("1.00")
