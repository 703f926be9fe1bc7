"""End-to-end tests for CheckoutService against an in-memory database.

Covers:
- a successful checkout persists order, lines, reservation and payment
- preview mode prices the cart without writing anything
- gateway and reservation failures are fully compensated
- discount usage is recorded only for placed orders
"""

from decimal import Decimal

import pytest
from sqlalchemy import func
from sqlmodel import select

from storefront.constants.order_status import OrderEventType, OrderStatus, ReservationStatus
from storefront.errors import AddressRequired, InsufficientStock, NothingToPay, OutOfStock, PaymentGatewayError
from storefront.models.discount import Discount, DiscountRedemption
from storefront.models.order import Order
from storefront.models.order_event import OrderEvent
from storefront.models.order_item import LineKind, OrderItem
from storefront.models.payment import Payment
from storefront.models.product import Product
from storefront.models.stock_reservation import StockReservation
from storefront.repositories.orders import OrderStore
from storefront.schemas.checkout_schemas import CheckoutPreviewResponse, CheckoutRequest
from storefront.services.checkout_service import CheckoutService, resolve_shipping


def count(session, model):
    return session.exec(select(func.count()).select_from(model)).one()


def stock_of(session, product):
    return session.exec(select(Product.stock).where(Product.id == product.id)).one()


def request(items, **kw):
    return CheckoutRequest(items=items, **kw)


class TestPlaceOrder:
    def test_simple_cart(self, session, seed, gateway):
        buyer = seed.buyer()
        book = seed.product("Reader", stock=5, price="50.00")

        response = CheckoutService(session, gateway).checkout(
            request([{"type": "PRODUCT", "productId": book.id, "quantity": 2}]), buyer
        )

        assert response.subtotal == 100.0
        assert response.discount_amount == 0.0
        assert response.total == 100.0
        assert response.applied_discount is None
        assert response.preference_id == f"pref-{response.order_id}"
        assert response.payment_redirect_url.endswith(str(response.order_id))

        order = session.get(Order, response.order_id)
        assert order.status == OrderStatus.PAYMENT_PENDING.value
        assert order.total == Decimal("100.00")
        assert order.shipping_address == buyer.address_line1
        assert stock_of(session, book) == 3

        payment = session.exec(select(Payment).where(Payment.order_id == order.id)).one()
        assert payment.id == response.payment_id
        assert payment.preference_id == response.preference_id
        assert payment.amount == Decimal("100.00")

        events = session.exec(select(OrderEvent.event_type).where(OrderEvent.order_id == order.id)).all()
        assert set(events) == {"order_placed", "stock_reserved", "payment_session_created"}

    def test_pack_lines_and_session_payload(self, session, seed, gateway):
        buyer = seed.buyer()
        a = seed.product("A", stock=3)
        b = seed.product("B", stock=4)
        pack = seed.pack("Starter pack", components=[(a, 1), (b, 2)], price="80.00")

        response = CheckoutService(session, gateway).checkout(
            request([{"type": "BUNDLE", "packId": pack.id}]), buyer
        )

        items = session.exec(select(OrderItem).where(OrderItem.order_id == response.order_id)).all()
        by_kind = {}
        for item in items:
            by_kind.setdefault(item.kind, []).append(item)

        header = by_kind[LineKind.PACK_HEADER.value][0]
        assert header.product_id is None
        assert header.line_total == Decimal("80.00")
        components = by_kind[LineKind.PACK_COMPONENT.value]
        assert {(c.product_id, c.quantity) for c in components} == {(a.id, 1), (b.id, 2)}
        assert all(c.line_total == Decimal("0.00") for c in components)

        assert stock_of(session, a) == 2
        assert stock_of(session, b) == 2

        sent = gateway.requests[0]
        assert [(i.title, i.quantity, i.unit_price) for i in sent.items] == [("Starter pack", 1, Decimal("80.00"))]
        assert sent.metadata == {"order_id": response.order_id, "payment_row_id": response.payment_id}
        assert sent.back_urls["success"] == f"https://shop.test/pago/success?orderId={response.order_id}"
        assert sent.notification_url == "https://shop.test/api/payments/webhook"

    def test_shipping_from_request_wins(self, session, seed, gateway):
        buyer = seed.buyer()
        book = seed.product("Reader")

        response = CheckoutService(session, gateway).checkout(
            request(
                [{"productId": book.id}],
                shipping={"address": "  Jr. Cusco 42 ", "district": "Miraflores", "notes": "ring twice"},
            ),
            buyer,
        )

        order = session.get(Order, response.order_id)
        assert order.shipping_address == "Jr. Cusco 42"
        assert order.shipping_district == "Miraflores"
        assert order.shipping_notes == "ring twice"


class TestDiscountUsage:
    def test_applied_discount_is_counted_and_redeemed(self, session, seed, gateway):
        buyer = seed.buyer()
        book = seed.product("Reader", price="50.00")
        discount = seed.discount("SAVE10", "PERCENT", "10")

        response = CheckoutService(session, gateway).checkout(
            request([{"productId": book.id, "quantity": 2}], discountCode=" save10 "), buyer
        )

        assert response.applied_discount.code == "SAVE10"
        assert response.applied_discount.amount == 10.0
        assert response.total == 90.0

        session.refresh(discount)
        assert discount.uses_count == 1
        redemption = session.exec(select(DiscountRedemption)).one()
        assert redemption.order_id == response.order_id
        assert redemption.amount == Decimal("10.00")

        order = session.get(Order, response.order_id)
        assert order.discount_code == "SAVE10"
        assert order.discount_id == discount.id

    def test_rejected_code_still_places_order(self, session, seed, gateway):
        buyer = seed.buyer()
        book = seed.product("Reader", price="50.00")

        response = CheckoutService(session, gateway).checkout(
            request([{"productId": book.id}], discountCode="NOPE"), buyer
        )

        assert response.applied_discount is None
        assert response.discount_message == "Discount code not found."
        assert response.total == 50.0
        assert count(session, DiscountRedemption) == 0

    def test_failed_checkout_does_not_count_usage(self, session, seed, failing_gateway):
        buyer = seed.buyer()
        book = seed.product("Reader", price="50.00")
        discount = seed.discount("SAVE10", "PERCENT", "10")

        with pytest.raises(PaymentGatewayError):
            CheckoutService(session, failing_gateway).checkout(
                request([{"productId": book.id}], discountCode="SAVE10"), buyer
            )

        assert session.exec(select(Discount.uses_count).where(Discount.id == discount.id)).one() == 0
        assert count(session, DiscountRedemption) == 0


class TestPreview:
    def test_preview_has_no_side_effects(self, session, seed, gateway):
        buyer = seed.buyer(address=None)
        book = seed.product("Reader", stock=5, price="50.00")
        seed.discount("SAVE10", "PERCENT", "10")

        response = CheckoutService(session, gateway).checkout(
            request([{"productId": book.id, "quantity": 2}], discountCode="save10", previewOnly=True), buyer
        )

        assert isinstance(response, CheckoutPreviewResponse)
        assert response.preview is True
        assert response.applied is True
        assert response.normalized_code == "SAVE10"
        assert (response.subtotal, response.discount_amount, response.total) == (100.0, 10.0, 90.0)

        assert count(session, Order) == 0
        assert count(session, StockReservation) == 0
        assert count(session, DiscountRedemption) == 0
        assert stock_of(session, book) == 5
        assert gateway.requests == []

    def test_preview_still_checks_stock(self, session, seed, gateway):
        buyer = seed.buyer()
        book = seed.product("Reader", stock=1)

        with pytest.raises(InsufficientStock):
            CheckoutService(session, gateway).checkout(
                request([{"productId": book.id, "quantity": 2}], previewOnly=True), buyer
            )


class TestCompensation:
    def test_gateway_failure_rolls_everything_back(self, session, seed, failing_gateway):
        buyer = seed.buyer()
        a = seed.product("A", stock=3)
        b = seed.product("B", stock=4)
        pack = seed.pack(components=[(a, 1), (b, 2)])

        with pytest.raises(PaymentGatewayError):
            CheckoutService(session, failing_gateway).checkout(
                request([{"packId": pack.id}, {"productId": a.id}]), buyer
            )

        assert len(failing_gateway.requests) == 1
        assert stock_of(session, a) == 3
        assert stock_of(session, b) == 4
        assert count(session, Order) == 0
        assert count(session, OrderItem) == 0
        assert count(session, Payment) == 0
        assert count(session, OrderEvent) == 0

        reservations = session.exec(select(StockReservation)).all()
        assert reservations
        assert all(r.status == ReservationStatus.RELEASED.value for r in reservations)
        assert {r.release_reason for r in reservations} == {"checkout_rollback"}

    def test_insufficient_stock_creates_no_order(self, session, seed, gateway):
        buyer = seed.buyer()
        book = seed.product("Reader", stock=3)

        with pytest.raises(InsufficientStock) as err:
            CheckoutService(session, gateway).checkout(request([{"productId": book.id, "quantity": 5}]), buyer)

        assert err.value.detail == {"productId": book.id, "available": 3, "required": 5}
        assert count(session, Order) == 0

    def test_stock_taken_after_precheck_is_out_of_stock(self, session, seed, gateway, monkeypatch):
        buyer = seed.buyer()
        book = seed.product("Reader", stock=2)
        service = CheckoutService(session, gateway)

        # pre-check passes, then another buyer takes the units
        monkeypatch.setattr(
            "storefront.services.checkout_service.check_availability",
            lambda store, required: None,
        )
        book.stock = 0
        session.add(book)
        session.commit()

        with pytest.raises(OutOfStock):
            service.checkout(request([{"productId": book.id, "quantity": 2}]), buyer)

        assert count(session, Order) == 0
        assert count(session, OrderItem) == 0
        assert stock_of(session, book) == 0
        assert gateway.requests == []

    def test_fully_discounted_cart_is_rejected_up_front(self, session, seed, gateway):
        buyer = seed.buyer()
        book = seed.product("Reader", stock=5, price="30.00")
        seed.discount("FREE", "FIXED", "50.00")
        service = CheckoutService(session, gateway)

        preview = service.checkout(request([{"productId": book.id}], discountCode="FREE", previewOnly=True), buyer)
        assert preview.discount_amount == 30.0
        assert preview.total == 0.0

        with pytest.raises(NothingToPay) as err:
            service.checkout(request([{"productId": book.id}], discountCode="FREE"), buyer)

        assert err.value.to_dict() == {"error": "NOTHING_TO_PAY", "detail": {"subtotal": 30.0}}
        assert count(session, Order) == 0
        assert stock_of(session, book) == 5
        assert gateway.requests == []

    def test_lines_discounted_to_zero_are_not_sent(self, session, seed, gateway):
        buyer = seed.buyer()
        cheap = seed.product("Eraser", price="5.00")
        book = seed.product("Reader", price="50.00")
        seed.discount("MINUS5", "FIXED", "5.00")

        response = CheckoutService(session, gateway).checkout(
            request([{"productId": cheap.id}, {"productId": book.id}], discountCode="MINUS5"), buyer
        )

        assert response.total == 50.0
        sent = gateway.requests[0]
        assert [(i.title, i.unit_price) for i in sent.items] == [("Reader", Decimal("50.00"))]
        assert sent.total == Decimal("50.00")
        items = session.exec(select(OrderItem).where(OrderItem.order_id == response.order_id)).all()
        assert {i.title_snapshot for i in items} == {"Eraser", "Reader"}

    def test_order_is_deleted_when_its_first_event_fails(self, session, seed, gateway, monkeypatch):
        buyer = seed.buyer()
        book = seed.product("Reader", stock=5)
        service = CheckoutService(session, gateway)
        original = OrderStore.log_event

        def log_event(self, order_id, event_type, *args, **kwargs):
            if event_type == OrderEventType.ORDER_PLACED:
                raise RuntimeError("event table unavailable")
            return original(self, order_id, event_type, *args, **kwargs)

        monkeypatch.setattr(OrderStore, "log_event", log_event)

        with pytest.raises(RuntimeError):
            service.checkout(request([{"productId": book.id, "quantity": 2}]), buyer)

        assert count(session, Order) == 0
        assert stock_of(session, book) == 5
        assert gateway.requests == []

    def test_session_event_failure_keeps_the_order(self, session, seed, gateway, monkeypatch):
        buyer = seed.buyer()
        book = seed.product("Reader", stock=5)
        service = CheckoutService(session, gateway)
        original = OrderStore.log_event

        def log_event(self, order_id, event_type, *args, **kwargs):
            if event_type == OrderEventType.PAYMENT_SESSION_CREATED:
                raise RuntimeError("event table unavailable")
            return original(self, order_id, event_type, *args, **kwargs)

        monkeypatch.setattr(OrderStore, "log_event", log_event)

        response = service.checkout(request([{"productId": book.id, "quantity": 2}]), buyer)

        assert response.preference_id == f"pref-{response.order_id}"
        assert session.get(Order, response.order_id).status == OrderStatus.PAYMENT_PENDING.value
        assert stock_of(session, book) == 3
        events = session.exec(select(OrderEvent.event_type).where(OrderEvent.order_id == response.order_id)).all()
        assert set(events) == {"order_placed", "stock_reserved"}


class TestShipping:
    def test_address_required_without_saved_address(self, session, seed, gateway):
        buyer = seed.buyer(address=None)
        book = seed.product("Reader")

        with pytest.raises(AddressRequired):
            CheckoutService(session, gateway).checkout(request([{"productId": book.id}]), buyer)

        assert count(session, Order) == 0

    def test_saved_address_fills_missing_fields(self, seed):
        buyer = seed.buyer(address="Av. Brasil 900")
        shipping = resolve_shipping(request([], shipping={"notes": "gate B"}), buyer)

        assert shipping.address == "Av. Brasil 900"
        assert shipping.district == "Lince"
        assert shipping.notes == "gate B"


def test_quote_matches_requirement_aggregation(session, seed, gateway):
    buyer = seed.buyer()
    a = seed.product("A", stock=10)
    pack = seed.pack(components=[(a, 2)], price="15.00")
    service = CheckoutService(session, gateway)

    pricing, discount = service.quote(request([{"packId": pack.id, "quantity": 3}]), buyer)

    assert pricing.subtotal == Decimal("45.00")
    assert discount.total == Decimal("45.00")
    assert sum(c.quantity for c in pricing.component_lines) == 6
