import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

import requests
from pydantic import BaseModel

from storefront.config import settings
from storefront.errors import PaymentGatewayError
from storefront.models.buyer import Buyer
from storefront.models.order import Order
from storefront.models.payment import Payment
from storefront.schemas.pipeline import PricedLine
from storefront.utils.money import money_sum

logger = logging.getLogger(__name__)


class PaymentSessionItem(BaseModel):
    title: str
    quantity: int
    unit_price: Decimal


class PaymentSessionRequest(BaseModel):
    order_id: int
    payment_id: int
    currency: str
    items: List[PaymentSessionItem]
    payer_name: str = ""
    payer_email: str = ""
    payer_phone: str = ""
    back_urls: Dict[str, str]
    notification_url: str
    metadata: Dict[str, Any]

    @property
    def total(self) -> Decimal:
        return money_sum(item.unit_price * item.quantity for item in self.items)


class PaymentSession(BaseModel):
    id: str
    redirect_url: str
    sandbox_url: Optional[str] = None
    raw: Dict[str, Any] = {}


def build_session_request(
    order: Order,
    payment: Payment,
    lines: List[PricedLine],
    buyer: Buyer,
) -> PaymentSessionRequest:
    """Payment session for the discounted revenue lines of an order.

    Lines discounted down to 0.00 are left out; processors reject
    zero-priced items.
    """
    base = settings.site_url
    return PaymentSessionRequest(
        order_id=order.id,
        payment_id=payment.id,
        currency=order.currency,
        items=[
            PaymentSessionItem(
                title=line.title,
                quantity=line.quantity,
                unit_price=line.unit_final_price,
            )
            for line in lines
            if line.unit_final_price > 0
        ],
        payer_name=buyer.full_name,
        payer_email=buyer.email or "",
        payer_phone=buyer.phone or "",
        back_urls={
            "success": f"{base}/pago/success?orderId={order.id}",
            "pending": f"{base}/pago/pending?orderId={order.id}",
            "failure": f"{base}/pago/failure?orderId={order.id}",
        },
        notification_url=f"{base}/api/payments/webhook",
        metadata={"order_id": order.id, "payment_row_id": payment.id},
    )


class MercadoPagoGateway:
    provider = "mercadopago"

    def __init__(self, access_token: Optional[str] = None, api_url: Optional[str] = None,
                 timeout: Optional[int] = None):
        self.access_token = access_token or settings.MP_ACCESS_TOKEN
        self.api_url = (api_url or settings.MP_API_URL).rstrip("/")
        self.timeout = timeout or settings.PAYMENT_GATEWAY_TIMEOUT

    def _preference_payload(self, request: PaymentSessionRequest) -> dict:
        return {
            "items": [
                {
                    "title": item.title,
                    "quantity": item.quantity,
                    "unit_price": float(item.unit_price),
                    "currency_id": request.currency,
                }
                for item in request.items
            ],
            "payer": {
                "name": request.payer_name,
                "email": request.payer_email,
                "phone": {"number": request.payer_phone},
            },
            "external_reference": str(request.order_id),
            "back_urls": request.back_urls,
            "auto_return": "approved",
            "notification_url": request.notification_url,
            "metadata": request.metadata,
        }

    def create_payment_session(self, request: PaymentSessionRequest) -> PaymentSession:
        if not self.access_token:
            raise PaymentGatewayError("MP_ACCESS_TOKEN is missing")

        try:
            response = requests.post(
                f"{self.api_url}/checkout/preferences",
                json=self._preference_payload(request),
                headers={
                    "Authorization": f"Bearer {self.access_token}",
                    "Content-Type": "application/json",
                },
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.error(f"Mercado Pago request failed for order {request.order_id}: {exc}")
            raise PaymentGatewayError(f"Mercado Pago unreachable: {exc}") from exc

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.status_code >= 400:
            message = body.get("message") or body.get("error") or "Mercado Pago preference error"
            logger.error(f"Mercado Pago preference failed ({response.status_code}): {response.text}")
            raise PaymentGatewayError(message, response=body)

        if not body.get("id") or not body.get("init_point"):
            raise PaymentGatewayError("Mercado Pago returned no redirect link", response=body)

        return PaymentSession(
            id=str(body["id"]),
            redirect_url=body["init_point"],
            sandbox_url=body.get("sandbox_init_point"),
            raw=body,
        )


class RazorpayGateway:
    """Redirectable sessions through Razorpay payment links."""

    provider = "razorpay"

    def __init__(self, client=None):
        if client is None:
            import razorpay

            client = razorpay.Client(
                auth=(settings.RAZORPAY_KEY_ID, settings.RAZORPAY_KEY_SECRET)
            )
        self.client = client

    def _payment_link_payload(self, request: PaymentSessionRequest) -> dict:
        return {
            "amount": int(request.total * 100),  # smallest currency unit
            "currency": request.currency,
            "reference_id": str(request.order_id),
            "description": f"Order #{request.order_id}",
            "customer": {
                "name": request.payer_name,
                "email": request.payer_email,
                "contact": request.payer_phone,
            },
            "notes": {key: str(value) for key, value in request.metadata.items()},
            "callback_url": request.back_urls["success"],
            "callback_method": "get",
        }

    def create_payment_session(self, request: PaymentSessionRequest) -> PaymentSession:
        try:
            link = self.client.payment_link.create(self._payment_link_payload(request))
        except Exception as exc:
            logger.error(f"Razorpay payment link failed for order {request.order_id}: {exc}")
            raise PaymentGatewayError(f"Razorpay error: {exc}") from exc

        if not link.get("id") or not link.get("short_url"):
            raise PaymentGatewayError("Razorpay returned no payment link", response=link)

        return PaymentSession(id=link["id"], redirect_url=link["short_url"], raw=link)


GATEWAYS = {
    MercadoPagoGateway.provider: MercadoPagoGateway,
    RazorpayGateway.provider: RazorpayGateway,
}


def get_payment_gateway():
    provider = settings.PAYMENT_PROVIDER.lower()
    if provider not in GATEWAYS:
        raise RuntimeError(f"Unknown PAYMENT_PROVIDER {settings.PAYMENT_PROVIDER!r}")
    return GATEWAYS[provider]()
