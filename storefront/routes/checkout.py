import logging

from fastapi import APIRouter, Depends
from sqlmodel import Session

from storefront.database import get_session
from storefront.dependencies.buyer import get_current_buyer
from storefront.errors import CheckoutError, CheckoutFailed
from storefront.models.buyer import Buyer
from storefront.schemas.checkout_schemas import CheckoutRequest
from storefront.services.checkout_service import CheckoutService
from storefront.services.payment_gateway import get_payment_gateway

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/checkout")
@router.post("/api/mercadopago/create-preference", include_in_schema=False)
def create_checkout(
    payload: CheckoutRequest,
    session: Session = Depends(get_session),
    buyer: Buyer = Depends(get_current_buyer),
    gateway=Depends(get_payment_gateway),
):
    """Price the cart and, unless previewing, reserve stock and open a payment session."""
    service = CheckoutService(session, gateway)
    try:
        return service.checkout(payload, buyer)
    except CheckoutError:
        raise
    except Exception as exc:
        logger.exception("Unexpected checkout failure")
        raise CheckoutFailed(detail=str(exc) or exc.__class__.__name__) from exc
