from fastapi import Depends
from sqlmodel import Session

from storefront.database import get_session
from storefront.errors import BuyerProfileRequired
from storefront.models.buyer import Buyer
from storefront.models.user import User
from storefront.repositories.buyers import BuyerStore
from storefront.utils.token import get_current_user


def get_current_buyer(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> Buyer:
    buyer = BuyerStore(session).get_by_user_id(current_user.id)
    if buyer is None:
        raise BuyerProfileRequired()
    return buyer
