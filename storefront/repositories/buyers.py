from typing import Optional

from sqlmodel import Session, select

from storefront.models.buyer import Buyer
from storefront.models.school import School


class BuyerStore:
    def __init__(self, session: Session):
        self.session = session

    def get_by_user_id(self, user_id: int) -> Optional[Buyer]:
        return self.session.exec(select(Buyer).where(Buyer.user_id == user_id)).first()

    def get_school(self, school_id: Optional[int]) -> Optional[School]:
        if school_id is None:
            return None
        return self.session.get(School, school_id)
