from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime


class Buyer(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", unique=True)

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None

    # saved shipping address
    address_line1: Optional[str] = None
    reference: Optional[str] = None
    district: Optional[str] = None

    school_id: Optional[int] = Field(default=None, foreign_key="school.id")

    created_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()
