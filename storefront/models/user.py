from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel


class User(SQLModel, table=True):
    """Login account. Checkout only reads ``can_login``; the buyer profile holds contact data."""

    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(index=True, unique=True)
    first_name: str
    last_name: str
    password_hash: str
    can_login: bool = Field(default=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
