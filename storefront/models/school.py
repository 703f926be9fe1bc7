from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime


class School(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    # school-scoped discount codes are issued as "<PREFIX>-..."
    discount_prefix: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
