from sqlmodel import SQLModel, Field, Relationship
from typing import List, Optional
from datetime import datetime


class Pack(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    sale_code: Optional[str] = None
    visible: bool = Field(default=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    items: List["PackItem"] = Relationship(back_populates="pack")


class PackItem(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    pack_id: int = Field(foreign_key="pack.id", index=True)
    product_id: int = Field(foreign_key="product.id")
    quantity: int = Field(default=1)

    pack: Optional[Pack] = Relationship(back_populates="items")
