from typing import Optional
from datetime import datetime
from sqlmodel import Field, Relationship, SQLModel
from sqlalchemy import UniqueConstraint

from app.models.product import Product, ProductRead

class CartItem(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("user_id", "product_id", name="uq_cartitem_user_product"),)

    id: Optional[int] = Field(default=None, primary_key=True)

    # References
    user_id: int = Field(foreign_key="user.id", index=True)
    product_id: int = Field(foreign_key="product.id")

    # Cart Details
    quantity: int = Field(default=1, ge=1)

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    product: Optional[Product] = Relationship()


class CartItemRead(SQLModel):
    id: int
    user_id: int
    product_id: int
    quantity: int
    created_at: datetime
    updated_at: datetime
    product: Optional[ProductRead] = None
