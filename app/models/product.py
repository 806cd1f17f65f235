from typing import Any, List, Optional
from datetime import datetime
from decimal import Decimal
from sqlmodel import Field, Relationship, SQLModel, Column
from sqlalchemy import JSON

from app.models.seller import Seller

class Product(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    # Ownership: a product belongs to one seller
    seller_id: int = Field(foreign_key="seller.id", index=True)

    # Basic Info
    name: str = Field(index=True, max_length=160)
    slug: str = Field(index=True, unique=True, max_length=180)
    description: Optional[str] = None
    category: Optional[str] = Field(default=None, max_length=120)
    sku: Optional[str] = Field(default=None, max_length=80)

    # Pricing & inventory
    price: Decimal = Field(max_digits=10, decimal_places=2, ge=0)
    stock: int = Field(default=0, ge=0)
    sold_count: int = Field(default=0, ge=0)

    # Images
    main_image_url: Optional[str] = None
    images: List[str] = Field(default=[], sa_column=Column(JSON))

    # Optional specs
    weight: Optional[str] = Field(default=None, max_length=50)
    options: Optional[Any] = Field(default=None, sa_column=Column(JSON))

    # Metadata
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    seller: Optional[Seller] = Relationship(back_populates="products")


class SellerBrief(SQLModel):
    id: int
    shop_name: str
    slug: str
    logo_url: Optional[str] = None


class ProductRead(SQLModel):
    id: int
    seller_id: int
    name: str
    slug: str
    description: Optional[str] = None
    category: Optional[str] = None
    sku: Optional[str] = None
    price: float
    stock: int
    sold_count: int
    main_image_url: Optional[str] = None
    images: List[str] = []
    weight: Optional[str] = None
    options: Optional[Any] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime
    seller: Optional[SellerBrief] = None
