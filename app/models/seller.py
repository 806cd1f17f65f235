from typing import List, Optional, TYPE_CHECKING
from datetime import datetime
from enum import Enum
from sqlmodel import Field, Relationship, SQLModel, Column
from sqlalchemy import Enum as SAEnum

from app.models.user import User, UserSummary

if TYPE_CHECKING:
    from app.models.product import Product

class VerificationStatus(str, Enum):
    UNVERIFIED = "unverified"
    VERIFIED = "verified"
    REJECTED = "rejected"

class Seller(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", unique=True, index=True)

    # Identity
    shop_name: str = Field(max_length=120)
    slug: str = Field(unique=True, index=True, max_length=140)
    description: Optional[str] = None
    logo_url: Optional[str] = None
    banner_url: Optional[str] = None
    id_image_path: Optional[str] = None

    # Contact
    contact_email: Optional[str] = Field(default=None, max_length=255)
    contact_phone: Optional[str] = Field(default=None, max_length=32)

    # Verification & activity
    verification_status: VerificationStatus = Field(
        default=VerificationStatus.UNVERIFIED,
        sa_column=Column(
            SAEnum(VerificationStatus, values_callable=lambda x: [e.value for e in x]),
            nullable=False,
            index=True,
        )
    )
    is_active: bool = Field(default=True)

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    user: Optional[User] = Relationship()
    products: List["Product"] = Relationship(back_populates="seller")

    @property
    def is_verified(self) -> bool:
        return self.verification_status == VerificationStatus.VERIFIED


class SellerRead(SQLModel):
    id: int
    user_id: int
    shop_name: str
    slug: str
    description: Optional[str] = None
    logo_url: Optional[str] = None
    banner_url: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    verification_status: VerificationStatus
    is_active: bool
    created_at: datetime
    updated_at: datetime


class SellerDetail(SellerRead):
    products_count: int = 0
    orders_count: int = 0


class SellerApplication(SellerRead):
    """Seller row as the admin reviews it, including the applicant."""
    id_image_path: Optional[str] = None
    user: Optional[UserSummary] = None
