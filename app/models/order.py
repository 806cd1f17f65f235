from typing import List, Optional
from datetime import datetime
from decimal import Decimal
from sqlmodel import Field, Relationship, SQLModel, Column
from sqlalchemy import Enum as SAEnum
from enum import Enum

from app.models.product import SellerBrief
from app.models.seller import Seller
from app.models.user import User, UserSummary

class PaymentMethod(str, Enum):
    COP = "cop"  # cash on pickup
    GCASH = "gcash"
    PAYMAYA = "paymaya"
    BANK_TRANSFER = "bank_transfer"

class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"

class OrderStatus(str, Enum):
    PENDING = "pending"
    PAYMENT_VERIFIED = "payment_verified"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    READY_FOR_PICKUP = "ready_for_pickup"
    PICKED_UP = "picked_up"
    CANCELLED = "cancelled"
    REJECTED = "rejected"

def _enum_values(enum_cls):
    return [e.value for e in enum_cls]

class OrderItem(SQLModel, table=True):
    __tablename__ = "order_item"

    id: Optional[int] = Field(default=None, primary_key=True)
    order_id: int = Field(foreign_key="order.id", index=True)
    product_id: int = Field(foreign_key="product.id")
    quantity: int

    # Price at time of order
    price: Decimal = Field(max_digits=10, decimal_places=2)
    total_price: Decimal = Field(max_digits=10, decimal_places=2)

    # Product snapshot, unaffected by later product edits
    product_name: str = Field(max_length=160)
    product_image: Optional[str] = Field(default=None, max_length=512)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    order: Optional["Order"] = Relationship(back_populates="order_items")

class Order(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    seller_id: int = Field(foreign_key="seller.id", index=True)

    # Order number shown to buyers (e.g., ORD-20251011-7QX2M9KD)
    order_number: str = Field(unique=True, index=True, max_length=50)

    status: OrderStatus = Field(
        default=OrderStatus.PENDING,
        sa_column=Column(SAEnum(OrderStatus, values_callable=_enum_values), nullable=False, index=True)
    )

    # Pickup-only flow: total equals subtotal
    subtotal: Decimal = Field(max_digits=10, decimal_places=2)
    total_amount: Decimal = Field(max_digits=10, decimal_places=2)

    # Payment Info
    payment_method: PaymentMethod = Field(
        default=PaymentMethod.COP,
        sa_column=Column(SAEnum(PaymentMethod, values_callable=_enum_values), nullable=False)
    )
    payment_status: PaymentStatus = Field(
        default=PaymentStatus.PENDING,
        sa_column=Column(SAEnum(PaymentStatus, values_callable=_enum_values), nullable=False)
    )
    paid_at: Optional[datetime] = None
    payment_receipt_url: Optional[str] = None

    # Payout to the seller, tracked by the admin
    payment_distributed: bool = Field(default=False)
    payment_distributed_at: Optional[datetime] = None

    # Notes
    notes: Optional[str] = None
    admin_notes: Optional[str] = None

    # Pickup confirmation by the buyer
    delivery_confirmed_by_customer: bool = Field(default=False)
    customer_delivery_confirmed_at: Optional[datetime] = None

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    order_items: List[OrderItem] = Relationship(
        back_populates="order",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "order_by": "OrderItem.id"}
    )
    seller: Optional[Seller] = Relationship()
    user: Optional[User] = Relationship()

    @property
    def payment_verified(self) -> bool:
        return self.payment_method == PaymentMethod.GCASH and self.payment_status == PaymentStatus.PAID

    @property
    def awaiting_payment(self) -> bool:
        return self.payment_method == PaymentMethod.GCASH and self.payment_status == PaymentStatus.PENDING


class OrderItemRead(SQLModel):
    id: int
    order_id: int
    product_id: int
    quantity: int
    price: float
    total_price: float
    product_name: str
    product_image: Optional[str] = None


class OrderRead(SQLModel):
    id: int
    user_id: int
    seller_id: int
    order_number: str
    status: OrderStatus
    subtotal: float
    total_amount: float
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    paid_at: Optional[datetime] = None
    payment_receipt_url: Optional[str] = None
    payment_distributed: bool
    payment_distributed_at: Optional[datetime] = None
    notes: Optional[str] = None
    admin_notes: Optional[str] = None
    delivery_confirmed_by_customer: bool
    customer_delivery_confirmed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    order_items: List[OrderItemRead] = []
    seller: Optional[SellerBrief] = None


class OrderAdminRead(OrderRead):
    """Order with the buyer attached, for seller and admin views."""
    user: Optional[UserSummary] = None
