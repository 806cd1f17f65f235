# Import all models to register them with SQLModel
from app.models.user import User, UserRead, UserSummary
from app.models.admin_user import AdminUser, GcashSettings
from app.models.seller import Seller, SellerRead, SellerDetail, SellerApplication, VerificationStatus
from app.models.product import Product, ProductRead, SellerBrief
from app.models.cart import CartItem, CartItemRead
from app.models.order import (
    Order,
    OrderItem,
    OrderRead,
    OrderAdminRead,
    OrderItemRead,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
)

__all__ = [
    "User",
    "UserRead",
    "UserSummary",
    "AdminUser",
    "GcashSettings",
    "Seller",
    "SellerRead",
    "SellerDetail",
    "SellerApplication",
    "VerificationStatus",
    "Product",
    "ProductRead",
    "SellerBrief",
    "CartItem",
    "CartItemRead",
    "Order",
    "OrderItem",
    "OrderRead",
    "OrderAdminRead",
    "OrderItemRead",
    "OrderStatus",
    "PaymentMethod",
    "PaymentStatus",
]
