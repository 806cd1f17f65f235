import logging
from datetime import datetime
from typing import Optional
from sqlalchemy import func
from sqlmodel import Session, select

from app.core.errors import BusinessRuleError, NotFoundError
from app.models.order import Order
from app.models.product import Product
from app.models.seller import Seller, SellerDetail, VerificationStatus

logger = logging.getLogger(__name__)

class SellerService:
    def __init__(self, session: Session):
        self.session = session

    def get_by_user(self, user_id: int) -> Optional[Seller]:
        return self.session.exec(select(Seller).where(Seller.user_id == user_id)).first()

    def require_seller(self, user_id: int) -> Seller:
        seller = self.get_by_user(user_id)
        if not seller:
            raise NotFoundError("Seller profile not found.")
        return seller

    def _ensure_slug_available(self, slug: str, seller_id: Optional[int] = None):
        statement = select(Seller.id).where(Seller.slug == slug)
        if seller_id is not None:
            statement = statement.where(Seller.id != seller_id)
        if self.session.exec(statement).first() is not None:
            raise BusinessRuleError("The slug has already been taken.")

    def apply(self, user_id: int, data: dict) -> Seller:
        """Submit a seller application, or resubmit a rejected one in place."""
        existing = self.get_by_user(user_id)
        if existing and existing.verification_status != VerificationStatus.REJECTED:
            raise BusinessRuleError(
                f"You already have a seller profile with status: {existing.verification_status.value}."
            )

        self._ensure_slug_available(data["slug"], existing.id if existing else None)

        if existing:
            seller = existing
            for key, value in data.items():
                setattr(seller, key, value)
            seller.updated_at = datetime.utcnow()
        else:
            seller = Seller(user_id=user_id, **data)

        seller.verification_status = VerificationStatus.UNVERIFIED
        seller.is_active = True
        self.session.add(seller)
        self.session.commit()
        self.session.refresh(seller)
        logger.info("Seller application %s submitted by user %s", seller.id, user_id)
        return seller

    def update_profile(self, seller: Seller, data: dict) -> Seller:
        if "slug" in data:
            self._ensure_slug_available(data["slug"], seller.id)
        for key, value in data.items():
            setattr(seller, key, value)
        seller.updated_at = datetime.utcnow()
        self.session.add(seller)
        self.session.commit()
        self.session.refresh(seller)
        return seller

    def get_seller(self, seller_id: int) -> Seller:
        seller = self.session.get(Seller, seller_id)
        if not seller:
            raise NotFoundError("Seller not found.")
        return seller

    def with_counts(self, seller: Seller) -> SellerDetail:
        products_count = self.session.exec(
            select(func.count(Product.id)).where(Product.seller_id == seller.id)
        ).one()
        orders_count = self.session.exec(
            select(func.count(Order.id)).where(Order.seller_id == seller.id)
        ).one()
        return SellerDetail.model_validate(
            seller, update={"products_count": products_count, "orders_count": orders_count}
        )
