import logging
from datetime import datetime
from typing import Optional
from fastapi import HTTPException
from sqlalchemy import func
from sqlmodel import Session, select

from app.core.config import settings
from app.core.errors import BusinessRuleError, NotFoundError
from app.models.admin_user import AdminUser
from app.models.order import Order, OrderStatus, PaymentMethod, PaymentStatus
from app.models.seller import Seller, VerificationStatus
from app.services.order import restore_order_stock
from app.services.order_workflow import Actor, can_transition

logger = logging.getLogger(__name__)

class AdminService:
    def __init__(self, session: Session):
        self.session = session

    # Seller applications

    def dashboard_stats(self) -> dict:
        def count(*criteria) -> int:
            return self.session.exec(select(func.count(Seller.id)).where(*criteria)).one()

        recent = self.session.exec(
            self.pending_applications_query().limit(5)
        ).all()

        return {
            "stats": {
                "total_sellers": count(),
                "pending_verifications": count(Seller.verification_status == VerificationStatus.UNVERIFIED),
                "verified_sellers": count(Seller.verification_status == VerificationStatus.VERIFIED),
                "active_sellers": count(Seller.is_active == True),  # noqa: E712
            },
            "recent_applications": recent,
        }

    def pending_applications_query(self):
        return (
            select(Seller)
            .where(Seller.verification_status == VerificationStatus.UNVERIFIED)
            .order_by(Seller.created_at.desc(), Seller.id.desc())
        )

    def process_application(self, seller_id: int, action: str, notes: Optional[str] = None) -> Seller:
        seller = self.session.get(Seller, seller_id)
        if not seller:
            raise NotFoundError("Seller not found.")
        if seller.verification_status != VerificationStatus.UNVERIFIED:
            raise HTTPException(status_code=400, detail="Application has already been processed.")

        seller.verification_status = (
            VerificationStatus.VERIFIED if action == "approve" else VerificationStatus.REJECTED
        )
        seller.updated_at = datetime.utcnow()
        self.session.add(seller)
        self.session.commit()
        self.session.refresh(seller)
        logger.info("Seller application %s %s (notes: %s)", seller.id, seller.verification_status.value, notes or "-")
        return seller

    # GCash settings

    def get_gcash_settings(self, admin_user: Optional[AdminUser] = None) -> Optional[AdminUser]:
        if admin_user:
            return admin_user
        return self.session.exec(select(AdminUser).order_by(AdminUser.id)).first()

    def update_gcash_settings(self, admin_user: AdminUser, gcash_number: Optional[str] = None,
                              gcash_qr_url: Optional[str] = None, fields_set: frozenset = frozenset()) -> AdminUser:
        if "gcash_number" in fields_set:
            admin_user.gcash_number = gcash_number
        if gcash_qr_url is not None:
            admin_user.gcash_qr_url = gcash_qr_url
        admin_user.updated_at = datetime.utcnow()
        self.session.add(admin_user)
        self.session.commit()
        self.session.refresh(admin_user)
        return admin_user

    # Payments

    def pending_payments_query(self):
        return (
            select(Order)
            .where(
                Order.payment_method == PaymentMethod.GCASH,
                Order.payment_status == PaymentStatus.PENDING,
                Order.status == OrderStatus.PENDING,
            )
            .order_by(Order.created_at.desc(), Order.id.desc())
        )

    def all_payments_query(self, seller_id: Optional[int] = None, payment_method: Optional[PaymentMethod] = None,
                           payment_status: Optional[PaymentStatus] = None):
        statement = select(Order).where(Order.payment_method.in_([PaymentMethod.GCASH, PaymentMethod.COP]))
        if seller_id is not None:
            statement = statement.where(Order.seller_id == seller_id)
        if payment_method is not None:
            statement = statement.where(Order.payment_method == payment_method)
        if payment_status is not None:
            statement = statement.where(Order.payment_status == payment_status)
        return statement.order_by(Order.created_at.desc(), Order.id.desc())

    def _get_pending_gcash_order(self, order_id: int) -> Order:
        order = self.session.exec(select(Order).where(Order.id == order_id).with_for_update()).first()
        if not order:
            raise NotFoundError("Order not found.")
        if order.payment_method != PaymentMethod.GCASH:
            raise BusinessRuleError("This order is not a GCash payment.")
        if order.payment_status != PaymentStatus.PENDING:
            raise BusinessRuleError("This payment has already been processed.")
        return order

    def verify_payment(self, order_id: int) -> Order:
        order = self._get_pending_gcash_order(order_id)
        if not can_transition(order.status, OrderStatus.PAYMENT_VERIFIED, Actor.ADMIN):
            raise BusinessRuleError(f"Cannot verify payment for an order that is {order.status.value}.")

        now = datetime.utcnow()
        order.payment_status = PaymentStatus.PAID
        order.status = OrderStatus.PAYMENT_VERIFIED
        order.paid_at = now
        order.updated_at = now
        self.session.add(order)
        self.session.commit()
        self.session.refresh(order)
        logger.info("Payment for order %s verified", order.order_number)
        return order

    def reject_payment(self, order_id: int, reason: str) -> Order:
        order = self._get_pending_gcash_order(order_id)
        if not can_transition(order.status, OrderStatus.REJECTED, Actor.ADMIN):
            raise BusinessRuleError(f"Cannot reject payment for an order that is {order.status.value}.")

        try:
            order.status = OrderStatus.REJECTED
            order.payment_status = PaymentStatus.FAILED
            order.admin_notes = reason
            order.updated_at = datetime.utcnow()
            self.session.add(order)
            if settings.RESTORE_STOCK_ON_PAYMENT_REJECTION:
                restore_order_stock(self.session, order)
            self.session.commit()
        except Exception:
            self.session.rollback()
            logger.exception("Failed to reject payment for order %s", order_id)
            raise

        self.session.refresh(order)
        logger.info("Payment for order %s rejected: %s", order.order_number, reason)
        return order

    def mark_distributed(self, order_id: int) -> Order:
        order = self.session.exec(select(Order).where(Order.id == order_id).with_for_update()).first()
        if not order:
            raise NotFoundError("Order not found.")
        if order.payment_distributed:
            raise BusinessRuleError("Payment has already been marked as distributed.")

        now = datetime.utcnow()
        order.payment_distributed = True
        order.payment_distributed_at = now
        order.updated_at = now
        self.session.add(order)
        self.session.commit()
        self.session.refresh(order)
        return order
