import logging
import secrets
import string
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Set

from sqlalchemy import func
from sqlmodel import Session, select

from app.core.errors import BusinessRuleError, NotFoundError
from app.models.cart import CartItem
from app.models.order import Order, OrderItem, OrderStatus, PaymentMethod, PaymentStatus
from app.models.product import Product
from app.services.order_workflow import Actor, can_transition

logger = logging.getLogger(__name__)

SINGLE_ORDER_MESSAGE = "Order created successfully."
SPLIT_ORDER_MESSAGE = "Your order has been split into multiple orders due to different sellers."

ORDER_NUMBER_ALPHABET = string.ascii_uppercase + string.digits
ORDER_NUMBER_TOKEN_LENGTH = 8
CENT = Decimal("0.01")


@dataclass
class CheckoutResult:
    orders: List[Order]
    total_orders: int
    message: str


def generate_order_number(session: Session, taken: Iterable[str] = ()) -> str:
    """ORD-<date>-<random token>, unique against the table and `taken`."""
    taken = set(taken)
    while True:
        token = "".join(secrets.choice(ORDER_NUMBER_ALPHABET) for _ in range(ORDER_NUMBER_TOKEN_LENGTH))
        candidate = f"ORD-{datetime.utcnow():%Y%m%d}-{token}"
        if candidate in taken:
            continue
        exists = session.exec(select(Order.id).where(Order.order_number == candidate)).first()
        if exists is None:
            return candidate


def lock_products(session: Session, product_ids: Iterable[int]) -> Dict[int, Product]:
    """Load products with a row lock, always in ascending id order."""
    ids = sorted(set(product_ids))
    if not ids:
        return {}
    statement = (
        select(Product)
        .where(Product.id.in_(ids))
        .order_by(Product.id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return {product.id: product for product in session.exec(statement).all()}


def restore_order_stock(session: Session, order: Order):
    """Undo the stock reservation made when `order` was created."""
    products = lock_products(session, [item.product_id for item in order.order_items])
    now = datetime.utcnow()
    for item in order.order_items:
        product = products.get(item.product_id)
        if product is None:
            continue
        product.stock += item.quantity
        product.sold_count -= item.quantity
        product.updated_at = now
        session.add(product)


def initial_status_for(payment_method: PaymentMethod) -> OrderStatus:
    # Cash on pickup needs no payment verification
    if payment_method == PaymentMethod.COP:
        return OrderStatus.CONFIRMED
    return OrderStatus.PENDING


class OrderService:
    def __init__(self, session: Session):
        self.session = session

    def create_orders(
        self,
        user_id: int,
        items_data: List[dict],
        payment_method: str,
        notes: Optional[str] = None,
        payment_receipt_url: Optional[str] = None,
    ) -> CheckoutResult:
        """Check out a cart selection as one order per seller.

        Every line is validated against locked product rows before anything is
        written, and the whole batch commits or rolls back together.
        """
        if not items_data:
            raise BusinessRuleError("No items selected for checkout.")

        try:
            method = PaymentMethod(payment_method)
        except ValueError:
            raise BusinessRuleError("A valid payment method is required.")

        product_ids = [item["product_id"] for item in items_data]

        try:
            products = lock_products(self.session, product_ids)
            groups = self._group_by_seller(items_data, products)

            orders: List[Order] = []
            taken: Set[str] = set()
            for seller_id, group in groups.items():
                order = self._create_seller_order(
                    user_id, seller_id, group, method, notes, payment_receipt_url, taken
                )
                taken.add(order.order_number)
                orders.append(order)

            self._remove_purchased_cart_items(user_id, product_ids)
            self.session.commit()
        except Exception as e:
            self.session.rollback()
            logger.warning("Checkout rolled back for user %s: %s", user_id, e)
            raise

        for order in orders:
            self.session.refresh(order)

        logger.info(
            "User %s checked out %d line(s) into order(s) %s",
            user_id, len(items_data), ", ".join(o.order_number for o in orders),
        )
        message = SPLIT_ORDER_MESSAGE if len(orders) > 1 else SINGLE_ORDER_MESSAGE
        return CheckoutResult(orders=orders, total_orders=len(orders), message=message)

    def _group_by_seller(self, items_data: List[dict], products: Dict[int, Product]) -> Dict[int, dict]:
        groups: Dict[int, dict] = {}
        requested: Dict[int, int] = {}

        for item in items_data:
            product_id = item["product_id"]
            quantity = int(item["quantity"])
            if quantity < 1:
                raise BusinessRuleError(f"Quantity must be at least 1 for product: {product_id}")

            product = products.get(product_id)
            if not product:
                raise BusinessRuleError(f"Product not found: {product_id}")
            if not product.is_active:
                raise BusinessRuleError(f"Product is inactive: {product.name}")

            # Repeated lines for one product draw from the same stock
            requested[product_id] = requested.get(product_id, 0) + quantity
            if product.stock < requested[product_id]:
                raise BusinessRuleError(f"Insufficient stock for product: {product.name}")

            price = Decimal(str(product.price)).quantize(CENT)
            line_total = (price * quantity).quantize(CENT)

            group = groups.setdefault(product.seller_id, {"lines": [], "subtotal": Decimal("0.00")})
            group["subtotal"] += line_total
            group["lines"].append({
                "product": product,
                "quantity": quantity,
                "price": price,
                "total_price": line_total,
            })

        return groups

    def _create_seller_order(
        self,
        user_id: int,
        seller_id: int,
        group: dict,
        payment_method: PaymentMethod,
        notes: Optional[str],
        payment_receipt_url: Optional[str],
        taken: Set[str],
    ) -> Order:
        now = datetime.utcnow()
        order = Order(
            user_id=user_id,
            seller_id=seller_id,
            order_number=generate_order_number(self.session, taken),
            status=initial_status_for(payment_method),
            subtotal=group["subtotal"],
            total_amount=group["subtotal"],
            payment_method=payment_method,
            payment_status=PaymentStatus.PENDING,
            notes=notes,
            payment_receipt_url=payment_receipt_url,
            created_at=now,
            updated_at=now,
        )

        for line in group["lines"]:
            product: Product = line["product"]
            order.order_items.append(OrderItem(
                product_id=product.id,
                quantity=line["quantity"],
                price=line["price"],
                total_price=line["total_price"],
                product_name=product.name,
                product_image=product.main_image_url,
            ))

            product.stock -= line["quantity"]
            product.sold_count += line["quantity"]
            product.updated_at = now
            self.session.add(product)

        self.session.add(order)
        return order

    def _remove_purchased_cart_items(self, user_id: int, product_ids: List[int]):
        cart_items = self.session.exec(
            select(CartItem).where(
                CartItem.user_id == user_id,
                CartItem.product_id.in_(set(product_ids)),
            )
        ).all()
        for cart_item in cart_items:
            self.session.delete(cart_item)

    # Buyer side

    def user_orders_query(self, user_id: int, status: Optional[OrderStatus] = None):
        statement = select(Order).where(Order.user_id == user_id).order_by(Order.created_at.desc(), Order.id.desc())
        if status:
            statement = statement.where(Order.status == status)
        return statement

    def get_user_order(self, user_id: int, order_id: int, for_update: bool = False) -> Order:
        statement = select(Order).where(Order.id == order_id, Order.user_id == user_id)
        if for_update:
            statement = statement.with_for_update()
        order = self.session.exec(statement).first()
        if not order:
            raise NotFoundError("Order not found.")
        return order

    def cancel_order(self, user_id: int, order_id: int) -> Order:
        order = self.get_user_order(user_id, order_id, for_update=True)
        if not can_transition(order.status, OrderStatus.CANCELLED, Actor.BUYER):
            raise BusinessRuleError("Order cannot be cancelled at this stage.")

        try:
            order.status = OrderStatus.CANCELLED
            if order.awaiting_payment:
                order.payment_status = PaymentStatus.FAILED
            order.updated_at = datetime.utcnow()
            self.session.add(order)
            restore_order_stock(self.session, order)
            self.session.commit()
        except Exception:
            self.session.rollback()
            logger.exception("Failed to cancel order %s", order_id)
            raise

        self.session.refresh(order)
        logger.info("Order %s cancelled by buyer %s", order.order_number, user_id)
        return order

    def confirm_delivery(self, user_id: int, order_id: int) -> Order:
        order = self.get_user_order(user_id, order_id)
        if order.delivery_confirmed_by_customer:
            raise BusinessRuleError("Delivery has already been confirmed for this order.")
        if order.status != OrderStatus.PICKED_UP:
            raise BusinessRuleError("Delivery can only be confirmed after the order has been picked up.")

        order.delivery_confirmed_by_customer = True
        order.customer_delivery_confirmed_at = datetime.utcnow()
        order.updated_at = datetime.utcnow()
        self.session.add(order)
        self.session.commit()
        self.session.refresh(order)
        return order

    # Seller side

    def seller_orders_query(self, seller_id: int, status: Optional[OrderStatus] = None):
        statement = select(Order).where(Order.seller_id == seller_id).order_by(Order.created_at.desc(), Order.id.desc())
        if status:
            statement = statement.where(Order.status == status)
        return statement

    def get_seller_order(self, seller_id: int, order_id: int, for_update: bool = False) -> Order:
        statement = select(Order).where(Order.id == order_id, Order.seller_id == seller_id)
        if for_update:
            statement = statement.with_for_update()
        order = self.session.exec(statement).first()
        if not order:
            raise NotFoundError("Order not found.")
        return order

    def update_status_by_seller(self, seller_id: int, order_id: int, new_status: OrderStatus) -> Order:
        order = self.get_seller_order(seller_id, order_id, for_update=True)
        if order.awaiting_payment:
            raise BusinessRuleError("This order is waiting for GCash payment verification.")
        if not can_transition(order.status, new_status, Actor.SELLER, order.payment_verified, order.awaiting_payment):
            raise BusinessRuleError(
                f"Cannot change order status from {order.status.value} to {OrderStatus(new_status).value}."
            )

        previous = order.status
        order.status = new_status
        order.updated_at = datetime.utcnow()
        self.session.add(order)
        self.session.commit()
        self.session.refresh(order)
        logger.info("Seller %s moved order %s from %s to %s", seller_id, order.order_number, previous.value, order.status.value)
        return order

    def update_payment_status_by_seller(self, seller_id: int, order_id: int, payment_status: PaymentStatus) -> Order:
        order = self.get_seller_order(seller_id, order_id, for_update=True)
        if order.payment_method == PaymentMethod.GCASH:
            raise BusinessRuleError("GCash payments are verified by the admin.")
        if order.status in (OrderStatus.CANCELLED, OrderStatus.REJECTED):
            raise BusinessRuleError("Payment status cannot be changed for a closed order.")

        order.payment_status = payment_status
        if payment_status == PaymentStatus.PAID and not order.paid_at:
            order.paid_at = datetime.utcnow()
        order.updated_at = datetime.utcnow()
        self.session.add(order)
        self.session.commit()
        self.session.refresh(order)
        return order

    def seller_order_stats(self, seller_id: int) -> dict:
        counts = {
            status: count
            for status, count in self.session.exec(
                select(Order.status, func.count(Order.id))
                .where(Order.seller_id == seller_id)
                .group_by(Order.status)
            ).all()
        }

        def revenue(payment_status: PaymentStatus) -> float:
            total = self.session.exec(
                select(func.coalesce(func.sum(Order.total_amount), 0)).where(
                    Order.seller_id == seller_id,
                    Order.payment_status == payment_status,
                )
            ).one()
            return float(total or 0)

        return {
            "total_orders": sum(counts.values()),
            "pending_orders": counts.get(OrderStatus.PENDING, 0),
            "confirmed_orders": counts.get(OrderStatus.CONFIRMED, 0),
            "ready_for_pickup_orders": counts.get(OrderStatus.READY_FOR_PICKUP, 0),
            "picked_up_orders": counts.get(OrderStatus.PICKED_UP, 0),
            "cancelled_orders": counts.get(OrderStatus.CANCELLED, 0),
            "total_revenue": revenue(PaymentStatus.PAID),
            "pending_revenue": revenue(PaymentStatus.PENDING),
        }
