from typing import List
from datetime import datetime
from sqlmodel import Session, select

from app.core.errors import BusinessRuleError, NotFoundError
from app.models.cart import CartItem
from app.models.product import Product

class CartService:
    def __init__(self, session: Session):
        self.session = session

    def get_user_cart(self, user_id: int) -> List[CartItem]:
        """Get all cart items for a user, newest first"""
        return self.session.exec(
            select(CartItem)
            .where(CartItem.user_id == user_id)
            .order_by(CartItem.created_at.desc(), CartItem.id.desc())
        ).all()

    def _get_item(self, user_id: int, cart_item_id: int) -> CartItem:
        item = self.session.get(CartItem, cart_item_id)
        if not item or item.user_id != user_id:
            raise NotFoundError("Cart item not found.")
        return item

    def add_to_cart(self, user_id: int, product_id: int, quantity: int = 1) -> tuple[CartItem, bool]:
        """Add item to cart or increase its quantity. Returns (item, created)."""
        product = self.session.get(Product, product_id)
        if not product or not product.is_active:
            raise NotFoundError("Product not found or inactive.")

        if product.stock < quantity:
            raise BusinessRuleError(f"Insufficient stock. Available: {product.stock}")

        existing_item = self.session.exec(
            select(CartItem).where(
                CartItem.user_id == user_id,
                CartItem.product_id == product_id
            )
        ).first()

        if existing_item:
            new_quantity = existing_item.quantity + quantity
            if product.stock < new_quantity:
                raise BusinessRuleError(
                    f"Cannot add more items. Available stock: {product.stock}, "
                    f"Current in cart: {existing_item.quantity}"
                )
            existing_item.quantity = new_quantity
            existing_item.updated_at = datetime.utcnow()
            item, created = existing_item, False
        else:
            item, created = CartItem(user_id=user_id, product_id=product_id, quantity=quantity), True

        self.session.add(item)
        self.session.commit()
        self.session.refresh(item)
        return item, created

    def update_cart_item(self, user_id: int, cart_item_id: int, quantity: int) -> CartItem:
        """Set cart item quantity"""
        item = self._get_item(user_id, cart_item_id)

        product = self.session.get(Product, item.product_id)
        if not product or not product.is_active:
            raise NotFoundError("Product no longer available.")

        if product.stock < quantity:
            raise BusinessRuleError(f"Insufficient stock. Available: {product.stock}")

        item.quantity = quantity
        item.updated_at = datetime.utcnow()
        self.session.add(item)
        self.session.commit()
        self.session.refresh(item)
        return item

    def remove_from_cart(self, user_id: int, cart_item_id: int):
        item = self._get_item(user_id, cart_item_id)
        self.session.delete(item)
        self.session.commit()

    def clear_cart(self, user_id: int) -> int:
        """Remove every cart row of the user; returns how many were removed"""
        items = self.session.exec(select(CartItem).where(CartItem.user_id == user_id)).all()
        for item in items:
            self.session.delete(item)
        self.session.commit()
        return len(items)
