import logging
from datetime import datetime
from sqlmodel import Session, select

from app.core.errors import BusinessRuleError, NotFoundError
from app.models.product import Product
from app.models.seller import Seller

logger = logging.getLogger(__name__)

class ProductService:
    def __init__(self, session: Session):
        self.session = session

    def active_products_query(self, seller_id: int = None):
        statement = select(Product).where(Product.is_active == True)  # noqa: E712
        if seller_id is not None:
            statement = statement.where(Product.seller_id == seller_id)
        return statement.order_by(Product.created_at.desc(), Product.id.desc())

    def get_product(self, product_id: int) -> Product:
        product = self.session.get(Product, product_id)
        if not product:
            raise NotFoundError("Product not found.")
        return product

    def get_owned_product(self, seller: Seller, product_id: int) -> Product:
        product = self.get_product(product_id)
        if product.seller_id != seller.id:
            raise NotFoundError("Product not found.")
        return product

    def _ensure_slug_available(self, slug: str, product_id: int = None):
        statement = select(Product.id).where(Product.slug == slug)
        if product_id is not None:
            statement = statement.where(Product.id != product_id)
        if self.session.exec(statement).first() is not None:
            raise BusinessRuleError("The slug has already been taken.")

    def create_product(self, seller: Seller, data: dict) -> Product:
        if not seller.is_verified or not seller.is_active:
            raise BusinessRuleError("Only verified sellers can list products.")
        self._ensure_slug_available(data["slug"])

        product = Product(seller_id=seller.id, is_active=True, **data)
        self.session.add(product)
        self.session.commit()
        self.session.refresh(product)
        logger.info("Seller %s listed product %s", seller.id, product.id)
        return product

    def update_product(self, seller: Seller, product_id: int, data: dict) -> Product:
        product = self.get_owned_product(seller, product_id)
        if "slug" in data:
            self._ensure_slug_available(data["slug"], product.id)

        for key, value in data.items():
            setattr(product, key, value)
        product.updated_at = datetime.utcnow()
        self.session.add(product)
        self.session.commit()
        self.session.refresh(product)
        return product

    def set_active(self, seller: Seller, product_id: int, is_active: bool) -> Product:
        # Products are never deleted; order items keep referencing them
        product = self.get_owned_product(seller, product_id)
        product.is_active = is_active
        product.updated_at = datetime.utcnow()
        self.session.add(product)
        self.session.commit()
        self.session.refresh(product)
        return product
