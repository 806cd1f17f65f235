from typing import Any, List, Optional
from decimal import Decimal
from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlmodel import Session

from app.core.responses import ApiResponse, Page, paginate
from app.db.session import get_session
from app.models.product import ProductRead
from app.models.seller import Seller
from app.routers.sellers import get_current_seller
from app.services.product import ProductService

router = APIRouter()

class ProductCreate(BaseModel):
    name: str = Field(min_length=1, max_length=160)
    slug: str = Field(min_length=1, max_length=180)
    description: Optional[str] = None
    category: Optional[str] = Field(default=None, max_length=120)
    sku: Optional[str] = Field(default=None, max_length=80)
    price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    stock: int = Field(ge=0)
    main_image_url: Optional[str] = None
    images: List[str] = []
    weight: Optional[str] = Field(default=None, max_length=50)
    options: Optional[Any] = None

class ProductUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=160)
    slug: Optional[str] = Field(default=None, min_length=1, max_length=180)
    description: Optional[str] = None
    category: Optional[str] = Field(default=None, max_length=120)
    sku: Optional[str] = Field(default=None, max_length=80)
    price: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    stock: Optional[int] = Field(default=None, ge=0)
    main_image_url: Optional[str] = None
    images: Optional[List[str]] = None
    weight: Optional[str] = Field(default=None, max_length=50)
    options: Optional[Any] = None

# Columns that may be omitted on update but never set to null
NON_NULLABLE_FIELDS = ("name", "slug", "price", "stock", "images")

def get_product_service(session: Session = Depends(get_session)) -> ProductService:
    return ProductService(session)


@router.get("", response_model=ApiResponse[Page[ProductRead]])
def read_products(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    session: Session = Depends(get_session),
):
    statement = ProductService(session).active_products_query()
    return ApiResponse(
        message="Products fetched successfully.",
        data=paginate(session, statement, page, limit, ProductRead),
    )

@router.get("/{product_id}", response_model=ApiResponse[ProductRead])
def read_product(product_id: int, service: ProductService = Depends(get_product_service)):
    product = service.get_product(product_id)
    return ApiResponse(message="Product fetched successfully.", data=ProductRead.model_validate(product))

@router.post("", status_code=status.HTTP_201_CREATED, response_model=ApiResponse[ProductRead])
def create_product(
    product_in: ProductCreate,
    seller: Seller = Depends(get_current_seller),
    service: ProductService = Depends(get_product_service),
):
    product = service.create_product(seller, product_in.model_dump())
    return ApiResponse(message="Product created.", data=ProductRead.model_validate(product))

@router.put("/{product_id}", response_model=ApiResponse[ProductRead])
def update_product(
    product_id: int,
    product_in: ProductUpdate,
    seller: Seller = Depends(get_current_seller),
    service: ProductService = Depends(get_product_service),
):
    data = {
        key: value
        for key, value in product_in.model_dump(exclude_unset=True).items()
        if not (key in NON_NULLABLE_FIELDS and value is None)
    }
    product = service.update_product(seller, product_id, data)
    return ApiResponse(message="Product updated successfully.", data=ProductRead.model_validate(product))

@router.post("/{product_id}/deactivate", response_model=ApiResponse[ProductRead])
def deactivate_product(
    product_id: int,
    seller: Seller = Depends(get_current_seller),
    service: ProductService = Depends(get_product_service),
):
    product = service.set_active(seller, product_id, False)
    return ApiResponse(message="Product removed from store successfully.", data=ProductRead.model_validate(product))

@router.post("/{product_id}/restore", response_model=ApiResponse[ProductRead])
def restore_product(
    product_id: int,
    seller: Seller = Depends(get_current_seller),
    service: ProductService = Depends(get_product_service),
):
    product = service.set_active(seller, product_id, True)
    return ApiResponse(message="Product restored successfully.", data=ProductRead.model_validate(product))
