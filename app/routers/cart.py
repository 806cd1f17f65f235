from typing import List
from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field
from sqlmodel import Session

from app.core.responses import ApiResponse
from app.db.session import get_session
from app.models.cart import CartItemRead
from app.models.user import User
from app.routers.auth import get_current_user
from app.services.cart import CartService

router = APIRouter()

class CartItemCreate(BaseModel):
    product_id: int
    quantity: int = Field(default=1, ge=1)

class CartItemUpdate(BaseModel):
    quantity: int = Field(ge=1)

def get_cart_service(session: Session = Depends(get_session)) -> CartService:
    return CartService(session)


@router.get("", response_model=ApiResponse[List[CartItemRead]])
def get_cart(current_user: User = Depends(get_current_user), service: CartService = Depends(get_cart_service)):
    """Get user's cart items"""
    items = service.get_user_cart(current_user.id)
    return ApiResponse(
        message="Cart items fetched successfully.",
        data=[CartItemRead.model_validate(item) for item in items],
    )

@router.post("", response_model=ApiResponse[CartItemRead])
def add_to_cart(
    cart_item: CartItemCreate,
    response: Response,
    current_user: User = Depends(get_current_user),
    service: CartService = Depends(get_cart_service)
):
    """Add item to cart"""
    item, created = service.add_to_cart(current_user.id, cart_item.product_id, cart_item.quantity)
    if created:
        response.status_code = status.HTTP_201_CREATED
        message = "Product added to cart successfully."
    else:
        message = "Cart updated successfully."
    return ApiResponse(message=message, data=CartItemRead.model_validate(item))

@router.patch("/{cart_item_id}", response_model=ApiResponse[CartItemRead])
def update_cart_item(
    cart_item_id: int,
    cart_update: CartItemUpdate,
    current_user: User = Depends(get_current_user),
    service: CartService = Depends(get_cart_service)
):
    """Update cart item quantity"""
    item = service.update_cart_item(current_user.id, cart_item_id, cart_update.quantity)
    return ApiResponse(message="Cart item updated successfully.", data=CartItemRead.model_validate(item))

@router.delete("/{cart_item_id}", response_model=ApiResponse[None])
def remove_from_cart(
    cart_item_id: int,
    current_user: User = Depends(get_current_user),
    service: CartService = Depends(get_cart_service)
):
    """Remove item from cart"""
    service.remove_from_cart(current_user.id, cart_item_id)
    return ApiResponse(message="Cart item removed successfully.")

@router.post("/clear", response_model=ApiResponse[None])
def clear_cart(
    current_user: User = Depends(get_current_user),
    service: CartService = Depends(get_cart_service)
):
    """Clear entire cart"""
    service.clear_cart(current_user.id)
    return ApiResponse(message="Cart cleared successfully.")
