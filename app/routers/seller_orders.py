from typing import Optional
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from app.core.config import settings
from app.core.responses import ApiResponse, Page, paginate
from app.models.order import OrderAdminRead, OrderRead, OrderStatus, PaymentStatus
from app.models.seller import Seller
from app.routers.orders import get_order_service
from app.routers.sellers import get_current_seller
from app.services.order import OrderService

router = APIRouter()

class OrderStatusUpdate(BaseModel):
    status: OrderStatus

class PaymentStatusUpdate(BaseModel):
    payment_status: PaymentStatus

class SellerOrderStats(BaseModel):
    total_orders: int
    pending_orders: int
    confirmed_orders: int
    ready_for_pickup_orders: int
    picked_up_orders: int
    cancelled_orders: int
    total_revenue: float
    pending_revenue: float


@router.get("", response_model=ApiResponse[Page[OrderAdminRead]])
def list_seller_orders(
    status: Optional[OrderStatus] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=100),
    seller: Seller = Depends(get_current_seller),
    service: OrderService = Depends(get_order_service),
):
    """Orders placed with the current seller, newest first"""
    statement = service.seller_orders_query(seller.id, status)
    return ApiResponse(
        message="Orders fetched successfully.",
        data=paginate(service.session, statement, page, limit, OrderAdminRead),
    )

@router.get("/stats", response_model=ApiResponse[SellerOrderStats])
def seller_order_stats(
    seller: Seller = Depends(get_current_seller),
    service: OrderService = Depends(get_order_service),
):
    return ApiResponse(
        message="Order statistics fetched successfully.",
        data=SellerOrderStats(**service.seller_order_stats(seller.id)),
    )

@router.patch("/{order_id}/status", response_model=ApiResponse[OrderRead])
def update_order_status(
    order_id: int,
    status_update: OrderStatusUpdate,
    seller: Seller = Depends(get_current_seller),
    service: OrderService = Depends(get_order_service),
):
    order = service.update_status_by_seller(seller.id, order_id, status_update.status)
    return ApiResponse(message="Order status updated successfully.", data=OrderRead.model_validate(order))

@router.patch("/{order_id}/payment-status", response_model=ApiResponse[OrderRead])
def update_payment_status(
    order_id: int,
    payment_update: PaymentStatusUpdate,
    seller: Seller = Depends(get_current_seller),
    service: OrderService = Depends(get_order_service),
):
    """Cash and other non-GCash payments are settled by the seller."""
    order = service.update_payment_status_by_seller(seller.id, order_id, payment_update.payment_status)
    return ApiResponse(message="Payment status updated successfully.", data=OrderRead.model_validate(order))
