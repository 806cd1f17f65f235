import json
import re
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, Field, ValidationError
from sqlmodel import Session
from starlette.datastructures import UploadFile as StarletteUploadFile

from app.core.config import settings
from app.core.errors import BusinessRuleError
from app.core.responses import ApiResponse, Page, paginate
from app.db.session import get_session
from app.models.order import OrderRead, OrderStatus, PaymentMethod
from app.models.user import User
from app.routers.auth import get_current_user
from app.services.order import OrderService
from app.services.storage import RECEIPT_CONTENT_TYPES, S3Storage, discard_image, get_storage, store_image

router = APIRouter()

class OrderCreateItem(BaseModel):
    product_id: int
    quantity: int = Field(ge=1)

class OrderCreate(BaseModel):
    items: List[OrderCreateItem] = Field(min_length=1)
    payment_method: PaymentMethod
    notes: Optional[str] = None

class CheckoutData(BaseModel):
    orders: List[OrderRead]
    total_orders: int
    message: str

# items[0][product_id]=3&items[0][quantity]=1, as sent by browser FormData
FORM_ITEM_FIELD = re.compile(r"^items\[(\d+)\]\[(product_id|quantity)\]$")

RECEIPT_REQUIRED_MESSAGE = "A payment receipt is required for GCash payments."

def get_order_service(session: Session = Depends(get_session)) -> OrderService:
    return OrderService(session)

def parse_checkout_form(form) -> OrderCreate:
    rows = {}
    for key, value in form.multi_items():
        match = FORM_ITEM_FIELD.match(key)
        if match:
            rows.setdefault(int(match.group(1)), {})[match.group(2)] = value

    items = [rows[index] for index in sorted(rows)]
    if not items and isinstance(form.get("items"), str):
        try:
            items = json.loads(form["items"])
        except ValueError:
            items = form["items"]

    try:
        return OrderCreate.model_validate({
            "items": items,
            "payment_method": form.get("payment_method"),
            "notes": form.get("notes") or None,
        })
    except ValidationError as e:
        raise RequestValidationError(e.errors())

def _checkout(
    service: OrderService,
    storage: S3Storage,
    user: User,
    order_in: OrderCreate,
    payment_receipt_url: Optional[str] = None,
) -> ApiResponse[CheckoutData]:
    try:
        result = service.create_orders(
            user_id=user.id,
            items_data=[item.model_dump() for item in order_in.items],
            payment_method=order_in.payment_method,
            notes=order_in.notes,
            payment_receipt_url=payment_receipt_url,
        )
    except Exception:
        # The stored receipt belongs to no order once the checkout rolled back
        discard_image(storage, payment_receipt_url)
        raise

    return ApiResponse(
        message="Orders created successfully.",
        data=CheckoutData(
            orders=[OrderRead.model_validate(order) for order in result.orders],
            total_orders=result.total_orders,
            message=result.message,
        ),
    )


@router.post("", status_code=status.HTTP_201_CREATED, response_model=ApiResponse[CheckoutData])
def create_order(
    order_in: OrderCreate,
    current_user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
    storage: S3Storage = Depends(get_storage),
):
    """Check out a cart selection; one order is created per seller."""
    if order_in.payment_method == PaymentMethod.GCASH:
        raise BusinessRuleError(RECEIPT_REQUIRED_MESSAGE)
    return _checkout(service, storage, current_user, order_in)

@router.post("/with-receipt", status_code=status.HTTP_201_CREATED, response_model=ApiResponse[CheckoutData])
async def create_order_with_receipt(
    request: Request,
    current_user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
    storage: S3Storage = Depends(get_storage),
):
    """Multipart checkout carrying a payment receipt image (required for GCash)."""
    form = await request.form()
    order_in = parse_checkout_form(form)

    receipt = form.get("payment_receipt")
    has_receipt = isinstance(receipt, StarletteUploadFile) and bool(receipt.filename)
    if order_in.payment_method == PaymentMethod.GCASH and not has_receipt:
        raise BusinessRuleError(RECEIPT_REQUIRED_MESSAGE)

    receipt_url = None
    if has_receipt:
        receipt_url = await store_image(
            storage,
            receipt,
            "orders/receipts",
            max_bytes=settings.MAX_RECEIPT_SIZE_BYTES,
            allowed_types=RECEIPT_CONTENT_TYPES,
            field="payment receipt",
        )
    return _checkout(service, storage, current_user, order_in, receipt_url)

@router.get("", response_model=ApiResponse[Page[OrderRead]])
def list_orders(
    status: Optional[OrderStatus] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    statement = service.user_orders_query(current_user.id, status)
    return ApiResponse(
        message="Orders fetched successfully.",
        data=paginate(service.session, statement, page, limit, OrderRead),
    )

@router.get("/{order_id}", response_model=ApiResponse[OrderRead])
def get_order(
    order_id: int,
    current_user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    order = service.get_user_order(current_user.id, order_id)
    return ApiResponse(message="Order fetched successfully.", data=OrderRead.model_validate(order))

@router.post("/{order_id}/cancel", response_model=ApiResponse[OrderRead])
def cancel_order(
    order_id: int,
    current_user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    order = service.cancel_order(current_user.id, order_id)
    return ApiResponse(message="Order cancelled successfully.", data=OrderRead.model_validate(order))

@router.post("/{order_id}/confirm-delivery", response_model=ApiResponse[OrderRead])
def confirm_delivery(
    order_id: int,
    current_user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    order = service.confirm_delivery(current_user.id, order_id)
    return ApiResponse(message="Delivery confirmed successfully.", data=OrderRead.model_validate(order))
