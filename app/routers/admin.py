from typing import List, Literal, Optional
from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from pydantic import BaseModel, Field
from sqlmodel import Session

from app.core.responses import ApiResponse, Page, paginate
from app.db.session import get_session
from app.models.admin_user import AdminUser, GcashSettings
from app.models.order import OrderAdminRead, PaymentMethod, PaymentStatus
from app.models.seller import SellerApplication, SellerRead
from app.models.user import User
from app.routers.auth import get_current_user, get_current_user_optional
from app.services.admin import AdminService
from app.services.auth import AuthService
from app.services.storage import S3Storage, discard_image, get_storage, store_image

router = APIRouter()

# Pydantic models for requests/responses
class DashboardStats(BaseModel):
    total_sellers: int
    pending_verifications: int
    verified_sellers: int
    active_sellers: int

class DashboardData(BaseModel):
    stats: DashboardStats
    recent_applications: List[SellerApplication]

class ApplicationDecision(BaseModel):
    action: Literal["approve", "reject"]
    notes: Optional[str] = Field(default=None, max_length=500)

class PaymentRejection(BaseModel):
    reason: str = Field(min_length=1, max_length=500)

ALL_PAYMENTS_PAGE_SIZE = 20

def get_admin_service(session: Session = Depends(get_session)) -> AdminService:
    return AdminService(session)

def get_admin_user(current_user: User = Depends(get_current_user), session: Session = Depends(get_session)) -> AdminUser:
    admin_user = AuthService(session).get_active_admin(current_user.id)
    if not admin_user:
        raise HTTPException(status_code=403, detail="Admin access required")
    return admin_user


# Seller applications

@router.get("/dashboard", response_model=ApiResponse[DashboardData])
def admin_dashboard(
    admin_user: AdminUser = Depends(get_admin_user),
    service: AdminService = Depends(get_admin_service),
):
    data = service.dashboard_stats()
    return ApiResponse(
        message="Dashboard fetched successfully.",
        data=DashboardData(
            stats=DashboardStats(**data["stats"]),
            recent_applications=[SellerApplication.model_validate(s) for s in data["recent_applications"]],
        ),
    )

@router.get("/pending-applications", response_model=ApiResponse[Page[SellerApplication]])
def pending_applications(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    admin_user: AdminUser = Depends(get_admin_user),
    service: AdminService = Depends(get_admin_service),
):
    return ApiResponse(
        message="Pending applications fetched successfully.",
        data=paginate(service.session, service.pending_applications_query(), page, limit, SellerApplication),
    )

@router.post("/process-application/{seller_id}", response_model=ApiResponse[SellerRead])
def process_application(
    seller_id: int,
    decision: ApplicationDecision,
    admin_user: AdminUser = Depends(get_admin_user),
    service: AdminService = Depends(get_admin_service),
):
    seller = service.process_application(seller_id, decision.action, decision.notes)
    verb = "approved" if decision.action == "approve" else "rejected"
    return ApiResponse(message=f"Seller application {verb} successfully.", data=SellerRead.model_validate(seller))


# GCash settings

@router.get("/gcash-settings", response_model=ApiResponse[GcashSettings])
def read_gcash_settings(
    current_user: Optional[User] = Depends(get_current_user_optional),
    session: Session = Depends(get_session),
):
    """Public: buyers need the number and QR code to pay at checkout."""
    admin_user = AuthService(session).get_active_admin(current_user.id) if current_user else None
    row = AdminService(session).get_gcash_settings(admin_user)
    data = GcashSettings.model_validate(row) if row else GcashSettings()
    return ApiResponse(message="GCash settings fetched successfully.", data=data)

@router.post("/gcash-settings", response_model=ApiResponse[GcashSettings])
async def update_gcash_settings(
    gcash_number: Optional[str] = Form(None, max_length=20),
    gcash_qr: Optional[UploadFile] = File(None),
    admin_user: AdminUser = Depends(get_admin_user),
    service: AdminService = Depends(get_admin_service),
    storage: S3Storage = Depends(get_storage),
):
    previous_qr = admin_user.gcash_qr_url
    qr_url = None
    if gcash_qr is not None and gcash_qr.filename:
        qr_url = await store_image(storage, gcash_qr, "gcash", field="gcash qr")

    fields_set = frozenset({"gcash_number"}) if gcash_number is not None else frozenset()
    try:
        admin_user = service.update_gcash_settings(
            admin_user,
            gcash_number=gcash_number or None,
            gcash_qr_url=qr_url,
            fields_set=fields_set,
        )
    except Exception:
        discard_image(storage, qr_url)
        raise

    if qr_url and previous_qr and previous_qr != qr_url:
        discard_image(storage, previous_qr)

    return ApiResponse(message="GCash settings updated successfully.", data=GcashSettings.model_validate(admin_user))


# Payments

@router.get("/pending-payments", response_model=ApiResponse[Page[OrderAdminRead]])
def pending_payments(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    admin_user: AdminUser = Depends(get_admin_user),
    service: AdminService = Depends(get_admin_service),
):
    """GCash orders whose receipt is still waiting for review"""
    return ApiResponse(
        message="Pending payments fetched successfully.",
        data=paginate(service.session, service.pending_payments_query(), page, limit, OrderAdminRead),
    )

@router.get("/all-payments", response_model=ApiResponse[Page[OrderAdminRead]])
def all_payments(
    seller_id: Optional[int] = None,
    payment_method: Optional[PaymentMethod] = None,
    payment_status: Optional[PaymentStatus] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(ALL_PAYMENTS_PAGE_SIZE, ge=1, le=100),
    admin_user: AdminUser = Depends(get_admin_user),
    service: AdminService = Depends(get_admin_service),
):
    statement = service.all_payments_query(seller_id, payment_method, payment_status)
    return ApiResponse(
        message="Payments fetched successfully.",
        data=paginate(service.session, statement, page, limit, OrderAdminRead),
    )

@router.post("/verify-payment/{order_id}", response_model=ApiResponse[OrderAdminRead])
def verify_payment(
    order_id: int,
    admin_user: AdminUser = Depends(get_admin_user),
    service: AdminService = Depends(get_admin_service),
):
    order = service.verify_payment(order_id)
    return ApiResponse(message="Payment verified successfully.", data=OrderAdminRead.model_validate(order))

@router.post("/reject-payment/{order_id}", response_model=ApiResponse[OrderAdminRead])
def reject_payment(
    order_id: int,
    rejection: PaymentRejection,
    admin_user: AdminUser = Depends(get_admin_user),
    service: AdminService = Depends(get_admin_service),
):
    order = service.reject_payment(order_id, rejection.reason)
    return ApiResponse(message="Payment rejected successfully.", data=OrderAdminRead.model_validate(order))

@router.post("/mark-distributed/{order_id}", response_model=ApiResponse[OrderAdminRead])
def mark_distributed(
    order_id: int,
    admin_user: AdminUser = Depends(get_admin_user),
    service: AdminService = Depends(get_admin_service),
):
    order = service.mark_distributed(order_id)
    return ApiResponse(message="Payment marked as distributed.", data=OrderAdminRead.model_validate(order))
