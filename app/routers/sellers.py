from typing import Optional
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlmodel import Session

from app.core.config import settings
from app.core.responses import ApiResponse, Page, paginate
from app.db.session import get_session
from app.models.product import ProductRead
from app.models.seller import Seller, SellerDetail, SellerRead
from app.models.user import User
from app.routers.auth import get_current_user
from app.services.product import ProductService
from app.services.seller import SellerService
from app.services.storage import S3Storage, get_storage, store_image, discard_image
from pydantic import BaseModel, EmailStr, Field

router = APIRouter()

class SellerUpdate(BaseModel):
    shop_name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    slug: Optional[str] = Field(default=None, min_length=1, max_length=140)
    description: Optional[str] = None
    logo_url: Optional[str] = None
    banner_url: Optional[str] = None
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = Field(default=None, max_length=32)

def get_seller_service(session: Session = Depends(get_session)) -> SellerService:
    return SellerService(session)

def get_current_seller(
    current_user: User = Depends(get_current_user),
    service: SellerService = Depends(get_seller_service),
) -> Seller:
    """The seller profile of the logged-in user"""
    return service.require_seller(current_user.id)


@router.post("", status_code=status.HTTP_201_CREATED, response_model=ApiResponse[SellerRead])
async def apply_as_seller(
    shop_name: str = Form(..., min_length=1, max_length=120),
    slug: str = Form(..., min_length=1, max_length=140),
    description: Optional[str] = Form(None),
    contact_email: Optional[EmailStr] = Form(None),
    contact_phone: Optional[str] = Form(None, max_length=32),
    id_image: UploadFile = File(...),
    logo: Optional[UploadFile] = File(None),
    banner: Optional[UploadFile] = File(None),
    current_user: User = Depends(get_current_user),
    service: SellerService = Depends(get_seller_service),
    storage: S3Storage = Depends(get_storage),
):
    """Submit (or resubmit after rejection) a seller application for admin review."""
    folder = f"sellers/{current_user.id}"
    data = {
        "shop_name": shop_name,
        "slug": slug,
        "description": description,
        "contact_email": contact_email,
        "contact_phone": contact_phone,
        "id_image_path": await store_image(storage, id_image, f"{folder}/id", field="id image"),
    }
    if logo is not None:
        data["logo_url"] = await store_image(storage, logo, folder, field="logo")
    if banner is not None:
        data["banner_url"] = await store_image(
            storage, banner, folder, max_bytes=settings.MAX_IMAGE_SIZE_BYTES * 2, field="banner"
        )

    try:
        seller = service.apply(current_user.id, data)
    except Exception:
        for key in ("id_image_path", "logo_url", "banner_url"):
            discard_image(storage, data.get(key))
        raise

    return ApiResponse(message="Seller application submitted.", data=SellerRead.model_validate(seller))

@router.get("/me", response_model=ApiResponse[SellerDetail])
def read_seller_me(seller: Seller = Depends(get_current_seller), service: SellerService = Depends(get_seller_service)):
    return ApiResponse(message="Seller fetched.", data=service.with_counts(seller))

@router.put("/me", response_model=ApiResponse[SellerRead])
def update_seller_me(
    seller_in: SellerUpdate,
    seller: Seller = Depends(get_current_seller),
    service: SellerService = Depends(get_seller_service),
):
    data = seller_in.model_dump(exclude_unset=True)
    # shop_name and slug may be omitted but never cleared
    for required in ("shop_name", "slug"):
        if required in data and data[required] is None:
            data.pop(required)
    seller = service.update_profile(seller, data)
    return ApiResponse(message="Seller profile updated successfully.", data=SellerRead.model_validate(seller))

@router.get("/{seller_id}", response_model=ApiResponse[SellerDetail])
def read_seller(seller_id: int, service: SellerService = Depends(get_seller_service)):
    seller = service.get_seller(seller_id)
    return ApiResponse(message="Seller fetched.", data=service.with_counts(seller))

@router.get("/{seller_id}/products", response_model=ApiResponse[Page[ProductRead]])
def read_seller_products(
    seller_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    session: Session = Depends(get_session),
):
    statement = ProductService(session).active_products_query(seller_id=seller_id)
    return ApiResponse(
        message="Seller products fetched successfully.",
        data=paginate(session, statement, page, limit, ProductRead),
    )
