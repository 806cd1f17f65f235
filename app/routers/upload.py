from fastapi import APIRouter, UploadFile, File, Depends
from pydantic import BaseModel

from app.core.responses import ApiResponse
from app.models.user import User
from app.routers.auth import get_current_user
from app.services.storage import S3Storage, get_storage, store_image

router = APIRouter()

class UploadedImage(BaseModel):
    s3_key: str
    url: str


@router.post("/image", response_model=ApiResponse[UploadedImage])
async def upload_image(
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    storage: S3Storage = Depends(get_storage),
):
    """
    Upload an image (product photo, profile picture, shop logo) to S3.
    Returns the S3 key and public URL.
    """
    url = await store_image(storage, file, f"uploads/{current_user.id}", field="file")
    return ApiResponse(
        message="Image uploaded successfully.",
        data=UploadedImage(s3_key=storage.key_from_url(url) or url, url=url),
    )
