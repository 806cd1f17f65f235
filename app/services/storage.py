import logging
import os
import uuid
from typing import Iterable, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import HTTPException, UploadFile, status

from app.core.config import settings
from app.core.errors import BusinessRuleError

logger = logging.getLogger(__name__)

RECEIPT_CONTENT_TYPES = ("image/jpeg", "image/png", "image/gif")


class S3Storage:
    def __init__(self):
        self._client = None
        self.bucket_name = settings.S3_BUCKET

    @property
    def s3_client(self):
        if self._client is None:
            self._client = boto3.client(
                's3',
                aws_access_key_id=settings.AWS_ACCESS_KEY_ID or None,
                aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY or None,
                region_name=settings.AWS_REGION
            )
        return self._client

    def upload_file(self, file_content: bytes, folder: str, file_name: str, content_type: str = "image/jpeg") -> Optional[str]:
        """
        Upload a file to S3 under `folder`.

        Returns:
            The S3 key (e.g., "orders/receipts/uuid.jpg") or None if the upload failed
        """
        file_extension = os.path.splitext(file_name or "")[1].lower()
        s3_key = f"{folder.strip('/')}/{uuid.uuid4()}{file_extension}"
        try:
            # Public access is granted through the bucket policy, not object ACLs
            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=s3_key,
                Body=file_content,
                ContentType=content_type
            )
        except (BotoCoreError, ClientError) as e:
            logger.error("Error uploading %s to S3: %s", s3_key, e)
            return None
        return s3_key

    def delete_file(self, s3_key: str) -> bool:
        try:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=s3_key)
        except (BotoCoreError, ClientError) as e:
            logger.error("Error deleting %s from S3: %s", s3_key, e)
            return False
        return True

    def get_public_url(self, s3_key: str) -> str:
        return f"{settings.S3_BASE_URL}/{s3_key}"

    def key_from_url(self, url: str) -> Optional[str]:
        prefix = f"{settings.S3_BASE_URL}/"
        if url and url.startswith(prefix):
            return url[len(prefix):]
        return None


# Singleton instance
storage = S3Storage()

def get_storage() -> S3Storage:
    return storage


async def store_image(
    storage_backend: S3Storage,
    file: UploadFile,
    folder: str,
    max_bytes: int = None,
    allowed_types: Optional[Iterable[str]] = None,
    field: str = "image",
) -> str:
    """Validate an uploaded image, store it and return its public URL."""
    max_bytes = max_bytes or settings.MAX_IMAGE_SIZE_BYTES
    content_type = file.content_type or ""

    if allowed_types is not None:
        if content_type not in allowed_types:
            raise BusinessRuleError(f"The {field} must be a file of type: jpeg, png, jpg, gif.")
    elif not content_type.startswith("image/"):
        raise BusinessRuleError(f"The {field} must be an image.")

    content = await file.read()
    if len(content) > max_bytes:
        raise BusinessRuleError(f"The {field} may not be greater than {max_bytes // 1024} kilobytes.")

    s3_key = storage_backend.upload_file(content, folder, file.filename, content_type)
    if not s3_key:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to upload image.")
    return storage_backend.get_public_url(s3_key)


def discard_image(storage_backend: S3Storage, url: Optional[str]):
    """Best-effort removal of a previously stored image by its public URL."""
    key = storage_backend.key_from_url(url) if url else None
    if key:
        storage_backend.delete_file(key)
