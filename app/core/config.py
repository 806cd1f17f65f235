from typing import List
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    PROJECT_NAME: str = "Campus Marketplace API"
    DATABASE_URL: str = "sqlite:///./marketplace.db"
    SECRET_KEY: str = "supersecretkey_change_me_in_production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7 # 1 week

    CORS_ORIGINS: List[str] = ["http://localhost:5173"]
    LOG_LEVEL: str = "INFO"

    # AWS S3
    AWS_ACCESS_KEY_ID: str = ""
    AWS_SECRET_ACCESS_KEY: str = ""
    AWS_REGION: str = "ap-southeast-1"
    S3_BUCKET: str = "campus-marketplace"

    # Uploads
    MAX_IMAGE_SIZE_BYTES: int = 5 * 1024 * 1024
    MAX_RECEIPT_SIZE_BYTES: int = 2 * 1024 * 1024

    DEFAULT_PAGE_SIZE: int = 10

    # Rejected GCash payments keep their reserved stock unless this is enabled
    RESTORE_STOCK_ON_PAYMENT_REJECTION: bool = False

    @property
    def S3_BASE_URL(self) -> str:
        return f"https://{self.S3_BUCKET}.s3.{self.AWS_REGION}.amazonaws.com"

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
