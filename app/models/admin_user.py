from typing import Optional
from datetime import datetime
from sqlmodel import Field, SQLModel

class AdminUser(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    # Link to main User table
    user_id: int = Field(foreign_key="user.id", unique=True, index=True)

    # Status
    is_active: bool = Field(default=True)

    # GCash account buyers pay into; shown at checkout
    gcash_number: Optional[str] = Field(default=None, max_length=20)
    gcash_qr_url: Optional[str] = None

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class GcashSettings(SQLModel):
    gcash_number: Optional[str] = None
    gcash_qr_url: Optional[str] = None
