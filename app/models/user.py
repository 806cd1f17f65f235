from typing import Optional, Tuple
from datetime import datetime
from sqlmodel import Field, SQLModel

class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    # Basic Info
    name: str = Field(max_length=255)
    email: str = Field(unique=True, index=True, max_length=255)
    contact_number: Optional[str] = Field(default=None, max_length=255)
    password_hash: str

    # Profile
    profile_picture_url: Optional[str] = None

    # Account Status
    is_active: bool = Field(default=True)

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    def split_name(self) -> Tuple[str, str]:
        parts = (self.name or "").split()
        if not parts:
            return "", ""
        return parts[0], " ".join(parts[1:])


class UserRead(SQLModel):
    """Public view of a user; the name is split the way the storefront expects it."""
    id: int
    first_name: str
    last_name: str
    email: str
    contact_number: Optional[str] = None
    profile_picture_url: Optional[str] = None
    user_type: str = "user"

    @classmethod
    def from_user(cls, user: User, user_type: str = "user") -> "UserRead":
        first_name, last_name = user.split_name()
        return cls(
            id=user.id,
            first_name=first_name,
            last_name=last_name,
            email=user.email,
            contact_number=user.contact_number,
            profile_picture_url=user.profile_picture_url,
            user_type=user_type,
        )


class UserSummary(SQLModel):
    id: int
    name: str
    email: str
    contact_number: Optional[str] = None
