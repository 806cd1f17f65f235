from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer, OAuth2PasswordRequestForm
from pydantic import BaseModel, EmailStr, Field, field_validator, ValidationInfo
from sqlmodel import Session

from app.core.responses import ApiResponse
from app.core.security import decode_access_token
from app.db.session import get_session
from app.models.user import User, UserRead
from app.services.auth import AuthService

router = APIRouter()

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/auth/token")
oauth2_scheme_optional = OAuth2PasswordBearer(tokenUrl="api/auth/token", auto_error=False)


class Token(BaseModel):
    access_token: str
    token_type: str

class LoginData(Token):
    user: UserRead

class UserCreate(BaseModel):
    first_name: str = Field(min_length=1, max_length=255)
    last_name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(min_length=8)
    password_confirmation: str
    contact_number: Optional[str] = Field(default=None, max_length=255)

    @field_validator("password_confirmation")
    @classmethod
    def passwords_match(cls, value: str, info: ValidationInfo) -> str:
        if "password" in info.data and value != info.data["password"]:
            raise ValueError("The password confirmation does not match.")
        return value

class LoginRequest(BaseModel):
    email: EmailStr
    password: str

class ProfileUpdate(BaseModel):
    email: Optional[EmailStr] = None
    contact_number: Optional[str] = Field(default=None, max_length=255)
    profile_picture_url: Optional[str] = None
    current_password: Optional[str] = None
    password: Optional[str] = Field(default=None, min_length=8)
    password_confirmation: Optional[str] = None

    @field_validator("password_confirmation")
    @classmethod
    def passwords_match(cls, value: Optional[str], info: ValidationInfo) -> Optional[str]:
        if info.data.get("password") is not None and value != info.data["password"]:
            raise ValueError("The password confirmation does not match.")
        return value


def get_auth_service(session: Session = Depends(get_session)) -> AuthService:
    return AuthService(session)

async def get_current_user(token: str = Depends(oauth2_scheme), session: Session = Depends(get_session)) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthenticated.",
        headers={"WWW-Authenticate": "Bearer"},
    )
    email = decode_access_token(token)
    if email is None:
        raise credentials_exception

    user = AuthService(session).get_user_by_email(email)
    if user is None or not user.is_active:
        raise credentials_exception
    return user

async def get_current_user_optional(token: Optional[str] = Depends(oauth2_scheme_optional), session: Session = Depends(get_session)) -> Optional[User]:
    if not token:
        return None
    email = decode_access_token(token)
    if email is None:
        return None
    user = AuthService(session).get_user_by_email(email)
    if user is None or not user.is_active:
        return None
    return user


def _user_type(service: AuthService, user: User) -> str:
    return "admin" if service.get_active_admin(user.id) else "user"


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=ApiResponse[UserRead])
def register(user_in: UserCreate, service: AuthService = Depends(get_auth_service)):
    user = service.register_user(
        user_in.first_name,
        user_in.last_name,
        user_in.email,
        user_in.password,
        contact_number=user_in.contact_number,
    )
    return ApiResponse(message="Registration successful.", data=UserRead.from_user(user))

@router.post("/login", response_model=ApiResponse[LoginData])
def login(credentials: LoginRequest, service: AuthService = Depends(get_auth_service)):
    user = service.authenticate_user(credentials.email, credentials.password)
    if not user:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Invalid credentials.")

    return ApiResponse(
        message="Login successful.",
        data=LoginData(
            access_token=service.issue_token(user),
            token_type="bearer",
            user=UserRead.from_user(user, _user_type(service, user)),
        ),
    )

@router.post("/token", response_model=Token)
def login_for_access_token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    service: AuthService = Depends(get_auth_service),
):
    user = service.authenticate_user(form_data.username, form_data.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return {"access_token": service.issue_token(user), "token_type": "bearer"}

@router.post("/logout", response_model=ApiResponse[None])
def logout():
    # Tokens are stateless; the client drops its copy
    return ApiResponse(message="Logged out.")

@router.get("/me", response_model=ApiResponse[UserRead])
def read_user_me(current_user: User = Depends(get_current_user), service: AuthService = Depends(get_auth_service)):
    return ApiResponse(
        message="Authenticated user fetched.",
        data=UserRead.from_user(current_user, _user_type(service, current_user)),
    )

@router.put("/me", response_model=ApiResponse[UserRead])
def update_user_me(
    user_in: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
):
    user = service.update_profile(
        current_user,
        email=user_in.email,
        contact_number=user_in.contact_number,
        profile_picture_url=user_in.profile_picture_url,
        current_password=user_in.current_password,
        new_password=user_in.password,
        fields_set=frozenset(user_in.model_fields_set),
    )
    return ApiResponse(message="Profile updated successfully.", data=UserRead.from_user(user, _user_type(service, user)))

@router.delete("/me", response_model=ApiResponse[None])
def delete_user_me(current_user: User = Depends(get_current_user), service: AuthService = Depends(get_auth_service)):
    service.delete_user(current_user)
    return ApiResponse(message="Account deleted successfully.")
