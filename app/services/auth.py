import logging
from datetime import datetime
from typing import Optional
from sqlmodel import Session, select

from app.core.errors import BusinessRuleError
from app.core.security import get_password_hash, verify_password, create_access_token
from app.models.admin_user import AdminUser
from app.models.cart import CartItem
from app.models.user import User

logger = logging.getLogger(__name__)

class AuthService:
    def __init__(self, session: Session):
        self.session = session

    def get_user_by_email(self, email: str) -> Optional[User]:
        # Use ilike for case-insensitive lookup
        return self.session.exec(select(User).where(User.email == email)).first() or \
               self.session.exec(select(User).where(User.email.ilike(email))).first()

    def get_active_admin(self, user_id: int) -> Optional[AdminUser]:
        admin_user = self.session.exec(select(AdminUser).where(AdminUser.user_id == user_id)).first()
        if admin_user and admin_user.is_active:
            return admin_user
        return None

    def register_user(
        self,
        first_name: str,
        last_name: str,
        email: str,
        password: str,
        contact_number: Optional[str] = None,
    ) -> User:
        if self.get_user_by_email(email):
            raise BusinessRuleError("The email has already been taken.")

        user = User(
            name=f"{first_name} {last_name}".strip(),
            email=email,
            contact_number=contact_number,
            password_hash=get_password_hash(password),
        )
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        logger.info("Registered user %s", user.id)
        return user

    def authenticate_user(self, email: str, password: str) -> Optional[User]:
        user = self.get_user_by_email(email)
        if not user or not user.is_active:
            return None
        if not verify_password(password, user.password_hash):
            return None
        return user

    def issue_token(self, user: User) -> str:
        return create_access_token(data={"sub": user.email})

    def update_profile(
        self,
        user: User,
        email: Optional[str] = None,
        contact_number: Optional[str] = None,
        profile_picture_url: Optional[str] = None,
        current_password: Optional[str] = None,
        new_password: Optional[str] = None,
        fields_set: frozenset = frozenset(),
    ) -> User:
        if email is not None and email.lower() != user.email.lower():
            other = self.get_user_by_email(email)
            if other and other.id != user.id:
                raise BusinessRuleError("The email has already been taken.")
            user.email = email

        if "contact_number" in fields_set:
            user.contact_number = contact_number
        if profile_picture_url is not None:
            user.profile_picture_url = profile_picture_url

        if new_password is not None:
            if not current_password or not verify_password(current_password, user.password_hash):
                raise BusinessRuleError("Current password is incorrect.")
            user.password_hash = get_password_hash(new_password)

        user.updated_at = datetime.utcnow()
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    def delete_user(self, user: User):
        # Cart rows are disposable; orders and seller profiles keep their history
        for item in self.session.exec(select(CartItem).where(CartItem.user_id == user.id)).all():
            self.session.delete(item)
        user.is_active = False
        user.updated_at = datetime.utcnow()
        self.session.add(user)
        self.session.commit()
        logger.info("Deactivated account of user %s", user.id)
