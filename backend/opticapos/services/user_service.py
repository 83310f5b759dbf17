# Overview: Staff accounts and roles.

from __future__ import annotations

import logging

from sqlalchemy import select

from ..errors import ConflictError, UnknownReferenceError, ValidationError
from ..models import Sale, User
from ..models.auth import ROLE_OWNER, VALID_ROLES

logger = logging.getLogger(__name__)

DEFAULT_ADMIN_NAME = "Admin"
DEFAULT_ADMIN_EMAIL = "admin@optica.local"


def _validate_role(role: str) -> str:
    if not isinstance(role, str):
        raise ValidationError(f"role must be one of: {', '.join(VALID_ROLES)}")
    normalized = role.strip().lower()
    if normalized not in VALID_ROLES:
        raise ValidationError(f"role must be one of: {', '.join(VALID_ROLES)}")
    return normalized


def _validate_email(email: str) -> str:
    if not isinstance(email, str):
        raise ValidationError("email must be a valid address")
    normalized = email.strip().lower()
    local, _, domain = normalized.partition("@")
    if not local or not domain:
        raise ValidationError("email must be a valid address")
    return normalized


class UserService:
    def __init__(self, session):
        self.session = session

    def list_users(self) -> list[User]:
        return self.session.execute(select(User).order_by(User.id.asc())).scalars().all()

    def get_user(self, user_id: int) -> User:
        user = self.session.get(User, user_id)
        if user is None:
            raise UnknownReferenceError("User not found", details={"user_id": user_id})
        return user

    def create_user(self, *, name: str | None, email: str, role: str = "seller") -> User:
        email = _validate_email(email)
        role = _validate_role(role)
        if name is not None and not isinstance(name, str):
            raise ValidationError("name must be a string")
        if self.session.execute(select(User.id).where(User.email == email)).first() is not None:
            raise ConflictError("Email already registered", details={"email": email})

        user = User(name=(name or "").strip() or None, email=email, role=role)
        self.session.add(user)
        self.session.commit()
        logger.info("Created user %s with role %s", user.id, role)
        return user

    def update_role(self, user_id: int, role: str) -> User:
        user = self.get_user(user_id)
        user.role = _validate_role(role)
        self.session.commit()
        return user

    def delete_user(self, user_id: int) -> None:
        user = self.get_user(user_id)
        has_sales = self.session.execute(
            select(Sale.id).where(Sale.seller_id == user_id).limit(1)
        ).first()
        if has_sales is not None:
            raise ConflictError(
                "User has recorded sales and cannot be deleted",
                details={"user_id": user_id},
            )
        self.session.delete(user)
        self.session.commit()

    def seed_admin(self) -> tuple[User, bool]:
        """Idempotently create the default owner. Returns (user, created)."""
        existing = self.session.execute(
            select(User).where(User.email == DEFAULT_ADMIN_EMAIL)
        ).scalar_one_or_none()
        if existing is not None:
            if existing.role != ROLE_OWNER:
                raise ConflictError(
                    f"{DEFAULT_ADMIN_EMAIL} is already registered with role {existing.role}",
                    details={"user_id": existing.id, "role": existing.role},
                )
            return existing, False
        return self.create_user(name=DEFAULT_ADMIN_NAME, email=DEFAULT_ADMIN_EMAIL, role=ROLE_OWNER), True
