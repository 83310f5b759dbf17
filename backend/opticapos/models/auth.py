from __future__ import annotations

from ..extensions import db
from ..time_utils import utcnow, to_utc_z


ROLE_OWNER = "owner"
ROLE_MANAGER = "manager"
ROLE_SELLER = "seller"
VALID_ROLES = (ROLE_OWNER, ROLE_MANAGER, ROLE_SELLER)

# Roles that receive stock and sale notifications and may manage the catalog
PRIVILEGED_ROLES = (ROLE_OWNER, ROLE_MANAGER)


class User(db.Model):
    """
    Shop staff member.

    Authentication lives outside this service; the dispatch layer receives an
    already-authenticated user id and only the role is consulted here.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.CheckConstraint("role IN ('owner', 'manager', 'seller')", name="ck_users_role"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=True)
    email = db.Column(db.String(320), nullable=False, unique=True)
    role = db.Column(db.String(16), nullable=False, default=ROLE_SELLER, index=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    @property
    def is_privileged(self) -> bool:
        return self.role in PRIVILEGED_ROLES

    @property
    def display_name(self) -> str:
        return self.name or "Vendedor"

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} role={self.role}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
