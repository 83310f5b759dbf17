from __future__ import annotations

from ..extensions import db
from ..time_utils import utcnow, to_utc_z


TYPE_STOCK_LOW = "stock_low"
TYPE_SALE = "sale"
TYPE_SYSTEM = "system"
VALID_NOTIFICATION_TYPES = (TYPE_STOCK_LOW, TYPE_SALE, TYPE_SYSTEM)


class Notification(db.Model):
    """
    Per-recipient notification row.

    One row is written per recipient per triggering event (fan-out), so read
    state is tracked independently for each user.
    """
    __tablename__ = "notifications"
    __table_args__ = (
        db.CheckConstraint("type IN ('stock_low', 'sale', 'system')", name="ck_notifications_type"),
        db.Index("ix_notifications_user_read", "user_id", "is_read"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    type = db.Column(db.String(16), nullable=False)
    title = db.Column(db.String(255), nullable=False)
    message = db.Column(db.Text, nullable=False)
    is_read = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "is_read": self.is_read,
            "created_at": to_utc_z(self.created_at),
        }
