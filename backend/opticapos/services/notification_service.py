# Overview: Notification fan-out to privileged users plus per-user inbox operations.

from __future__ import annotations

import logging
from datetime import timedelta

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.exc import SQLAlchemyError

from ..errors import NotificationDeliveryError, UnknownReferenceError, ValidationError
from ..formatting import format_brl
from ..models import Notification, User
from ..models.auth import PRIVILEGED_ROLES
from ..models.notifications import TYPE_STOCK_LOW, TYPE_SALE, TYPE_SYSTEM
from ..time_utils import utcnow
from .inventory_service import CROSSING_OUT_OF_STOCK

logger = logging.getLogger(__name__)

KIND_STOCK_LOW = TYPE_STOCK_LOW
KIND_SALE = TYPE_SALE
KIND_SYSTEM = TYPE_SYSTEM
VALID_KINDS = {KIND_STOCK_LOW, KIND_SALE, KIND_SYSTEM}


def render_notification(kind: str, payload: dict) -> tuple[str, str]:
    """
    Build (title, message) for an event.

    stock_low payload: product_name, quantity, optional crossing
    sale payload:      seller_name, item_count, total_amount_cents
    system payload:    title, message
    """
    if kind == KIND_STOCK_LOW:
        name = payload["product_name"]
        quantity = payload["quantity"]
        if payload.get("crossing") == CROSSING_OUT_OF_STOCK:
            return (
                f"Estoque Esgotado: {name}",
                f'O produto "{name}" está sem unidades em estoque.',
            )
        return (
            f"Estoque Baixo: {name}",
            f'O produto "{name}" atingiu {quantity} unidades em estoque.',
        )

    if kind == KIND_SALE:
        return (
            "Nova Venda Registrada",
            f"{payload['seller_name']} registrou uma venda de {payload['item_count']} item(ns) "
            f"no valor de {format_brl(payload['total_amount_cents'])}.",
        )

    if kind == KIND_SYSTEM:
        return payload["title"], payload["message"]

    raise ValidationError(f"Unknown notification kind: {kind}")


class NotificationFanout:
    """
    Writes one Notification row per owner/manager for each event.

    Fan-out is best-effort relative to whatever triggered it: callers that
    must not fail use dispatch(), which logs delivery failures instead of
    raising. Recipients are read and written in bounded batches so the
    number of staff never dictates the size of a single statement.
    """

    def __init__(self, session, *, batch_size: int = 200):
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self.session = session
        self.batch_size = batch_size

    def _recipient_batches(self):
        last_id = 0
        while True:
            ids = self.session.execute(
                select(User.id)
                .where(User.role.in_(PRIVILEGED_ROLES), User.id > last_id)
                .order_by(User.id.asc())
                .limit(self.batch_size)
            ).scalars().all()
            if not ids:
                return
            yield ids
            last_id = ids[-1]

    def notify(self, kind: str, payload: dict) -> int:
        """
        Fan an event out to every privileged user. Returns rows written.

        Each batch commits on its own. Raises NotificationDeliveryError if
        storage fails; batches already committed stay delivered.
        """
        title, message = render_notification(kind, payload)
        written = 0
        try:
            for recipient_ids in self._recipient_batches():
                now = utcnow()
                self.session.execute(
                    insert(Notification),
                    [
                        {
                            "user_id": user_id,
                            "type": kind,
                            "title": title,
                            "message": message,
                            "is_read": False,
                            "created_at": now,
                        }
                        for user_id in recipient_ids
                    ],
                )
                self.session.commit()
                written += len(recipient_ids)
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise NotificationDeliveryError(
                "Could not write notifications",
                details={"kind": kind, "written": written},
            ) from exc

        logger.info("Fanned out %s notification to %d recipient(s)", kind, written)
        return written

    def dispatch(self, kind: str, payload: dict) -> int:
        """notify() that never raises delivery failures; they are logged and dropped."""
        try:
            return self.notify(kind, payload)
        except NotificationDeliveryError as exc:
            logger.warning(
                "Notification delivery failed (kind=%s, written=%s): %s",
                kind, exc.details.get("written"), exc.__cause__ or exc,
            )
            return 0

    # Inbox operations (caller identity is already authorized upstream)

    def list_for_user(self, user_id: int) -> list[Notification]:
        return self.session.execute(
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
        ).scalars().all()

    def unread_count(self, user_id: int) -> int:
        return int(self.session.execute(
            select(func.count(Notification.id)).where(
                Notification.user_id == user_id,
                Notification.is_read.is_(False),
            )
        ).scalar() or 0)

    def _get_owned(self, notification_id: int, user_id: int | None) -> Notification:
        notification = self.session.get(Notification, notification_id)
        # Someone else's notification is reported as missing
        if notification is None or (user_id is not None and notification.user_id != user_id):
            raise UnknownReferenceError(
                "Notification not found",
                details={"notification_id": notification_id},
            )
        return notification

    def mark_read(self, notification_id: int, *, user_id: int | None = None) -> Notification:
        notification = self._get_owned(notification_id, user_id)
        notification.is_read = True
        self.session.commit()
        return notification

    def mark_all_read(self, user_id: int) -> int:
        result = self.session.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
            .values(is_read=True)
            .execution_options(synchronize_session=False)
        )
        self.session.commit()
        return result.rowcount

    def delete(self, notification_id: int, *, user_id: int | None = None) -> None:
        notification = self._get_owned(notification_id, user_id)
        self.session.delete(notification)
        self.session.commit()

    def delete_all(self, user_id: int) -> int:
        result = self.session.execute(
            delete(Notification)
            .where(Notification.user_id == user_id)
            .execution_options(synchronize_session=False)
        )
        self.session.commit()
        return result.rowcount

    def purge_read(self, *, older_than_days: int) -> int:
        """Delete read notifications older than the retention window."""
        cutoff = utcnow() - timedelta(days=older_than_days)
        result = self.session.execute(
            delete(Notification)
            .where(Notification.is_read.is_(True), Notification.created_at < cutoff)
            .execution_options(synchronize_session=False)
        )
        self.session.commit()
        return result.rowcount
