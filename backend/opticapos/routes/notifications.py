# Overview: The caller's own notification inbox.

from flask import Blueprint, jsonify, g

from ..decorators import require_user
from ..engine import get_engine
from ..errors import ShopError
from .common import error_response

notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")


@notifications_bp.get("")
@require_user
def list_notifications_route():
    items = get_engine().notifier.list_for_user(g.current_user.id)
    return jsonify({"items": [n.to_dict() for n in items], "count": len(items)})


@notifications_bp.get("/unread-count")
@require_user
def unread_count_route():
    return jsonify({"count": get_engine().notifier.unread_count(g.current_user.id)})


@notifications_bp.post("/<int:notification_id>/read")
@require_user
def mark_read_route(notification_id: int):
    try:
        notification = get_engine().notifier.mark_read(notification_id, user_id=g.current_user.id)
        return jsonify(notification.to_dict())
    except ShopError as e:
        return error_response(e)


@notifications_bp.post("/read-all")
@require_user
def mark_all_read_route():
    updated = get_engine().notifier.mark_all_read(g.current_user.id)
    return jsonify({"success": True, "updated": updated})


@notifications_bp.delete("/<int:notification_id>")
@require_user
def delete_notification_route(notification_id: int):
    try:
        get_engine().notifier.delete(notification_id, user_id=g.current_user.id)
        return jsonify({"success": True})
    except ShopError as e:
        return error_response(e)


@notifications_bp.delete("")
@require_user
def delete_all_notifications_route():
    deleted = get_engine().notifier.delete_all(g.current_user.id)
    return jsonify({"success": True, "deleted": deleted})
