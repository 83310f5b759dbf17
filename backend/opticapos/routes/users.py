# Overview: Staff management routes (owner/manager only, except /me).

from flask import Blueprint, request, jsonify, g

from ..decorators import require_user, require_role
from ..engine import get_engine
from ..errors import ShopError
from ..models.auth import PRIVILEGED_ROLES
from .common import error_response

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("/me")
@require_user
def me_route():
    return jsonify(g.current_user.to_dict())


@users_bp.get("")
@require_user
@require_role(*PRIVILEGED_ROLES)
def list_users_route():
    users = get_engine().users.list_users()
    return jsonify({"items": [u.to_dict() for u in users], "count": len(users)})


@users_bp.post("")
@require_user
@require_role(*PRIVILEGED_ROLES)
def create_user_route():
    data = request.get_json(silent=True) or {}
    try:
        user = get_engine().users.create_user(
            name=data.get("name"),
            email=data.get("email"),
            role=data.get("role", "seller"),
        )
        return jsonify(user.to_dict()), 201
    except ShopError as e:
        return error_response(e)


@users_bp.patch("/<int:user_id>/role")
@require_user
@require_role(*PRIVILEGED_ROLES)
def update_role_route(user_id: int):
    data = request.get_json(silent=True) or {}
    try:
        user = get_engine().users.update_role(user_id, data.get("role"))
        return jsonify(user.to_dict())
    except ShopError as e:
        return error_response(e)


@users_bp.delete("/<int:user_id>")
@require_user
@require_role(*PRIVILEGED_ROLES)
def delete_user_route(user_id: int):
    try:
        get_engine().users.delete_user(user_id)
        return jsonify({"success": True})
    except ShopError as e:
        return error_response(e)
