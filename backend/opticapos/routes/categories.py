# Overview: Flask API routes for categories; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify

from ..decorators import require_user, require_role
from ..engine import get_engine
from ..errors import ShopError
from ..models import Category
from ..models.auth import PRIVILEGED_ROLES
from ..validation import ModelValidationPolicy, validate_payload
from .common import error_response

CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description"},
    required_on_create={"name"},
)

categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")


@categories_bp.get("")
@require_user
def list_categories_route():
    categories = get_engine().catalog.list_categories()
    return jsonify({"items": [c.to_dict() for c in categories], "count": len(categories)})


@categories_bp.get("/<int:category_id>")
@require_user
def get_category_route(category_id: int):
    try:
        return jsonify(get_engine().catalog.get_category(category_id).to_dict())
    except ShopError as e:
        return error_response(e)


@categories_bp.post("")
@require_user
@require_role(*PRIVILEGED_ROLES)
def create_category_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=False)
        category = get_engine().catalog.create_category(patch)
        return jsonify(category.to_dict()), 201
    except ShopError as e:
        return error_response(e)


@categories_bp.route("/<int:category_id>", methods=["PUT", "PATCH"])
@require_user
@require_role(*PRIVILEGED_ROLES)
def update_category_route(category_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=True)
        category = get_engine().catalog.update_category(category_id, patch)
        return jsonify(category.to_dict())
    except ShopError as e:
        return error_response(e)


@categories_bp.delete("/<int:category_id>")
@require_user
@require_role(*PRIVILEGED_ROLES)
def delete_category_route(category_id: int):
    """Refused with 409 while products still reference the category."""
    try:
        get_engine().catalog.delete_category(category_id)
        return jsonify({"success": True})
    except ShopError as e:
        return error_response(e)
