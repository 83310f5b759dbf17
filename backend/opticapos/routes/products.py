# Overview: Flask API routes for products; parses input and returns JSON responses.

"""
Product management routes.

SECURITY: All routes require a caller.
- Read operations: any role
- Write operations: owner or manager
"""
from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_user, require_role
from ..engine import get_engine
from ..errors import ShopError
from ..models import Product
from ..models.auth import PRIVILEGED_ROLES
from ..validation import ModelValidationPolicy, validate_payload, enforce_rules_product
from .common import error_response, internal_error

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"category_id", "name", "barcode", "price_cents", "quantity", "min_stock"},
    required_on_create={"category_id", "name", "price_cents"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_user
def list_products_route():
    """
    List products ordered by name.

    Query params:
    - category_id: int (optional) - only products of this category
    """
    category_id = request.args.get("category_id", type=int)
    products = get_engine().catalog.list_products(category_id=category_id)
    return jsonify({"items": [p.to_dict() for p in products], "count": len(products)})


@products_bp.get("/<int:product_id>")
@require_user
def get_product_route(product_id: int):
    try:
        return jsonify(get_engine().catalog.get_product(product_id).to_dict())
    except ShopError as e:
        return error_response(e)


@products_bp.get("/barcode/<string:barcode>")
@require_user
def get_product_by_barcode_route(barcode: str):
    try:
        return jsonify(get_engine().catalog.get_product_by_barcode(barcode).to_dict())
    except ShopError as e:
        return error_response(e)


@products_bp.post("")
@require_user
@require_role(*PRIVILEGED_ROLES)
def create_product_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
        product = get_engine().catalog.create_product(patch)
        return jsonify(product.to_dict()), 201
    except ShopError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create product")
        return internal_error()


@products_bp.route("/<int:product_id>", methods=["PUT", "PATCH"])
@require_user
@require_role(*PRIVILEGED_ROLES)
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
        product = get_engine().catalog.update_product(product_id, patch)
        return jsonify(product.to_dict())
    except ShopError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update product")
        return internal_error()


@products_bp.delete("/<int:product_id>")
@require_user
@require_role(*PRIVILEGED_ROLES)
def delete_product_route(product_id: int):
    try:
        get_engine().catalog.delete_product(product_id)
        return jsonify({"success": True})
    except ShopError as e:
        return error_response(e)
