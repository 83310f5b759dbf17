# Overview: Low-stock alert routes.

from flask import Blueprint, request, jsonify

from ..decorators import require_user, require_role
from ..engine import get_engine
from ..errors import ShopError, ValidationError
from ..models.auth import PRIVILEGED_ROLES
from ..validation import coerce_int
from .common import error_response

alerts_bp = Blueprint("alerts", __name__, url_prefix="/api/alerts")


@alerts_bp.get("/low-stock")
@require_user
def low_stock_route():
    """Products with quantity <= min_stock, lowest quantity first."""
    items = get_engine().catalog.low_stock_products()
    return jsonify({"items": items, "count": len(items)})


@alerts_bp.put("/products/<int:product_id>/min-stock")
@require_user
@require_role(*PRIVILEGED_ROLES)
def update_min_stock_route(product_id: int):
    data = request.get_json(silent=True) or {}
    try:
        if "min_stock" not in data:
            raise ValidationError("min_stock is required")
        min_stock = coerce_int("min_stock", data["min_stock"])
        get_engine().catalog.update_min_stock(product_id, min_stock)
        return jsonify({"success": True})
    except ShopError as e:
        return error_response(e)
