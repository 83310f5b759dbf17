# Overview: Flask API routes for sales; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_user
from ..engine import get_engine
from ..errors import ShopError
from .common import error_response, internal_error


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("")
@require_user
def create_sale_route():
    """
    Complete a sale from a cart.

    Body: {"items": [{"product_id": int, "quantity": int}, ...],
           "total_amount_cents": int (optional, verified against current prices)}

    Available to: owner, manager, seller. The seller is the caller.
    """
    data = request.get_json(silent=True) or {}
    try:
        receipt = get_engine().sales.create_sale(
            g.current_user.id,
            data.get("items"),
            client_total_cents=data.get("total_amount_cents"),
        )
        return jsonify(receipt.to_dict()), 201
    except ShopError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return internal_error()


@sales_bp.get("")
@require_user
def list_sales_route():
    limit = request.args.get("limit", type=int)
    try:
        sales = get_engine().sales.list_sales(limit=limit)
    except ShopError as e:
        return error_response(e)
    return jsonify({"items": [s.to_dict() for s in sales], "count": len(sales)})


@sales_bp.get("/<int:sale_id>")
@require_user
def get_sale_route(sale_id: int):
    try:
        sale = get_engine().sales.get_sale(sale_id)
        return jsonify({"sale": sale.to_dict(include_items=True)})
    except ShopError as e:
        return error_response(e)


@sales_bp.get("/<int:sale_id>/items")
@require_user
def sale_items_route(sale_id: int):
    try:
        items = get_engine().sales.get_sale_items(sale_id)
        return jsonify({"items": [i.to_dict() for i in items]})
    except ShopError as e:
        return error_response(e)
