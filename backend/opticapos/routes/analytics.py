# Overview: Flask API routes for analytics; parses input and returns JSON responses.

"""
Analytics Routes

Best/worst sellers and revenue by day, by month, today and month-to-date.
Calendar boundaries follow SHOP_TIMEZONE.
"""

from flask import Blueprint, request, jsonify

from ..decorators import require_user
from ..engine import get_engine
from ..errors import ShopError
from .common import error_response


analytics_bp = Blueprint("analytics", __name__, url_prefix="/api/analytics")


def _int_arg(name: str, default: int) -> int:
    value = request.args.get(name, type=int)
    return default if value is None else value


@analytics_bp.get("/top-products")
@require_user
def top_products_route():
    try:
        items = get_engine().analytics.top_products(_int_arg("limit", 5))
        return jsonify({"items": items})
    except ShopError as e:
        return error_response(e)


@analytics_bp.get("/bottom-products")
@require_user
def bottom_products_route():
    try:
        items = get_engine().analytics.bottom_products(_int_arg("limit", 5))
        return jsonify({"items": items})
    except ShopError as e:
        return error_response(e)


@analytics_bp.get("/daily-revenue")
@require_user
def daily_revenue_route():
    try:
        rows = get_engine().analytics.daily_revenue(_int_arg("days", 30))
        return jsonify({"rows": rows})
    except ShopError as e:
        return error_response(e)


@analytics_bp.get("/monthly-revenue")
@require_user
def monthly_revenue_route():
    try:
        rows = get_engine().analytics.monthly_revenue(_int_arg("months", 12))
        return jsonify({"rows": rows})
    except ShopError as e:
        return error_response(e)


@analytics_bp.get("/today-revenue")
@require_user
def today_revenue_route():
    return jsonify({"revenue_cents": get_engine().analytics.today_revenue()})


@analytics_bp.get("/month-revenue")
@require_user
def month_revenue_route():
    return jsonify({"revenue_cents": get_engine().analytics.month_revenue()})
