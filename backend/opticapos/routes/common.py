# Overview: Shared JSON error mapping for route handlers.

from flask import jsonify

from ..errors import (
    ConflictError,
    InsufficientStockError,
    PersistenceError,
    ShopError,
    UnknownReferenceError,
    ValidationError,
)

STATUS_BY_ERROR = (
    (ValidationError, 400),
    (UnknownReferenceError, 404),
    (ConflictError, 409),
    (InsufficientStockError, 409),
    (PersistenceError, 503),
)


def error_response(exc: ShopError):
    status = 400
    for error_type, code in STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            status = code
            break
    return jsonify({"error": str(exc), "details": exc.details}), status


def internal_error():
    return jsonify({"error": "Internal server error"}), 500
