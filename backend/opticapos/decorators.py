# Overview: Caller identity and role checks applied once at the route boundary.

from functools import wraps
from flask import request, jsonify, g, current_app

from .extensions import db
from .models import User
from .validation import MAX_DB_INT

# Set by the authentication layer in front of this service
USER_HEADER = "X-User-Id"


def require_user(f):
    """
    Resolve the already-authenticated caller into g.current_user.

    Returns 401 when the header is missing, malformed, or names no user.
    Services below this point receive the caller's id and never re-check roles.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        raw = (request.headers.get(USER_HEADER) or "").strip()
        if not (raw.isascii() and raw.isdigit()) or len(raw) > 19 or int(raw) > MAX_DB_INT:
            return jsonify({"error": "Authentication required"}), 401

        user = db.session.get(User, int(raw))
        if user is None:
            return jsonify({"error": "Unknown user"}), 401

        g.current_user = user
        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles: str):
    """
    Require the caller to hold one of the given roles.

    Must be applied after @require_user.
    """
    allowed = set(roles)

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user = getattr(g, "current_user", None)
            if user is None:
                return jsonify({"error": "Authentication required"}), 401
            if user.role not in allowed:
                current_app.logger.warning(
                    "Role check failed: user %s (%s) on %s %s",
                    user.id, user.role, request.method, request.path,
                )
                return jsonify({"error": "Permission denied"}), 403
            return f(*args, **kwargs)

        return decorated_function

    return decorator
