# Overview: Request and role decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .extensions import db
from .models import User


TELEGRAM_ID_HEADER = "X-Telegram-Id"


def _is_authenticated() -> bool:
    return hasattr(g, "current_user")


def _resolve_user(telegram_id: str):
    return db.session.query(User).filter_by(
        telegram_id=telegram_id,
        is_active=True,
        is_deleted=False,
    ).first()


def require_auth(f):
    """
    Require a known Telegram user and establish request context.

    Sets g.current_user to the active, non-deleted User whose telegram_id
    matches the X-Telegram-Id header.

    Returns 401 if:
    - The header is missing or blank
    - No active user carries that Telegram id
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        telegram_id = (request.headers.get(TELEGRAM_ID_HEADER) or "").strip()
        if not telegram_id:
            return jsonify({"error": "Authentication required"}), 401

        user = _resolve_user(telegram_id)
        if not user:
            return jsonify({"error": "User not found or inactive"}), 401

        g.current_user = user
        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles: str):
    """Require the authenticated user to hold one of the given roles."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            # Ensure @require_auth was called first
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            if g.current_user.role not in roles:
                return jsonify({
                    "error": "Permission denied",
                    "required_roles": list(roles),
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_admin(f):
    return require_role("admin")(f)


def require_seller(f):
    return require_role("seller")(f)
