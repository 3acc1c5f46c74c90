# modules/auth/guards.py

import hmac
from functools import wraps

from flask import current_app, request

from modules.common.errors import AccessDeniedError

ADMIN_COOKIE = "admin_token"
ADMIN_HEADER = "X-Admin-Token"


def check_admin_secret(candidate) -> bool:
    """Constant-time compare against ADMIN_SECRET. Unset secret denies all."""
    secret = current_app.config.get("ADMIN_SECRET") or ""
    if not secret or not candidate or not isinstance(candidate, str):
        return False
    return hmac.compare_digest(candidate.encode("utf-8"), secret.encode("utf-8"))


def require_admin_secret(view_func):
    """
    Ensures the request carries the admin shared secret, either as the
    admin_token cookie or the X-Admin-Token header.

    Usage:
        @bp.route("/stats", methods=["GET"])
        @require_admin_secret
        def stats():
            ...
    """
    @wraps(view_func)
    def wrapper(*args, **kwargs):
        token = request.cookies.get(ADMIN_COOKIE) or request.headers.get(ADMIN_HEADER)
        if not check_admin_secret(token):
            current_app.logger.warning("Admin access denied for %s", request.path)
            raise AccessDeniedError("Admin access required")
        return view_func(*args, **kwargs)

    return wrapper
