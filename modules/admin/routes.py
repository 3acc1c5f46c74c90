# modules/admin/routes.py
from __future__ import annotations

from flask import Blueprint, current_app, jsonify, make_response, request

from helpers import json_body
from modules.auth.guards import ADMIN_COOKIE, check_admin_secret, require_admin_secret
from modules.common.errors import AccessDeniedError
from storage import get_storage

admin_bp = Blueprint("admin", __name__)

SESSION_MAX_AGE = 60 * 60 * 12


@admin_bp.route("/admin/session", methods=["POST"], endpoint="login")
def login():
    secret = json_body().get("secret")
    if not check_admin_secret(secret):
        current_app.logger.warning("Admin login rejected from %s", request.remote_addr)
        raise AccessDeniedError("Invalid admin secret")

    resp = make_response(jsonify({"ok": True}))
    resp.set_cookie(
        ADMIN_COOKIE,
        secret,
        max_age=SESSION_MAX_AGE,
        httponly=True,
        secure=bool(current_app.config.get("SESSION_COOKIE_SECURE")),
        samesite="Strict",
    )
    return resp


@admin_bp.route("/admin/session", methods=["DELETE"], endpoint="logout")
def logout():
    resp = make_response(jsonify({"ok": True}))
    resp.delete_cookie(ADMIN_COOKIE)
    return resp


@admin_bp.route("/admin/stats", methods=["GET"], endpoint="stats")
@require_admin_secret
def stats():
    return jsonify(get_storage().stats())
