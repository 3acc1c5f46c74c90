# modules/common/errors.py
"""
Error taxonomy for Hermit Cove.

Services raise these; the app factory registers JSON handlers so every
failure reaches the client as {"error": "..."} with the right status code.

EnrichmentUnavailable is the one class that never leaves the service layer:
callers catch it and substitute a fallback message.
"""

from __future__ import annotations

from flask import Flask, current_app, jsonify
from werkzeug.exceptions import HTTPException

from models import db


class HermitCoveError(Exception):
    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__name__

    def to_dict(self) -> dict:
        return {"error": self.message}


class ValidationError(HermitCoveError):
    status_code = 400


class AccessDeniedError(HermitCoveError):
    status_code = 403


class NotFoundError(HermitCoveError):
    status_code = 404


class ConflictError(HermitCoveError):
    status_code = 409


class StorageError(HermitCoveError):
    status_code = 500


class EnrichmentUnavailable(HermitCoveError):
    status_code = 503


def register_error_handlers(app: Flask):
    @app.errorhandler(HermitCoveError)
    def handle_app_error(e: HermitCoveError):
        if isinstance(e, StorageError):
            current_app.logger.error("Storage failure: %s", e.message)
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        return jsonify({"error": e.description or e.name}), e.code

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        current_app.logger.exception("Unhandled 500 error")
        db.session.rollback()
        return jsonify({"error": "Internal server error"}), 500
