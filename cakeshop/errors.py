"""
Error taxonomy shared by the services and the HTTP layer.

Services raise these; `register_error_handlers` turns them into the standard
JSON envelope with the matching status code.
"""
import logging

from flask import jsonify

from .utils.api import api_error

logger = logging.getLogger(__name__)


class ShopError(Exception):
    status_code = 400
    message = "Request failed"

    def __init__(self, message=None, data=None):
        super().__init__(message or self.message)
        self.message = message or self.message
        self.data = data or {}


class ValidationError(ShopError):
    """Missing or malformed field."""
    status_code = 422
    message = "Invalid input"

    def __init__(self, message=None, field=None, data=None):
        super().__init__(message, data)
        self.field = field
        if field:
            self.data.setdefault("field", field)


class AuthError(ShopError):
    status_code = 401
    message = "Unauthorized"


class AuthorizationError(ShopError):
    status_code = 403
    message = "Forbidden"


class NotFoundError(ShopError):
    status_code = 404
    message = "Not found"


class CouponAlreadyUsed(ShopError):
    status_code = 409
    message = "This coupon has already been used"


class CouponExpired(ShopError):
    status_code = 410
    message = "This coupon has expired"


class ExternalServiceError(ShopError):
    status_code = 502
    message = "External service unavailable"


def register_error_handlers(app):
    @app.errorhandler(ShopError)
    def handle_shop_error(e):
        if e.status_code >= 500:
            logger.error("%s: %s", type(e).__name__, e.message)
        r = jsonify(api_error(e.message, e.data))
        r.status_code = e.status_code
        return r

    @app.errorhandler(404)
    def handle_not_found(e):
        r = jsonify(api_error("resource not found"))
        r.status_code = 404
        return r
