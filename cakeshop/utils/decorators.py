# ------- cakeshop/utils/decorators.py -------
from functools import wraps

from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError

from ..errors import AuthError, AuthorizationError
from ..extensions import db
from ..model.user import User


def current_user() -> User:
    """Resolve the user behind the request's bearer token or raise AuthError."""
    try:
        verify_jwt_in_request()
    except (JWTExtendedException, PyJWTError) as e:
        raise AuthError(str(e) or "Unauthorized")
    uid = get_jwt_identity()
    try:
        uid = int(uid)
    except (TypeError, ValueError):
        raise AuthError("Invalid token identity")
    user = db.session.get(User, uid)
    if not user:
        raise AuthError("User not found")
    return user


def role_required(*roles, message: str | None = None):
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            u = current_user()
            if u.role not in roles:
                raise AuthorizationError(message or "Forbidden")
            return fn(*args, **kwargs)
        return wrapper
    return decorator
