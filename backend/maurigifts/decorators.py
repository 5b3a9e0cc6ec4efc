# Overview: Request decorators for API routes (session gate and admin gate).

from functools import wraps
from flask import request, jsonify, g, current_app

from .services import session_service


# Same body for 401 and 403 so probes cannot tell a bad token from a missing role
NOT_AUTHORIZED = {"error": "Not authorized"}


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    token = auth_header.split(" ", 1)[1].strip()
    return token or None


def require_auth(f):
    """
    Require a valid, unexpired session.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.session_context: The full SessionContext object

    SECURITY: Returns 401 {"error": "Not authorized"} if:
    - No Authorization header
    - Unknown token
    - Expired token (indistinguishable from unknown)
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        context = session_service.validate_session(_bearer_token())
        if not context:
            return jsonify(NOT_AUTHORIZED), 401

        g.current_user = context.user
        g.session_context = context

        return f(*args, **kwargs)

    return decorated_function


def require_admin(f):
    """
    Require role == admin. Must be stacked under @require_auth.

    Returns 403 with the same body as an authentication failure.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user = getattr(g, "current_user", None)
        if user is None:
            return jsonify(NOT_AUTHORIZED), 401

        if not user.is_admin:
            current_app.logger.warning(
                "Admin route %s denied for user_id=%s", request.path, user.id
            )
            return jsonify(NOT_AUTHORIZED), 403

        return f(*args, **kwargs)

    return decorated_function
