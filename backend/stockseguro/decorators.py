# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .services import session_service


def require_auth(f):
    """
    Require a valid session token.

    Sets on Flask g:
    - g.current_worker: the authenticated Worker
    - g.session_context: the full SessionContext

    Returns 401 if the header is missing, the token is invalid/expired,
    or the worker was deactivated.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"ok": False, "error": "Authentication required"}), 401

        token = auth_header.split(" ", 1)[1].strip()

        context = session_service.validate_session(token)
        if not context:
            return jsonify({"ok": False, "error": "Invalid or expired token"}), 401

        g.current_worker = context.worker
        g.session_context = context
        g.auth_token = token

        return f(*args, **kwargs)

    return decorated_function
