# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..services import auth_service
from ..services import session_service
from ..decorators import require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate a worker with email + PIN and create a session token.

    The token must be sent as "Authorization: Bearer <token>" on
    every protected route.
    """
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    pin = data.get("pin", data.get("password"))

    result = auth_service.authenticate(email, pin)
    if not result.ok:
        status = 400 if result.code == "validation" else 401
        if result.code == "internal":
            status = 500
        return jsonify(result.to_dict()), status

    worker = result.data["worker"]
    try:
        _, token = session_service.create_session(worker["id"])
    except Exception:
        current_app.logger.exception("Failed to create session")
        return jsonify({"ok": False, "error": "Internal error."}), 500

    return jsonify({"ok": True, "user": worker, "token": token}), 200


@auth_bp.post("/logout")
@require_auth
def logout_route():
    session_service.revoke_session(g.auth_token)
    return jsonify({"ok": True}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({"ok": True, "user": g.current_worker.to_dict()}), 200
