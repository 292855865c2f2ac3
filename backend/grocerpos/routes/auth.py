# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

- Login is rate limited per client IP (auth bucket)
- Tokens are opaque; only their hash is stored
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import session_service
from ..decorators import require_auth, rate_limited, client_ip
from ..time_utils import to_utc_z


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
@rate_limited("auth")
def login_route():
    """
    Authenticate user and create session token.

    Token must be sent as "Authorization: Bearer <token>" on protected routes.
    """
    try:
        data = request.get_json(silent=True) or {}
        username = data.get("username")
        password = data.get("password")

        if not isinstance(username, str) or not isinstance(password, str) or not username or not password:
            return jsonify({"error": "username and password required"}), 400

        user = auth_service.authenticate(username, password)
        if user is None:
            current_app.logger.info("Failed login for username=%s ip=%s", username, client_ip())
            return jsonify({"error": "Invalid credentials"}), 401

        session, token = session_service.create_session(user.id)

        return jsonify({
            "user": user.to_dict(),
            "token": token,
            "expires_at": to_utc_z(session.expires_at),
        }), 200

    except Exception:
        current_app.logger.exception("Login failed")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route():
    """Revoke the bearer token used for this request."""
    try:
        session_service.revoke_session(g.bearer_token)
        return jsonify({"message": "Logged out"}), 200
    except Exception:
        current_app.logger.exception("Logout failed")
        return jsonify({"error": "Internal server error"}), 500
