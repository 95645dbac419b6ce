# backend/lotto_pos/routes/auth.py
"""
Authentication API routes.

Login returns a bearer token to send as "Authorization: Bearer <token>".
Self-registration does not exist; users are created from the CLI.
"""

from flask import Blueprint, current_app, g, request

from ..decorators import require_auth
from ..responses import fail, ok
from ..services import auth_service, session_service

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Request body:
    {
        "username": "manager",
        "password": "...",
        "org_id": 1              (optional, scopes the username lookup)
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        username = data.get("username")
        password = data.get("password")
        if not username or not password:
            return fail("VALIDATION_ERROR", "username and password required", 400)

        user = auth_service.authenticate(username, password, org_id=data.get("org_id"))
        if not user:
            return fail("INVALID_CREDENTIALS", "Invalid credentials", 401)

        session, token = session_service.create_session(user)
        return ok({
            "user": user.to_dict(),
            "token": token,
            "expires_at": session.to_dict()["expires_at"],
        })
    except Exception:
        current_app.logger.exception("Failed to log in")
        return fail("INTERNAL_ERROR", "Internal server error", 500)


@auth_bp.post("/logout")
@require_auth
def logout_route():
    token = request.headers["Authorization"].split(" ", 1)[1]
    session_service.revoke_session(token, reason="User logout")
    return ok({"logged_out": True, "user_id": g.current_user.id})
