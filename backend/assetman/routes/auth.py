# Overview: Flask API routes for authentication; login, logout, change password, current user.

"""
Authentication Routes

SECURITY:
- Login returns an opaque bearer token; only its SHA-256 hash is stored
- Unknown username and wrong password share one message
- Changing the password revokes every session and issues a new token
"""

from flask import Blueprint, request, g

from ..decorators import require_auth
from ..responses import ok, error_response
from ..validation import json_object
from ..services import auth_service, session_service


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Body: {"username": "...", "password": "..."}

    Returns:
        {accessToken, userInfo}. userInfo.isPasswordUpdated is False until
        the first-login password change.
    """
    try:
        data = json_object(request.get_json(silent=True))
        result = auth_service.login(
            data.get("username"),
            data.get("password"),
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )
        return ok(result, message="Login successfully")
    except Exception as e:
        return error_response(e, context="Login failed")


@auth_bp.post("/logout")
@require_auth
def logout_route():
    try:
        session_service.revoke_session(g.session_token, reason="User logout")
        return ok(None, message="Logout successfully")
    except Exception as e:
        return error_response(e, context="Logout failed")


@auth_bp.post("/change-password")
@require_auth
def change_password_route():
    """
    Body: {"oldPassword": "...", "newPassword": "..."}

    oldPassword may be omitted on the first-login change.
    """
    try:
        data = json_object(request.get_json(silent=True))
        result = auth_service.change_password(
            g.caller.user_id,
            data.get("newPassword"),
            data.get("oldPassword"),
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )
        return ok(result, message="Your password has been changed successfully")
    except Exception as e:
        return error_response(e, context="Change password failed")


@auth_bp.get("/me")
@require_auth
def me_route():
    return ok(g.current_user.to_dict())
