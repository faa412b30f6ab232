# Overview: Flask API routes for user management; parses input and returns JSON responses.

"""
User Routes

SECURITY: Admin only. Users are addressed by staff code and scoped to the
admin's location.

List query parameters: searchTerm, sortBy (name, code, username, joined,
type), userType (Admin / Staff / All), pageNumber, pageSize.
"""

from flask import Blueprint, request, g

from ..decorators import require_auth, require_role
from ..models import UserType
from ..responses import ok, created, error_response
from ..validation import json_object
from ..services import user_service
from ..services.query_params import base_params, parse_enum_set, read_multi


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
@require_role("Admin")
def list_users_route():
    try:
        params = base_params(request.args)
        # Single-valued filter; "All" or garbage means every type
        types = parse_enum_set(UserType, read_multi(request.args, "userType", "type"))
        params.user_type = next(iter(types)) if len(types) == 1 else None

        page = user_service.list_users(g.caller, params)
        return ok(page.to_dict(lambda idx, user: user_service.list_item(user)))
    except Exception as e:
        return error_response(e, context="List users failed")


@users_bp.get("/assignable")
@require_auth
@require_role("Admin")
def list_assignable_users_route():
    try:
        users = user_service.list_assignable_users(g.caller, request.args.get("searchTerm"))
        return ok([u.to_dict() for u in users])
    except Exception as e:
        return error_response(e, context="List assignable users failed")


@users_bp.get("/<staff_code>")
@require_auth
@require_role("Admin")
def get_user_route(staff_code: str):
    try:
        user = user_service.get_user_by_staff_code(g.caller, staff_code)
        return ok(user.to_dict())
    except Exception as e:
        return error_response(e, context="Get user failed")


@users_bp.post("")
@require_auth
@require_role("Admin")
def create_user_route():
    """
    Body:
    {
        "firstName": "Binh",
        "lastName": "Nguyen Van",
        "dateOfBirth": "1995-04-12",
        "joinedDate": "2024-03-04",
        "gender": "Male",
        "type": "Staff"
    }

    Staff code, username and initial password are generated.
    """
    try:
        data = json_object(request.get_json(silent=True))
        user = user_service.create_user(g.caller, data)
        return created(user.to_dict(), message="User created successfully")
    except Exception as e:
        return error_response(e, context="Create user failed")


@users_bp.put("/<staff_code>")
@require_auth
@require_role("Admin")
def update_user_route(staff_code: str):
    try:
        data = json_object(request.get_json(silent=True))
        user = user_service.update_user(g.caller, staff_code, data)
        return ok(user.to_dict(), message="User updated successfully")
    except Exception as e:
        return error_response(e, context="Update user failed")


@users_bp.get("/<staff_code>/can-disable")
@require_auth
@require_role("Admin")
def can_disable_user_route(staff_code: str):
    try:
        return ok({"canDisable": user_service.can_disable(g.caller, staff_code)})
    except Exception as e:
        return error_response(e, context="Check disable user failed")


@users_bp.post("/<staff_code>/disable")
@require_auth
@require_role("Admin")
def disable_user_route(staff_code: str):
    try:
        user_service.disable_user(g.caller, staff_code)
        return ok(None, message="User disabled successfully")
    except Exception as e:
        return error_response(e, context="Disable user failed")
