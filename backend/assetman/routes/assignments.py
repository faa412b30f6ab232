# Overview: Flask API routes for assignments; admin management plus the assignee's accept/decline.

"""
Assignment Routes

SECURITY:
- List, create, update, delete require Admin
- /my, accept, decline are open to any signed-in user; accept and decline
  check that the caller is the assignee
- Details: admins see any assignment of their location, staff only their own

List query parameters:
- searchTerm: asset code, asset name or assignee username
- sortBy: assetCode, assetName, assignedTo, assignedBy, assignedDate, state, no
- state: repeated or comma separated assignment states; "All" means no filter
- date: assigned date (any common date format)
- pageNumber, pageSize
"""

from flask import Blueprint, request, g

from ..decorators import require_auth, require_role
from ..models import AssignmentState
from ..responses import ok, created, error_response
from ..validation import json_object
from ..services import assignment_service
from ..services.query_params import base_params, parse_enum_set, parse_filter_date, read_multi


assignments_bp = Blueprint("assignments", __name__, url_prefix="/api/assignments")


@assignments_bp.get("")
@require_auth
@require_role("Admin")
def list_assignments_route():
    try:
        params = base_params(request.args)
        params.states = parse_enum_set(AssignmentState, read_multi(request.args, "state", "states"))
        params.filter_date = parse_filter_date(request.args.get("date") or request.args.get("assignedDate"))

        page = assignment_service.list_assignments(g.caller, params)
        return ok(page.to_dict(lambda idx, a: assignment_service.list_item(page, idx, a)))
    except Exception as e:
        return error_response(e, context="List assignments failed")


@assignments_bp.get("/my")
@require_auth
def list_my_assignments_route():
    """The caller's current assignments (no declined, returned or future-dated ones)."""
    try:
        params = base_params(request.args)
        page = assignment_service.list_my_assignments(g.caller, params)
        return ok(page.to_dict(lambda idx, a: assignment_service.my_item(a)))
    except Exception as e:
        return error_response(e, context="List my assignments failed")


@assignments_bp.get("/<int:assignment_id>")
@require_auth
def get_assignment_route(assignment_id: int):
    try:
        return ok(assignment_service.get_assignment_details(g.caller, assignment_id))
    except Exception as e:
        return error_response(e, context="Get assignment failed")


@assignments_bp.post("")
@require_auth
@require_role("Admin")
def create_assignment_route():
    """
    Body: {"assetId": 1, "assigneeId": 2, "assignedDate": "2024-03-04", "note": "..."}

    Every invalid field is reported at once in "errors".
    """
    try:
        data = json_object(request.get_json(silent=True))
        assignment = assignment_service.create_assignment(g.caller, data)
        return created(assignment.to_dict(), message="Assignment created successfully")
    except Exception as e:
        return error_response(e, context="Create assignment failed")


@assignments_bp.put("/<int:assignment_id>")
@require_auth
@require_role("Admin")
def update_assignment_route(assignment_id: int):
    try:
        data = json_object(request.get_json(silent=True))
        assignment = assignment_service.update_assignment(g.caller, assignment_id, data)
        return ok(assignment.to_dict(), message="Assignment updated successfully")
    except Exception as e:
        return error_response(e, context="Update assignment failed")


@assignments_bp.delete("/<int:assignment_id>")
@require_auth
@require_role("Admin")
def delete_assignment_route(assignment_id: int):
    try:
        assignment_service.delete_assignment(g.caller, assignment_id)
        return ok(None, message="Assignment deleted successfully")
    except Exception as e:
        return error_response(e, context="Delete assignment failed")


@assignments_bp.post("/<int:assignment_id>/accept")
@require_auth
def accept_assignment_route(assignment_id: int):
    try:
        assignment = assignment_service.accept_assignment(g.caller, assignment_id)
        return ok(assignment.to_dict(), message="Assignment accepted successfully")
    except Exception as e:
        return error_response(e, context="Accept assignment failed")


@assignments_bp.post("/<int:assignment_id>/decline")
@require_auth
def decline_assignment_route(assignment_id: int):
    try:
        assignment = assignment_service.decline_assignment(g.caller, assignment_id)
        return ok(assignment.to_dict(), message="Assignment declined successfully")
    except Exception as e:
        return error_response(e, context="Decline assignment failed")
