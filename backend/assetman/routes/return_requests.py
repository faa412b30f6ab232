# Overview: Flask API routes for return requests; create, list, complete, cancel.

"""
Return Request Routes

SECURITY:
- Create: any signed-in user (staff for their own accepted assignments,
  admins for any assignment of their location)
- List, complete, cancel: Admin

List query parameters: searchTerm, sortBy (assetCode, assetName, requestedBy,
assignedDate, acceptedBy, returnedDate, state, no), states, returnedDate,
pageNumber, pageSize.
"""

from flask import Blueprint, request, g

from ..decorators import require_auth, require_role
from ..models import ReturnRequestState
from ..responses import ok, created, error_response
from ..validation import json_object
from ..services import return_request_service
from ..services.query_params import base_params, parse_enum_set, parse_filter_date, read_multi


return_requests_bp = Blueprint("return_requests", __name__, url_prefix="/api/return-requests")


@return_requests_bp.get("")
@require_auth
@require_role("Admin")
def list_return_requests_route():
    try:
        params = base_params(request.args)
        params.states = parse_enum_set(ReturnRequestState, read_multi(request.args, "states", "state"))
        params.filter_date = parse_filter_date(request.args.get("returnedDate"))

        page = return_request_service.list_return_requests(g.caller, params)
        return ok(page.to_dict(lambda idx, r: return_request_service.list_item(page, idx, r)))
    except Exception as e:
        return error_response(e, context="List return requests failed")


@return_requests_bp.post("")
@require_auth
def create_return_request_route():
    """Body: {"assignmentId": 1}"""
    try:
        data = json_object(request.get_json(silent=True))
        return_request = return_request_service.create_return_request(g.caller, data)
        return created(return_request.to_dict(), message="Return request created successfully")
    except Exception as e:
        return error_response(e, context="Create return request failed")


@return_requests_bp.post("/<int:return_request_id>/complete")
@require_auth
@require_role("Admin")
def complete_return_request_route(return_request_id: int):
    try:
        return_request = return_request_service.complete_return_request(g.caller, return_request_id)
        return ok(return_request.to_dict(), message="Return request completed successfully")
    except Exception as e:
        return error_response(e, context="Complete return request failed")


@return_requests_bp.post("/<int:return_request_id>/cancel")
@require_auth
@require_role("Admin")
def cancel_return_request_route(return_request_id: int):
    try:
        return_request_service.cancel_return_request(g.caller, return_request_id)
        return ok(None, message="Return request cancelled successfully")
    except Exception as e:
        return error_response(e, context="Cancel return request failed")
