# Overview: Service-layer operations for return requests; listing, create, complete, cancel.

"""
Return Request Service

LIFECYCLE:
1. Create (assignee, or any admin of the location) on an Accepted assignment
   - request: WaitingForReturning
   - assignment: Accepted -> WaitingForReturning
   - asset: untouched (still Assigned)
2a. Complete (admin)
   - request: Completed, acceptor = admin, returned date = today
   - assignment: Returned
   - asset: Available
2b. Cancel (admin)
   - request: soft-deleted
   - assignment: back to Accepted
   - asset: untouched

Every transition commits its entity changes together in one transaction.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy.orm import aliased

from ..extensions import db
from ..models import Asset, AssetState, Assignment, AssignmentState, ReturnRequest, ReturnRequestState, User
from ..time_utils import today, utcnow
from ..validation import ConflictError, FieldErrors, NotFoundError, StateConflictError, parse_int_field
from .assignment_service import transition
from .query_params import ListParams
from .query_pipeline import Page, apply_search, apply_sorting, paginate, row_number, sorts_descending_on


Requester = aliased(User, name="requester")
Acceptor = aliased(User, name="acceptor")

SORT_KEYS = {
    "assetcode": [Asset.code],
    "assetname": [Asset.name],
    "requestedby": [Requester.username],
    "assigneddate": [Assignment.assigned_date],
    "acceptedby": [Acceptor.username],
    "returneddate": [ReturnRequest.returned_date],
    "state": [ReturnRequest.state],
    "no": [ReturnRequest.created_at],
    "created": [ReturnRequest.created_at],
    "updated": [ReturnRequest.updated_at],
}
DEFAULT_ORDER = [("returneddate", "asc")]


# =============================================================================
# QUERIES
# =============================================================================

def scoped_return_requests(caller):
    """Non-deleted return requests whose assignment's asset is in the caller's location."""
    return (
        db.session.query(ReturnRequest)
        .join(Assignment, ReturnRequest.assignment_id == Assignment.id)
        .join(Asset, Assignment.asset_id == Asset.id)
        .join(Requester, ReturnRequest.requester_id == Requester.id)
        .outerjoin(Acceptor, ReturnRequest.acceptor_id == Acceptor.id)
        .filter(Asset.location == caller.location, ReturnRequest.is_deleted.is_(False))
    )


def list_return_requests(caller, params: ListParams) -> Page:
    """
    Search (asset code, asset name, requester username), filter (states,
    returned date), sort, paginate.

    Default: returned date ascending (pending requests, with no date, first).
    """
    query = scoped_return_requests(caller)
    query = apply_search(query, params.search_term, [Asset.code, Asset.name, Requester.username])

    if params.states:
        query = query.filter(ReturnRequest.state.in_(list(params.states)))
    if params.filter_date is not None:
        query = query.filter(ReturnRequest.returned_date == params.filter_date)

    query = apply_sorting(
        query,
        params.sort_criteria,
        sort_keys=SORT_KEYS,
        fallback_key="created",
        default_order=DEFAULT_ORDER,
        tie_breaker=ReturnRequest.id,
    )
    page = paginate(query, params.page_number, params.page_size)
    page.extra["no_descending"] = sorts_descending_on(params.sort_criteria, "no")
    return page


def list_item(page: Page, index: int, return_request: ReturnRequest) -> dict:
    data = return_request.to_dict()
    data["no"] = row_number(
        index,
        page.page_number,
        page.page_size,
        page.total_items,
        descending=page.extra.get("no_descending", False),
    )
    return data


def get_return_request(caller, return_request_id: int) -> ReturnRequest:
    request_row = scoped_return_requests(caller).filter(ReturnRequest.id == return_request_id).first()
    if not request_row:
        raise NotFoundError(f"Return request with id {return_request_id} not found")
    return request_row


# =============================================================================
# MUTATIONS
# =============================================================================

def create_return_request(caller, payload: dict) -> ReturnRequest:
    """
    Request the return of an accepted assignment.

    Admins may request for any assignment in their location; staff only for
    assignments they hold. Anything else looks like a missing assignment.

    Raises:
        FieldValidationError: assignmentId missing or malformed
        NotFoundError: assignment not visible to the caller
        ConflictError: assignment is not Accepted
    """
    payload = payload or {}
    errors = FieldErrors()
    assignment_id = parse_int_field(payload, "assignmentId", errors, label="Assignment id")
    errors.raise_if_any()

    query = (
        db.session.query(Assignment)
        .join(Asset, Assignment.asset_id == Asset.id)
        .filter(
            Assignment.id == assignment_id,
            Assignment.is_deleted.is_(False),
            Asset.location == caller.location,
        )
    )
    if not caller.is_admin:
        query = query.filter(Assignment.assignee_id == caller.user_id)

    assignment = query.first()
    if not assignment:
        raise NotFoundError("Assignment does not exist")

    if assignment.state != AssignmentState.ACCEPTED:
        raise ConflictError(
            f"Cannot return the asset with assignment's state is: {assignment.state.label}"
        )

    now = utcnow()
    transition(assignment, AssignmentState.WAITING_FOR_RETURNING)
    assignment.mark_updated(caller.user_id, now)

    return_request = ReturnRequest(
        assignment_id=assignment.id,
        requester_id=caller.user_id,
        state=ReturnRequestState.WAITING_FOR_RETURNING,
    )
    return_request.mark_created(caller.user_id, now)

    db.session.add(return_request)
    db.session.commit()

    current_app.logger.info(
        "Return request %s created for assignment %s by user %s",
        return_request.id, assignment.id, caller.user_id,
    )
    return return_request


def complete_return_request(caller, return_request_id: int) -> ReturnRequest:
    """
    Admin completes the return. Request, assignment and asset change in one
    commit.

    Raises:
        NotFoundError: request missing, cancelled, or outside the location
        StateConflictError: request already completed
    """
    return_request = get_return_request(caller, return_request_id)

    if return_request.state != ReturnRequestState.WAITING_FOR_RETURNING:
        raise StateConflictError(f"Return request with id {return_request_id} is already completed")

    assignment = return_request.assignment
    asset = assignment.asset
    now = utcnow()

    transition(assignment, AssignmentState.RETURNED)
    assignment.mark_updated(caller.user_id, now)

    return_request.state = ReturnRequestState.COMPLETED
    return_request.acceptor_id = caller.user_id
    return_request.returned_date = today()
    return_request.mark_updated(caller.user_id, now)

    asset.state = AssetState.AVAILABLE
    asset.mark_updated(caller.user_id, now)

    db.session.commit()

    current_app.logger.info(
        "Return request %s completed by user %s; assignment %s returned, asset %s available",
        return_request.id, caller.user_id, assignment.id, asset.id,
    )
    return return_request


def cancel_return_request(caller, return_request_id: int) -> ReturnRequest:
    """
    Admin cancels a pending return. The assignment goes back to Accepted and
    the request is soft-deleted. The asset is not touched.
    """
    return_request = get_return_request(caller, return_request_id)

    if return_request.state != ReturnRequestState.WAITING_FOR_RETURNING:
        raise StateConflictError(f"Return request with id {return_request_id} is already completed.")

    assignment = return_request.assignment
    now = utcnow()

    transition(assignment, AssignmentState.ACCEPTED)
    assignment.mark_updated(caller.user_id, now)

    return_request.acceptor_id = caller.user_id
    return_request.mark_deleted(caller.user_id, now)

    db.session.commit()

    current_app.logger.info(
        "Return request %s cancelled by user %s; assignment %s accepted again",
        return_request.id, caller.user_id, assignment.id,
    )
    return return_request
