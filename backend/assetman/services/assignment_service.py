# Overview: Service-layer operations for assignments; listing, validation and the lifecycle state machine.

"""
Assignment Lifecycle Service

LIFECYCLE:
1. Create (admin)             -> WaitingForAcceptance
2. Accept / Decline (assignee) -> Accepted (asset becomes Assigned) / Declined
3. Return request created      -> WaitingForReturning   (see return_request_service)
4. Return request completed    -> Returned (asset back to Available)
   Return request cancelled    -> Accepted

ONE ASSET, ONE HOLDER: An asset may only be assigned while it is Available,
has no active (Accepted / WaitingForReturning) assignment and no other
assignment waiting for acceptance. These checks are repeated inside the
request transaction immediately before the write.

VALIDATION: Create and update collect every field problem into one
FieldValidationError instead of stopping at the first.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy.orm import aliased

from ..extensions import db
from ..models import Asset, AssetState, Assignment, AssignmentState, Category, User
from ..time_utils import parse_date, to_iso_date, today, utcnow
from ..validation import (
    MAX_NOTE_LENGTH,
    AuthorizationError,
    FieldErrors,
    NotFoundError,
    StateConflictError,
    parse_int_field,
)
from .query_params import ListParams
from .query_pipeline import Page, apply_search, apply_sorting, paginate, row_number, sorts_descending_on


# =============================================================================
# STATE MACHINE
# =============================================================================

ASSIGNMENT_TRANSITIONS: dict[AssignmentState, frozenset[AssignmentState]] = {
    AssignmentState.WAITING_FOR_ACCEPTANCE: frozenset({AssignmentState.ACCEPTED, AssignmentState.DECLINED}),
    AssignmentState.ACCEPTED: frozenset({AssignmentState.WAITING_FOR_RETURNING}),
    AssignmentState.WAITING_FOR_RETURNING: frozenset({AssignmentState.RETURNED, AssignmentState.ACCEPTED}),
    AssignmentState.DECLINED: frozenset(),
    AssignmentState.RETURNED: frozenset(),
}

# States in which the asset is considered held by someone
ACTIVE_STATES = (AssignmentState.ACCEPTED, AssignmentState.WAITING_FOR_RETURNING)

EDIT_ONLY_WAITING = "Can only edit assignments with state 'Waiting for acceptance'"


def can_transition(current: AssignmentState, target: AssignmentState) -> bool:
    return target in ASSIGNMENT_TRANSITIONS.get(current, frozenset())


def transition(assignment: Assignment, target: AssignmentState, message: str | None = None) -> None:
    """Move to target or raise StateConflictError. Does not commit."""
    if not can_transition(assignment.state, target):
        raise StateConflictError(
            message or f"Cannot change assignment from '{assignment.state.label}' to '{target.label}'"
        )
    assignment.state = target


# =============================================================================
# QUERIES
# =============================================================================

Assignee = aliased(User, name="assignee")
Assignor = aliased(User, name="assignor")

SORT_KEYS = {
    "assetcode": [Asset.code],
    "assetname": [Asset.name],
    "assignedto": [Assignee.username],
    "assignedby": [Assignor.username],
    "assigneddate": [Assignment.assigned_date],
    "state": [Assignment.state],
    "no": [Assignment.created_at],
    "created": [Assignment.created_at],
    "updated": [Assignment.updated_at],
}
DEFAULT_ORDER = [("assigneddate", "asc")]

MY_SORT_KEYS = {
    "assetcode": [Asset.code],
    "assetname": [Asset.name],
    "category": [Category.name],
    "assigneddate": [Assignment.assigned_date],
    "state": [Assignment.state],
    "created": [Assignment.created_at],
    "updated": [Assignment.updated_at],
}


def scoped_assignments(caller):
    """
    Non-deleted assignments whose asset is in the caller's location.

    Asset, assignee and assignor are joined so search and sort can use them.
    """
    return (
        db.session.query(Assignment)
        .join(Asset, Assignment.asset_id == Asset.id)
        .join(Assignee, Assignment.assignee_id == Assignee.id)
        .join(Assignor, Assignment.assignor_id == Assignor.id)
        .filter(Asset.location == caller.location, Assignment.is_deleted.is_(False))
    )


def list_assignments(caller, params: ListParams) -> Page:
    """
    Search (asset code, asset name, assignee username), filter (states,
    assigned date), sort, paginate.

    Sort keys: assetCode, assetName, assignedTo, assignedBy, assignedDate,
    state, no, created, updated. Unknown keys sort by creation time.
    """
    query = scoped_assignments(caller)
    query = apply_search(query, params.search_term, [Asset.code, Asset.name, Assignee.username])

    if params.states:
        query = query.filter(Assignment.state.in_(list(params.states)))
    if params.filter_date is not None:
        query = query.filter(Assignment.assigned_date == params.filter_date)

    query = apply_sorting(
        query,
        params.sort_criteria,
        sort_keys=SORT_KEYS,
        fallback_key="created",
        default_order=DEFAULT_ORDER,
        tie_breaker=Assignment.id,
    )
    page = paginate(query, params.page_number, params.page_size)
    page.extra["no_descending"] = sorts_descending_on(params.sort_criteria, "no")
    return page


def list_item(page: Page, index: int, assignment: Assignment) -> dict:
    """List row with its stable "no" column."""
    data = assignment.to_dict()
    data["no"] = row_number(
        index,
        page.page_number,
        page.page_size,
        page.total_items,
        descending=page.extra.get("no_descending", False),
    )
    return data


def list_my_assignments(caller, params: ListParams) -> Page:
    """
    The caller's own assignments.

    Declined and Returned assignments are hidden, and so are assignments
    dated after today. Sortable by assetCode, assetName, category,
    assignedDate, state. Default: assigned date ascending.
    """
    query = (
        db.session.query(Assignment)
        .join(Asset, Assignment.asset_id == Asset.id)
        .join(Category, Asset.category_id == Category.id)
        .filter(
            Assignment.assignee_id == caller.user_id,
            Assignment.is_deleted.is_(False),
            Assignment.state.notin_([AssignmentState.DECLINED, AssignmentState.RETURNED]),
            Assignment.assigned_date <= today(),
        )
    )
    query = apply_sorting(
        query,
        params.sort_criteria,
        sort_keys=MY_SORT_KEYS,
        fallback_key="created",
        default_order=DEFAULT_ORDER,
        tie_breaker=Assignment.id,
    )
    return paginate(query, params.page_number, params.page_size)


def my_item(assignment: Assignment) -> dict:
    asset = assignment.asset
    return {
        "id": assignment.id,
        "assetCode": asset.code,
        "assetName": asset.name,
        "category": asset.category.name if asset.category else None,
        "assignedDate": to_iso_date(assignment.assigned_date),
        "state": assignment.state.value,
        "stateLabel": assignment.state.label,
    }


def get_assignment(caller, assignment_id: int) -> Assignment:
    """Location-scoped lookup. Missing, deleted or foreign -> NotFoundError."""
    assignment = scoped_assignments(caller).filter(Assignment.id == assignment_id).first()
    if not assignment:
        raise NotFoundError(f"Assignment with id {assignment_id} not found")
    return assignment


def get_assignment_details(caller, assignment_id: int) -> dict:
    """
    Admins see any assignment in their location; staff only their own.
    """
    assignment = get_assignment(caller, assignment_id)
    if not caller.is_admin and assignment.assignee_id != caller.user_id:
        raise NotFoundError(f"Assignment with id {assignment_id} not found")

    data = assignment.to_dict()
    data.update({
        "specification": assignment.asset.specification,
        "assigneeStaffCode": assignment.assignee.staff_code,
        "assigneeFullName": assignment.assignee.full_name,
    })
    return data


# =============================================================================
# VALIDATION HELPERS
# =============================================================================

def _check_asset(errors: FieldErrors, asset_id: int, caller) -> Asset | None:
    """
    Asset must exist, be in the caller's location and be free.

    Missing, foreign or non-Available assets stop at one message; the
    active and pending conflicts are both reported.
    """
    asset = db.session.query(Asset).filter_by(id=asset_id, is_deleted=False).first()
    if not asset:
        errors.add("assetId", "Asset not found")
        return None

    if asset.location != caller.location:
        errors.add("assetId", "Asset is not in your location")
        return None

    if asset.state != AssetState.AVAILABLE:
        errors.add("assetId", "Asset is not available for assignment")
        return None

    base = db.session.query(Assignment.id).filter(
        Assignment.asset_id == asset.id,
        Assignment.is_deleted.is_(False),
    )
    if base.filter(Assignment.state.in_(ACTIVE_STATES)).first():
        errors.add("assetId", "This asset already has active assignments")
    if base.filter(Assignment.state == AssignmentState.WAITING_FOR_ACCEPTANCE).first():
        errors.add("assetId", "Another assignment is already pending for this asset")

    return asset


def _check_assignee(errors: FieldErrors, assignee_id: int, caller) -> User | None:
    assignee = db.session.query(User).filter_by(id=assignee_id, is_deleted=False).first()
    if not assignee:
        errors.add("assigneeId", "Assignee not found")
        return None

    if assignee.location != caller.location:
        errors.add("assigneeId", "Assignee is not in your location")
        return None

    if not assignee.is_active:
        errors.add("assigneeId", "Cannot assign to inactive user")
        return None

    return assignee


def _check_assigned_date(errors: FieldErrors, raw, minimum):
    """Date-only comparison; minimum is today on create, the stored date on update."""
    try:
        assigned = parse_date(raw)
    except ValueError:
        errors.add("assignedDate", "Invalid Assigned Date format")
        return None
    if assigned is None:
        errors.add("assignedDate", "AssignedDate is required")
        return None
    if assigned < minimum:
        errors.add("assignedDate", "AssignedDate must be either today or a day in the future")
        return None
    return assigned


def _check_note(errors: FieldErrors, raw):
    if raw is None:
        return None
    if not isinstance(raw, str):
        errors.add("note", "Note must be a string")
        return None
    note = raw.strip()
    if len(note) > MAX_NOTE_LENGTH:
        errors.add("note", f"Note must not exceed {MAX_NOTE_LENGTH} characters")
        return None
    return note or None


def _is_blank(raw) -> bool:
    return raw is None or (isinstance(raw, str) and not raw.strip())


# =============================================================================
# MUTATIONS
# =============================================================================

def create_assignment(caller, payload: dict) -> Assignment:
    """
    Create an assignment (state WaitingForAcceptance).

    Payload: {assetId, assigneeId, assignedDate, note?}

    Raises:
        FieldValidationError: one entry per violated field, all at once
    """
    payload = payload or {}
    errors = FieldErrors()

    asset_id = parse_int_field(payload, "assetId", errors, label="AssetId")
    assignee_id = parse_int_field(payload, "assigneeId", errors, label="AssigneeId")

    assigned_date = None
    if _is_blank(payload.get("assignedDate")):
        errors.add("assignedDate", "AssignedDate is required")
    else:
        assigned_date = _check_assigned_date(errors, payload.get("assignedDate"), today())

    note = _check_note(errors, payload.get("note"))

    if asset_id is not None:
        _check_asset(errors, asset_id, caller)
    if assignee_id is not None:
        _check_assignee(errors, assignee_id, caller)

    errors.raise_if_any()

    assignment = Assignment(
        asset_id=asset_id,
        assignor_id=caller.user_id,
        assignee_id=assignee_id,
        assigned_date=assigned_date,
        note=note,
        state=AssignmentState.WAITING_FOR_ACCEPTANCE,
    )
    assignment.mark_created(caller.user_id, utcnow())

    db.session.add(assignment)
    db.session.commit()

    current_app.logger.info(
        "Assignment %s created: asset %s -> user %s by user %s",
        assignment.id, asset_id, assignee_id, caller.user_id,
    )
    return assignment


def update_assignment(caller, assignment_id: int, payload: dict) -> Assignment:
    """
    Partial update while WaitingForAcceptance.

    Only supplied fields are re-validated, and asset/assignee only when they
    actually change. A new assigned date may not be earlier than the
    currently stored one (not "today"), so editing a future-dated assignment
    keeps working as the clock moves.

    Raises:
        NotFoundError: assignment missing or outside the caller's location
        StateConflictError: assignment no longer waiting for acceptance
        FieldValidationError: invalid supplied fields
    """
    payload = payload or {}
    assignment = get_assignment(caller, assignment_id)

    if assignment.state != AssignmentState.WAITING_FOR_ACCEPTANCE:
        raise StateConflictError(EDIT_ONLY_WAITING)

    errors = FieldErrors()
    changes = {}

    if not _is_blank(payload.get("assetId")):
        asset_id = parse_int_field(payload, "assetId", errors, label="AssetId")
        if asset_id is not None and asset_id != assignment.asset_id:
            _check_asset(errors, asset_id, caller)
            changes["asset_id"] = asset_id

    if not _is_blank(payload.get("assigneeId")):
        assignee_id = parse_int_field(payload, "assigneeId", errors, label="AssigneeId")
        if assignee_id is not None and assignee_id != assignment.assignee_id:
            _check_assignee(errors, assignee_id, caller)
            changes["assignee_id"] = assignee_id

    if not _is_blank(payload.get("assignedDate")):
        assigned_date = _check_assigned_date(errors, payload.get("assignedDate"), assignment.assigned_date)
        if assigned_date is not None:
            changes["assigned_date"] = assigned_date

    if "note" in payload:
        changes["note"] = _check_note(errors, payload.get("note"))

    errors.raise_if_any()

    for attr, value in changes.items():
        setattr(assignment, attr, value)
    assignment.mark_updated(caller.user_id, utcnow())

    db.session.commit()

    current_app.logger.info("Assignment %s updated by user %s", assignment.id, caller.user_id)
    return assignment


def delete_assignment(caller, assignment_id: int) -> Assignment:
    """
    Soft delete. Only assignments still waiting for acceptance can go; the
    asset was never touched by them, so it stays as it is.
    """
    assignment = get_assignment(caller, assignment_id)

    if assignment.state != AssignmentState.WAITING_FOR_ACCEPTANCE:
        raise StateConflictError("You can only delete assignments that are waiting for acceptance")

    assignment.mark_deleted(caller.user_id, utcnow())
    db.session.commit()

    current_app.logger.info("Assignment %s deleted by user %s", assignment.id, caller.user_id)
    return assignment


def _assignee_lookup(caller, assignment_id: int, action: str) -> Assignment:
    assignment = db.session.query(Assignment).filter_by(id=assignment_id, is_deleted=False).first()
    if not assignment:
        raise NotFoundError(f"Assignment with id {assignment_id} not found")
    if assignment.assignee_id != caller.user_id:
        raise AuthorizationError(f"Only the assignee can {action} this assignment")
    return assignment


def accept_assignment(caller, assignment_id: int) -> Assignment:
    """
    Assignee accepts. The asset must still be Available; it becomes Assigned.

    Raises:
        NotFoundError, AuthorizationError (not the assignee),
        StateConflictError (not waiting, or asset no longer available)
    """
    assignment = _assignee_lookup(caller, assignment_id, "accept")

    if assignment.state != AssignmentState.WAITING_FOR_ACCEPTANCE:
        raise StateConflictError("Can only accept assignments that are waiting for acceptance")

    asset = db.session.query(Asset).filter_by(id=assignment.asset_id, is_deleted=False).first()
    if not asset or asset.state != AssetState.AVAILABLE:
        raise StateConflictError("This asset is no longer available for assignment.")

    now = utcnow()
    transition(assignment, AssignmentState.ACCEPTED)
    assignment.mark_updated(caller.user_id, now)
    asset.state = AssetState.ASSIGNED
    asset.mark_updated(caller.user_id, now)

    db.session.commit()

    current_app.logger.info("Assignment %s accepted by user %s; asset %s assigned", assignment.id, caller.user_id, asset.id)
    return assignment


def decline_assignment(caller, assignment_id: int) -> Assignment:
    """
    Assignee declines. Terminal. The asset is left as it is; a pending
    assignment never changed it.
    """
    assignment = _assignee_lookup(caller, assignment_id, "decline")

    if assignment.state != AssignmentState.WAITING_FOR_ACCEPTANCE:
        raise StateConflictError("Can only decline assignments that are waiting for acceptance")

    now = utcnow()
    transition(assignment, AssignmentState.DECLINED)
    assignment.mark_updated(caller.user_id, now)

    db.session.commit()

    current_app.logger.info("Assignment %s declined by user %s", assignment.id, caller.user_id)
    return assignment
