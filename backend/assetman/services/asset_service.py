# Overview: Service-layer operations for assets; listing, details, create, update, delete.

"""
Asset Service

LOCATION SCOPE: Every operation is restricted to the caller's location.
An asset in another location behaves exactly like a missing one (404).

STATE RULES:
- New assets start Available or NotAvailable
- An Assigned asset cannot be edited; its state only changes through
  assignment acceptance and return completion
- An asset that appears in any assignment cannot be deleted
"""

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Asset, AssetState, Assignment, AssignmentState, Category, ReturnRequest, ReturnRequestState
from ..time_utils import parse_date, to_iso_date, today, utcnow
from ..validation import FieldErrors, NotFoundError, StateConflictError, parse_int_field, parse_text_field
from . import asset_code
from .query_params import ListParams
from .query_pipeline import Page, apply_search, apply_sorting, paginate


CREATABLE_STATES = (AssetState.AVAILABLE, AssetState.NOT_AVAILABLE)
EDITABLE_STATES = (
    AssetState.AVAILABLE,
    AssetState.NOT_AVAILABLE,
    AssetState.WAITING_FOR_RECYCLING,
    AssetState.RECYCLED,
)

MAX_NAME_LENGTH = 255
MAX_SPECIFICATION_LENGTH = 2000

SORT_KEYS = {
    "code": [Asset.code],
    "name": [Asset.name],
    "state": [Asset.state],
    "category": [Category.name],
    "installeddate": [Asset.installed_date],
    "created": [Asset.created_at],
    "updated": [Asset.updated_at],
    "id": [Asset.id],
}
DEFAULT_ORDER = [("code", "asc")]


# =============================================================================
# QUERIES
# =============================================================================

def scoped_assets(caller):
    """Non-deleted assets in the caller's location, category joined for search/sort."""
    return (
        db.session.query(Asset)
        .join(Category, Asset.category_id == Category.id)
        .filter(Asset.location == caller.location, Asset.is_deleted.is_(False))
    )


def list_assets(caller, params: ListParams) -> Page:
    """
    Search (code, name), filter (states, category names), sort, paginate.

    Sort keys: code, name, state, category, installedDate, created, updated.
    Default: code ascending.
    """
    query = scoped_assets(caller)
    query = apply_search(query, params.search_term, [Asset.code, Asset.name])

    if params.states:
        query = query.filter(Asset.state.in_(list(params.states)))
    if params.categories:
        query = query.filter(func.lower(Category.name).in_(list(params.categories)))

    query = apply_sorting(
        query,
        params.sort_criteria,
        sort_keys=SORT_KEYS,
        fallback_key="id",
        default_order=DEFAULT_ORDER,
        tie_breaker=Asset.id,
    )
    return paginate(query, params.page_number, params.page_size)


def get_asset(caller, asset_id: int) -> Asset:
    asset = scoped_assets(caller).filter(Asset.id == asset_id).first()
    if not asset:
        raise NotFoundError(f"Cannot find asset with id {asset_id}")
    return asset


def assignment_history(asset: Asset) -> list[dict]:
    """
    Past and current hand-outs of the asset, newest first.

    Declined assignments are not history. The returned date comes from the
    completed return request, if any.
    """
    rows = (
        db.session.query(Assignment)
        .filter(
            Assignment.asset_id == asset.id,
            Assignment.is_deleted.is_(False),
            Assignment.state != AssignmentState.DECLINED,
        )
        .order_by(Assignment.assigned_date.desc(), Assignment.id.desc())
        .all()
    )

    history = []
    for assignment in rows:
        completed = (
            db.session.query(ReturnRequest)
            .filter(
                ReturnRequest.assignment_id == assignment.id,
                ReturnRequest.is_deleted.is_(False),
                ReturnRequest.state == ReturnRequestState.COMPLETED,
            )
            .first()
        )
        history.append({
            "assignmentId": assignment.id,
            "assignedDate": to_iso_date(assignment.assigned_date),
            "assignedTo": assignment.assignee.username if assignment.assignee else None,
            "assignedBy": assignment.assignor.username if assignment.assignor else None,
            "returnedDate": to_iso_date(completed.returned_date) if completed else None,
            "state": assignment.state.value,
        })
    return history


def get_asset_details(caller, asset_id: int) -> dict:
    asset = get_asset(caller, asset_id)
    data = asset.to_dict()
    data["assignments"] = assignment_history(asset)
    return data


def list_available_assets(caller, search_term: str | None = None) -> list[Asset]:
    """Assets that can be picked for a new assignment (state Available)."""
    query = scoped_assets(caller).filter(Asset.state == AssetState.AVAILABLE)
    query = apply_search(query, search_term, [Asset.code, Asset.name])
    return query.order_by(Asset.code.asc(), Asset.id.asc()).all()


# =============================================================================
# MUTATIONS
# =============================================================================

def _check_installed_date(payload: dict, errors: FieldErrors):
    raw = payload.get("installedDate")
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        errors.add("installedDate", "Installed date is required")
        return None
    try:
        installed = parse_date(raw)
    except ValueError:
        errors.add("installedDate", "Invalid installed date format")
        return None
    if installed > today():
        errors.add("installedDate", "Installed date cannot be in the future")
        return None
    return installed


def create_asset(caller, payload: dict) -> Asset:
    """
    Create an asset in the caller's location.

    Payload: {name, categoryId, specification, installedDate, state}
    state must be Available (default) or NotAvailable.

    The code is generated from the category prefix after reading the current
    highest code in the same transaction.

    Raises:
        FieldValidationError: every invalid field at once
    """
    payload = payload or {}
    errors = FieldErrors()

    name = parse_text_field(payload, "name", errors, label="Name", max_length=MAX_NAME_LENGTH)
    specification = parse_text_field(
        payload, "specification", errors, label="Specification", max_length=MAX_SPECIFICATION_LENGTH
    )
    category_id = parse_int_field(payload, "categoryId", errors, label="Category")
    installed_date = _check_installed_date(payload, errors)

    state = AssetState.AVAILABLE
    if payload.get("state") not in (None, ""):
        state = AssetState.parse(payload.get("state"))
        if state not in CREATABLE_STATES:
            errors.add("state", "State must be Available or Not available")

    category = None
    if category_id is not None:
        category = db.session.query(Category).filter_by(id=category_id, is_deleted=False).first()
        if not category:
            errors.add("categoryId", "Category not found")

    errors.raise_if_any()

    asset = Asset(
        code=asset_code.generate_code(category.prefix),
        name=name,
        specification=specification,
        category_id=category.id,
        state=state,
        installed_date=installed_date,
        location=caller.location,
    )
    asset.mark_created(caller.user_id, utcnow())

    db.session.add(asset)
    db.session.commit()

    current_app.logger.info("Asset %s (%s) created by user %s", asset.id, asset.code, caller.user_id)
    return asset


def update_asset(caller, asset_id: int, payload: dict) -> Asset:
    """
    Partial update of name, specification, installedDate, state, categoryId.

    Raises:
        NotFoundError: asset missing or in another location
        StateConflictError: asset is currently Assigned
        FieldValidationError: invalid supplied fields
    """
    payload = payload or {}
    asset = get_asset(caller, asset_id)

    if asset.state == AssetState.ASSIGNED:
        raise StateConflictError("Cannot edit an asset that is currently assigned")

    errors = FieldErrors()
    changes = {}

    if "name" in payload:
        changes["name"] = parse_text_field(payload, "name", errors, label="Name", max_length=MAX_NAME_LENGTH)
    if "specification" in payload:
        changes["specification"] = parse_text_field(
            payload, "specification", errors, label="Specification", max_length=MAX_SPECIFICATION_LENGTH
        )
    if "installedDate" in payload:
        changes["installed_date"] = _check_installed_date(payload, errors)
    if "state" in payload:
        state = AssetState.parse(payload.get("state"))
        if state not in EDITABLE_STATES:
            errors.add("state", "Invalid state value")
        changes["state"] = state
    if "categoryId" in payload:
        category_id = parse_int_field(payload, "categoryId", errors, label="Category")
        if category_id is not None:
            category = db.session.query(Category).filter_by(id=category_id, is_deleted=False).first()
            if not category:
                errors.add("categoryId", "Category not found")
            changes["category_id"] = category_id

    errors.raise_if_any()

    # The asset code keeps its original prefix
    for attr, value in changes.items():
        setattr(asset, attr, value)
    asset.mark_updated(caller.user_id, utcnow())

    db.session.commit()

    current_app.logger.info("Asset %s updated by user %s", asset.id, caller.user_id)
    return asset


def delete_asset(caller, asset_id: int) -> Asset:
    """
    Soft delete.

    Raises:
        NotFoundError: asset missing, already deleted, or in another location
        StateConflictError: the asset belongs to at least one assignment
    """
    asset = get_asset(caller, asset_id)

    has_history = (
        db.session.query(Assignment.id)
        .filter(Assignment.asset_id == asset.id, Assignment.is_deleted.is_(False))
        .first()
    )
    if has_history:
        raise StateConflictError(
            "Cannot delete the asset because it belongs to one or more historical assignments"
        )

    asset.mark_deleted(caller.user_id, utcnow())
    db.session.commit()

    current_app.logger.info("Asset %s (%s) deleted by user %s", asset.id, asset.code, caller.user_id)
    return asset
