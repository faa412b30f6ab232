# Overview: Service-layer operations for users; listing, create with generated credentials, update, disable.

"""
User Management Service

LOCATION SCOPE: Admins list, view, create, edit and disable users of their
own location only. New users inherit the admin's location.

GENERATED CREDENTIALS:
- staff code:  SD0001, SD0002, ... (max existing + 1, disabled users included)
- username:    first name + initials of the last name words, lower-case,
               diacritics removed; numeric suffix on collision
               ("Nguyen Van Binh" -> first "Binh", last "Nguyen Van" -> "binhnv",
               then "binhnv1", "binhnv2", ...)
- password:    {username}@{ddMMyyyy of date of birth}, changed on first login
"""

from __future__ import annotations

import re
import unicodedata
from datetime import date

from dateutil.relativedelta import relativedelta
from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Assignment, AssignmentState, Gender, User, UserType
from ..time_utils import parse_date, today, utcnow
from ..validation import ConflictError, FieldErrors, NotFoundError, StateConflictError
from . import auth_service, session_service
from .query_params import ListParams
from .query_pipeline import Page, apply_search, apply_sorting, paginate


STAFF_CODE_PREFIX = "SD"
STAFF_CODE_WIDTH = 4
STAFF_CODE_MAX = 9999

MINIMUM_AGE = 18
MAX_NAME_LENGTH = 128

# Assignments that still tie a user to an asset
VALID_ASSIGNMENT_STATES = (
    AssignmentState.WAITING_FOR_ACCEPTANCE,
    AssignmentState.ACCEPTED,
    AssignmentState.WAITING_FOR_RETURNING,
)

SORT_KEYS = {
    "name": [User.first_name, User.last_name],
    "code": [User.staff_code],
    "username": [User.username],
    "joined": [User.joined_date],
    "type": [User.type],
    "created": [User.created_at],
    "updated": [User.updated_at],
    "id": [User.id],
}
DEFAULT_ORDER = [("name", "asc")]


# =============================================================================
# GENERATORS
# =============================================================================

def strip_diacritics(text: str) -> str:
    """"Nguyễn Đức" -> "Nguyen Duc". đ/Đ have no decomposition and are mapped by hand."""
    text = text.replace("đ", "d").replace("Đ", "D")
    normalized = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in normalized if not unicodedata.combining(ch))


def base_username(first_name: str, last_name: str) -> str:
    first = "".join(strip_diacritics(first_name).lower().split())
    initials = "".join(word[0] for word in strip_diacritics(last_name).lower().split())
    return first + initials


def generate_username(first_name: str, last_name: str, existing: set[str] | None = None) -> str:
    """
    Base username, or base + smallest positive suffix not taken.

    When existing is None the taken names are read from the users table
    (disabled users included).
    """
    base = base_username(first_name, last_name)
    if not base:
        raise ValueError("First name and last name are required")

    if existing is None:
        rows = db.session.query(User.username).filter(User.username.like(f"{base}%")).all()
        existing = {r[0].lower() for r in rows}
    else:
        existing = {u.lower() for u in existing}

    if base not in existing:
        return base

    suffix = 1
    while f"{base}{suffix}" in existing:
        suffix += 1
    return f"{base}{suffix}"


def next_staff_code(existing_codes=None) -> str:
    """SD + 4 digits, one past the highest numeric code issued so far."""
    if existing_codes is None:
        existing_codes = [r[0] for r in db.session.query(User.staff_code).all()]

    highest = 0
    for code in existing_codes:
        if not code or not code.upper().startswith(STAFF_CODE_PREFIX):
            continue
        digits = code[len(STAFF_CODE_PREFIX):]
        if digits.isdigit():
            highest = max(highest, int(digits))

    if highest >= STAFF_CODE_MAX:
        raise ConflictError("Maximum number of staff codes reached.")
    return f"{STAFF_CODE_PREFIX}{highest + 1:0{STAFF_CODE_WIDTH}d}"


def initial_password(username: str, date_of_birth: date) -> str:
    return f"{username.strip().lower()}@{date_of_birth.strftime('%d%m%Y')}"


# =============================================================================
# VALIDATION
# =============================================================================

def age_on(born: date, on: date) -> int:
    return relativedelta(on, born).years


def _check_name(payload: dict, key: str, label: str, errors: FieldErrors):
    raw = payload.get(key)
    value = raw.strip() if isinstance(raw, str) else ""
    if not value:
        errors.add(key, f"{label} is required")
        return None
    if len(value) > MAX_NAME_LENGTH:
        errors.add(key, f"{label} must not exceed {MAX_NAME_LENGTH} characters")
        return None
    if not re.search(r"[^\W\d_]", value):
        errors.add(key, f"{label} must contain letters")
        return None
    return value


def _check_date_of_birth(raw, errors: FieldErrors):
    try:
        dob = parse_date(raw)
    except ValueError:
        errors.add("dateOfBirth", "Invalid Date of Birth format")
        return None
    if dob is None:
        errors.add("dateOfBirth", "Date of birth is required")
        return None
    if dob.year < 1900 or dob > today():
        errors.add("dateOfBirth", "Invalid Date of Birth value")
        return None
    if age_on(dob, today()) < MINIMUM_AGE:
        errors.add("dateOfBirth", "User is under 18. Please select a different date")
        return None
    return dob


def _check_joined_date(raw, errors: FieldErrors):
    try:
        joined = parse_date(raw)
    except ValueError:
        errors.add("joinedDate", "Invalid Joined Date format")
        return None
    if joined is None:
        errors.add("joinedDate", "Joined date is required")
        return None
    if joined.year < 1900 or joined.year > today().year + 1:
        errors.add("joinedDate", "Invalid Joined Date value")
        return None
    if joined.weekday() >= 5:
        errors.add("joinedDate", "Joined date is Saturday or Sunday. Please select a different date")
        return None
    return joined


def _check_age_at_joining(dob: date, joined: date, errors: FieldErrors) -> None:
    if age_on(dob, joined) < MINIMUM_AGE:
        errors.add(
            "joinedDate",
            "User under the age of 18 may not join company. Please select a different date",
        )


def _check_enum(enum_cls, payload: dict, key: str, message: str, errors: FieldErrors, *, required: bool):
    raw = payload.get(key)
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        if required:
            errors.add(key, message)
        return None
    member = enum_cls.parse(raw)
    if member is None:
        errors.add(key, message)
    return member


# =============================================================================
# QUERIES
# =============================================================================

def scoped_users(caller):
    return db.session.query(User).filter(
        User.location == caller.location,
        User.is_deleted.is_(False),
    )


def list_users(caller, params: ListParams) -> Page:
    """
    Active users of the caller's location.

    Search: full name (both orders), staff code, username.
    Filter: user type. Sort: name, code, username, joined, type.
    Default: first name, then last name.
    """
    query = scoped_users(caller).filter(User.is_active.is_(True))
    query = apply_search(
        query,
        params.search_term,
        [
            User.first_name + " " + User.last_name,
            User.last_name + " " + User.first_name,
            User.staff_code,
            User.username,
        ],
    )

    if params.user_type is not None:
        query = query.filter(User.type == params.user_type)

    query = apply_sorting(
        query,
        params.sort_criteria,
        sort_keys=SORT_KEYS,
        fallback_key="id",
        default_order=DEFAULT_ORDER,
        tie_breaker=User.id,
    )
    return paginate(query, params.page_number, params.page_size)


def has_valid_assignments(user_id: int) -> bool:
    return db.session.query(Assignment.id).filter(
        Assignment.assignee_id == user_id,
        Assignment.is_deleted.is_(False),
        Assignment.state.in_(VALID_ASSIGNMENT_STATES),
    ).first() is not None


def list_item(user: User) -> dict:
    data = user.to_dict()
    data["hasValidAssignment"] = has_valid_assignments(user.id)
    return data


def get_user_by_staff_code(caller, staff_code: str) -> User:
    code = (staff_code or "").strip().upper()
    if not code:
        raise NotFoundError("Staff code cannot be empty")
    user = scoped_users(caller).filter(func.upper(User.staff_code) == code).first()
    if not user:
        raise NotFoundError(f"Cannot find user with staff code {staff_code}")
    return user


def list_assignable_users(caller, search_term: str | None = None) -> list[User]:
    """Active users of the location, for the assignee picker."""
    query = scoped_users(caller).filter(User.is_active.is_(True))
    query = apply_search(
        query,
        search_term,
        [User.first_name + " " + User.last_name, User.staff_code, User.username],
    )
    return query.order_by(User.first_name.asc(), User.last_name.asc(), User.id.asc()).all()


# =============================================================================
# MUTATIONS
# =============================================================================

def create_user(caller, payload: dict) -> User:
    """
    Create a user in the admin's location.

    Payload: {firstName, lastName, dateOfBirth, joinedDate, gender, type}

    Staff code, username and initial password are generated. The user has to
    change the password on first login.

    Raises:
        FieldValidationError: every invalid field at once
    """
    payload = payload or {}
    errors = FieldErrors()

    first_name = _check_name(payload, "firstName", "First name", errors)
    last_name = _check_name(payload, "lastName", "Last name", errors)
    dob = _check_date_of_birth(payload.get("dateOfBirth"), errors)
    joined = _check_joined_date(payload.get("joinedDate"), errors)
    user_type = _check_enum(UserType, payload, "type", "Invalid user type value", errors, required=True)
    gender = _check_enum(Gender, payload, "gender", "Invalid gender value", errors, required=False)

    if dob is not None and joined is not None:
        _check_age_at_joining(dob, joined, errors)

    errors.raise_if_any()

    username = generate_username(first_name, last_name)
    user = User(
        staff_code=next_staff_code(),
        first_name=first_name,
        last_name=last_name,
        username=username,
        password_hash=auth_service.hash_password(initial_password(username, dob)),
        is_password_updated=False,
        date_of_birth=dob,
        joined_date=joined,
        type=user_type,
        gender=gender,
        location=caller.location,
        is_active=True,
    )
    user.mark_created(caller.user_id, utcnow())

    db.session.add(user)
    db.session.commit()

    current_app.logger.info("User %s (%s) created by user %s", user.staff_code, user.username, caller.user_id)
    return user


def update_user(caller, staff_code: str, payload: dict) -> User:
    """
    Partial update of dateOfBirth, joinedDate, gender, type.

    Age-at-joining is re-checked against the effective (new or stored) dates.

    Raises:
        NotFoundError, StateConflictError (user disabled), FieldValidationError
    """
    payload = payload or {}
    user = get_user_by_staff_code(caller, staff_code)

    if not user.is_active:
        raise StateConflictError("Cannot update disabled user")

    errors = FieldErrors()
    changes = {}

    if payload.get("dateOfBirth") not in (None, ""):
        changes["date_of_birth"] = _check_date_of_birth(payload.get("dateOfBirth"), errors)
    if payload.get("joinedDate") not in (None, ""):
        changes["joined_date"] = _check_joined_date(payload.get("joinedDate"), errors)
    if "type" in payload:
        changes["type"] = _check_enum(UserType, payload, "type", "Invalid user type value", errors, required=True)
    if "gender" in payload:
        changes["gender"] = _check_enum(Gender, payload, "gender", "Invalid gender value", errors, required=False)

    if not errors:
        dob = changes.get("date_of_birth", user.date_of_birth)
        joined = changes.get("joined_date", user.joined_date)
        if dob is not None and joined is not None:
            _check_age_at_joining(dob, joined, errors)
        elif dob is None and "joined_date" in changes:
            errors.add("joinedDate", "Please Select Date of Birth")

    errors.raise_if_any()

    if user.id == caller.user_id and changes.get("type") not in (None, user.type):
        raise ConflictError("You cannot change your own user type")

    for attr, value in changes.items():
        setattr(user, attr, value)
    user.mark_updated(caller.user_id, utcnow())

    db.session.commit()

    current_app.logger.info("User %s updated by user %s", user.staff_code, caller.user_id)
    return user


def can_disable(caller, staff_code: str) -> bool:
    user = get_user_by_staff_code(caller, staff_code)
    return user.is_active and user.id != caller.user_id and not has_valid_assignments(user.id)


def disable_user(caller, staff_code: str) -> User:
    """
    Disable (deactivate) a user. Their sessions are revoked.

    Raises:
        NotFoundError: unknown staff code or other location
        ConflictError: disabling yourself
        StateConflictError: already disabled, or the user still has
            assignments waiting for acceptance, accepted or waiting for return
    """
    user = get_user_by_staff_code(caller, staff_code)

    if user.id == caller.user_id:
        raise ConflictError("You cannot disable your own account")
    if not user.is_active:
        raise StateConflictError("User is already disabled")
    if has_valid_assignments(user.id):
        raise StateConflictError(
            "There are valid assignments belonging to this user. "
            "Please close all assignments before disabling user."
        )

    now = utcnow()
    user.is_active = False
    user.deleted_by_user_id = caller.user_id
    user.deleted_at = now
    user.mark_updated(caller.user_id, now)

    session_service.revoke_all_user_sessions(user.id, reason="User account disabled", commit=False)
    db.session.commit()

    current_app.logger.info("User %s disabled by user %s", user.staff_code, caller.user_id)
    return user
