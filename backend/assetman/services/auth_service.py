# Overview: Service-layer operations for auth; password hashing, login and password change.

"""
Authentication Service

Uses bcrypt for password hashing. Session tokens are managed separately
(see session_service.py).

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Generated initial passwords (username@ddMMyyyy) are hashed as-is; the user
  must replace them on first login
- Passwords chosen by the user must pass validate_password_strength()
- Disabled accounts cannot log in
"""

import bcrypt
import re

from flask import current_app

from ..extensions import db
from ..models import User
from ..time_utils import utcnow
from ..validation import (
    AuthenticationError,
    AuthorizationError,
    FieldError,
    FieldErrors,
    FieldValidationError,
    ValidationError,
)
from . import session_service


INVALID_CREDENTIALS = "Username or password is incorrect. Please try again"
ACCOUNT_DISABLED = "Your account is disabled. Please contact with IT Team"


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Requirements:
    - Minimum 8 characters, maximum 160
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character

    Raises PasswordValidationError if requirements not met.
    """
    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if len(password) > 160:
        raise PasswordValidationError("Password must not exceed 160 characters")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>_\-]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """Hash password using bcrypt (cost factor 12 unless BCRYPT_ROUNDS overrides it)."""
    salt = bcrypt.gensalt(rounds=current_app.config.get("BCRYPT_ROUNDS", 12))
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() is timing-safe. A malformed stored hash never matches.
    """
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def authenticate(username: str, password: str) -> User:
    """
    Check credentials and return the user.

    Raises:
        AuthenticationError: unknown username or wrong password (same message
            for both so usernames cannot be probed)
        AuthorizationError: the account exists but is disabled
    """
    user = db.session.query(User).filter(
        User.username == (username or "").strip().lower(),
        User.is_deleted.is_(False),
    ).first()

    if not user:
        raise AuthenticationError(INVALID_CREDENTIALS)

    if not user.is_active:
        raise AuthorizationError(ACCOUNT_DISABLED)

    if not verify_password(password, user.password_hash):
        raise AuthenticationError(INVALID_CREDENTIALS)

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def login(username: str, password: str, *, user_agent: str | None = None, ip_address: str | None = None) -> dict:
    """Authenticate and open a session. Returns {accessToken, userInfo}."""
    errors = FieldErrors()
    if not username or not str(username).strip():
        errors.add("username", "Username is required")
    if not password:
        errors.add("password", "Password is required")
    errors.raise_if_any()

    user = authenticate(username, password)
    _session, token = session_service.create_session(
        user_id=user.id,
        user_agent=user_agent,
        ip_address=ip_address,
    )
    current_app.logger.info("User %s logged in", user.username)
    return {"accessToken": token, "userInfo": user.to_dict()}


def change_password(user_id: int, new_password: str, old_password: str | None = None, *,
                    user_agent: str | None = None, ip_address: str | None = None) -> dict:
    """
    Replace the caller's password and hand back a fresh session.

    First-login change (is_password_updated False) may omit the old password.
    Otherwise the old password must match. The new password must differ from
    the current one. All existing sessions are revoked.
    """
    user = db.session.query(User).filter_by(id=user_id, is_deleted=False).first()
    if not user or not user.is_active:
        raise AuthenticationError("Invalid username or password")

    if not new_password:
        raise FieldValidationError([FieldError("newPassword", "New password is required")])

    if old_password or user.is_password_updated:
        if not verify_password(old_password or "", user.password_hash):
            raise ValidationError("Password is incorrect")

    if verify_password(new_password, user.password_hash):
        raise ValidationError("New password must be different from the old password")

    validate_password_strength(new_password)

    user.password_hash = hash_password(new_password)
    user.is_password_updated = True
    user.mark_updated(user.id, utcnow())

    session_service.revoke_all_user_sessions(user.id, reason="Password changed", commit=False)
    db.session.commit()

    _session, token = session_service.create_session(
        user_id=user.id,
        user_agent=user_agent,
        ip_address=ip_address,
    )
    current_app.logger.info("User %s changed password", user.username)
    return {"accessToken": token, "userInfo": user.to_dict()}

