# Overview: Request and role decorators for API routes.

from functools import wraps
from flask import request, g

from .models import UserType
from .responses import fail
from .services import session_service


def _is_authenticated() -> bool:
    return hasattr(g, 'caller') and hasattr(g, 'current_user')


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    token = auth_header.split(" ", 1)[1].strip()
    return token or None


def require_auth(f):
    """
    Require authentication and establish the caller context.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.caller: CallerContext(user_id, role, location, username)
    - g.session_token: the plaintext bearer token (used by logout)

    Returns 401 if:
    - No Authorization header
    - Invalid, expired or revoked token
    - User account disabled
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if not token:
            return fail("Authentication required", 401)

        context = session_service.validate_session(token)
        if not context:
            return fail("Invalid or expired token", 401)

        g.current_user = context.user
        g.caller = context.caller
        g.session_token = token

        return f(*args, **kwargs)

    return decorated_function


def require_role(role: str):
    """
    Require the authenticated caller to have the given role ("Admin" / "Staff").

    Must be stacked below @require_auth. Runs before any business validation.
    """
    required = UserType.parse(role)
    if required is None:
        raise ValueError(f"Unknown role: {role}")

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return fail("Authentication required", 401)

            if g.caller.role != required:
                return fail("You do not have permission to perform this action", 403)

            return f(*args, **kwargs)

        return decorated_function
    return decorator
