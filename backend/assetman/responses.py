# Overview: JSON envelope helpers shared by every blueprint.

"""
Every API response has the same shape:

    {"success": bool, "message": str, "data": <payload or null>, "errors": [str, ...]}

Routes call ok()/created() on success and error_response(exc) from their
except blocks. error_response() is the only place that turns a domain
exception into an HTTP status code.
"""

from flask import jsonify, current_app

from .validation import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    FieldValidationError,
    NotFoundError,
    ValidationError,
)


GENERIC_ERROR_MESSAGE = "An unexpected error occurred"


def envelope(*, success: bool, message: str = "", data=None, errors=None) -> dict:
    return {
        "success": success,
        "message": message,
        "data": data,
        "errors": list(errors or []),
    }


def ok(data=None, message: str = "Success", status: int = 200):
    return jsonify(envelope(success=True, message=message, data=data)), status


def created(data=None, message: str = "Created successfully"):
    return ok(data, message=message, status=201)


def fail(message: str, status: int, errors=None):
    return jsonify(envelope(success=False, message=message, errors=errors or [message])), status


def error_response(exc: Exception, *, context: str = "Request failed"):
    """
    Map a domain exception to (json, status).

    Order matters: FieldValidationError is a ValidationError and
    StateConflictError is a ConflictError.
    """
    if isinstance(exc, FieldValidationError):
        return fail("Validation failed", 400, errors=[str(e) for e in exc.errors])
    if isinstance(exc, ValidationError):
        return fail(str(exc), 400)
    if isinstance(exc, NotFoundError):
        return fail(str(exc), 404)
    if isinstance(exc, ConflictError):
        return fail(str(exc), 409)
    if isinstance(exc, AuthenticationError):
        return fail(str(exc), 401)
    if isinstance(exc, AuthorizationError):
        return fail(str(exc), 403)

    current_app.logger.exception(context)
    return fail(GENERIC_ERROR_MESSAGE, 500)
