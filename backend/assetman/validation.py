from __future__ import annotations

from dataclasses import dataclass


# Assignment note and similar free-text fields
MAX_NOTE_LENGTH = 500


class ValidationError(ValueError):
    """400-level input problem that is not tied to one named field."""


class NotFoundError(LookupError):
    """404. Entity missing, soft-deleted, or outside the caller's location."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate category prefix)."""


class StateConflictError(ConflictError):
    """409. Operation is not legal in the entity's current state."""


class AuthorizationError(PermissionError):
    """403. Caller is authenticated but not allowed to do this."""


class AuthenticationError(PermissionError):
    """401. Missing, expired or invalid credentials."""


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


class FieldValidationError(ValidationError):
    """
    Aggregate of one or more named-field failures from a single operation.

    Raised once, after every applicable check has run, so the client sees all
    violated fields together.
    """

    def __init__(self, errors: list[FieldError]):
        self.errors = list(errors)
        super().__init__("; ".join(str(e) for e in self.errors) or "Validation failed")

    @property
    def fields(self) -> set[str]:
        return {e.field for e in self.errors}

    def messages(self) -> list[str]:
        return [e.message for e in self.errors]


class FieldErrors:
    """
    Collector used by services while checking a payload.

        errors = FieldErrors()
        if not name:
            errors.add("name", "Name is required")
        ...
        errors.raise_if_any()
    """

    def __init__(self):
        self._errors: list[FieldError] = []

    def add(self, field: str, message: str) -> None:
        self._errors.append(FieldError(field, message))

    def has(self, field: str) -> bool:
        return any(e.field == field for e in self._errors)

    def __bool__(self) -> bool:
        return bool(self._errors)

    def __len__(self) -> int:
        return len(self._errors)

    def raise_if_any(self) -> None:
        if self._errors:
            raise FieldValidationError(self._errors)


def json_object(raw) -> dict:
    """Request body as a dict; a missing body reads as {}."""
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValidationError("Request body must be a JSON object")
    return raw


def parse_int_field(payload: dict, key: str, errors: FieldErrors, *, label: str, required: bool = True):
    """
    Reads a strictly positive integer id from a JSON payload.

    Rejects booleans, floats and strings that are not plain digits.
    Records a field error and returns None on failure.
    """
    raw = payload.get(key)
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        if required:
            errors.add(key, f"{label} is required")
        return None

    value = None
    if isinstance(raw, int) and not isinstance(raw, bool):
        value = raw
    elif isinstance(raw, str) and raw.strip().isdigit():
        value = int(raw.strip())

    if value is None or value <= 0:
        errors.add(key, f"{label} is invalid")
        return None
    return value


def parse_text_field(
    payload: dict,
    key: str,
    errors: FieldErrors,
    *,
    label: str,
    max_length: int,
    required: bool = True,
):
    """Trimmed string field; blank counts as missing."""
    raw = payload.get(key)
    if raw is None:
        if required:
            errors.add(key, f"{label} is required")
        return None
    if not isinstance(raw, str):
        errors.add(key, f"{label} must be a string")
        return None
    value = raw.strip()
    if not value:
        if required:
            errors.add(key, f"{label} is required")
        return None if required else ""
    if len(value) > max_length:
        errors.add(key, f"{label} must not exceed {max_length} characters")
        return None
    return value
