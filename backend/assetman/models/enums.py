"""
Closed value sets for the domain.

Each concept is one `str` enum. The enum value is the canonical string used in
the database and in API payloads ("WaitingForAcceptance"); `label` is the
human text list screens show ("Waiting for acceptance"). Converting external
input goes through `parse()` only.
"""
from __future__ import annotations

from enum import Enum


class _DomainEnum(str, Enum):
    def __new__(cls, value: str, label: str | None = None):
        obj = str.__new__(cls, value)
        obj._value_ = value
        obj.label = label or value
        return obj

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, raw):
        """
        Case-insensitive lookup by value, name or label.

        Returns None for anything that is not a member.
        """
        if raw is None:
            return None
        if isinstance(raw, cls):
            return raw
        token = str(raw).strip().lower()
        if not token:
            return None
        for member in cls:
            if token in (member.value.lower(), member.name.lower(), member.label.lower()):
                return member
        return None

    @classmethod
    def values(cls) -> list[str]:
        return [m.value for m in cls]


class Location(_DomainEnum):
    HCM = ("HCM", "Ho Chi Minh")
    DN = ("DN", "Da Nang")
    HN = ("HN", "Ha Noi")


class UserType(_DomainEnum):
    ADMIN = "Admin"
    STAFF = "Staff"


class Gender(_DomainEnum):
    MALE = "Male"
    FEMALE = "Female"


class AssetState(_DomainEnum):
    AVAILABLE = "Available"
    ASSIGNED = "Assigned"
    NOT_AVAILABLE = ("NotAvailable", "Not available")
    WAITING_FOR_RECYCLING = ("WaitingForRecycling", "Waiting for recycling")
    RECYCLED = "Recycled"


class AssignmentState(_DomainEnum):
    WAITING_FOR_ACCEPTANCE = ("WaitingForAcceptance", "Waiting for acceptance")
    ACCEPTED = "Accepted"
    DECLINED = "Declined"
    WAITING_FOR_RETURNING = ("WaitingForReturning", "Waiting for returning")
    RETURNED = "Returned"


class ReturnRequestState(_DomainEnum):
    WAITING_FOR_RETURNING = ("WaitingForReturning", "Waiting for returning")
    COMPLETED = "Completed"


def enum_column_type(enum_cls):
    """SQLAlchemy Enum type that stores the canonical string value."""
    from ..extensions import db

    return db.Enum(
        enum_cls,
        native_enum=False,
        length=32,
        validate_strings=True,
        values_callable=lambda e: [m.value for m in e],
        name=enum_cls.__name__.lower(),
    )
