from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, to_iso_date
from .base import AuditMixin
from .enums import Gender, Location, UserType, enum_column_type


class User(AuditMixin, db.Model):
    """
    Staff and administrator accounts.

    LOCATION SCOPE: A user belongs to exactly one location. Administrators
    only see and manage users, assets, assignments and return requests of
    their own location.

    Disabling a user sets is_active=False (and the soft-delete audit pair);
    disabled users cannot log in and drop out of the user list.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.Index("ix_users_location_type", "location", "type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Sequential SD0001, SD0002, ...
    staff_code = db.Column(db.String(16), nullable=False, unique=True, index=True)
    first_name = db.Column(db.String(128), nullable=False)
    last_name = db.Column(db.String(128), nullable=False)

    # Derived from the name (see user_service.generate_username)
    username = db.Column(db.String(64), nullable=False, unique=True, index=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)
    # False until the first-login password change happens
    is_password_updated = db.Column(db.Boolean, nullable=False, default=False)

    date_of_birth = db.Column(db.Date, nullable=True)
    joined_date = db.Column(db.Date, nullable=False)

    type = db.Column(enum_column_type(UserType), nullable=False, default=UserType.STAFF)
    location = db.Column(enum_column_type(Location), nullable=False, index=True)
    gender = db.Column(enum_column_type(Gender), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_admin(self) -> bool:
        return self.type == UserType.ADMIN

    def __repr__(self) -> str:
        return f"<User id={self.id} staff_code={self.staff_code!r} username={self.username!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "staffCode": self.staff_code,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "fullName": self.full_name,
            "username": self.username,
            "dateOfBirth": to_iso_date(self.date_of_birth),
            "joinedDate": to_iso_date(self.joined_date),
            "type": self.type.value if self.type else None,
            "location": self.location.value if self.location else None,
            "gender": self.gender.value if self.gender else None,
            "isActive": self.is_active,
            "isPasswordUpdated": self.is_password_updated,
            "lastLoginAt": to_utc_z(self.last_login_at),
        }


class SessionToken(db.Model):
    """
    Opaque session tokens.

    SECURITY: Only the SHA-256 hash of the token is stored. The plaintext is
    handed to the client once at login.
    """
    __tablename__ = "session_tokens"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    token_hash = db.Column(db.String(64), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)

    is_revoked = db.Column(db.Boolean, nullable=False, default=False)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    revoked_reason = db.Column(db.String(255), nullable=True)

    user_agent = db.Column(db.String(255), nullable=True)
    ip_address = db.Column(db.String(64), nullable=True)

    user = db.relationship("User", foreign_keys=[user_id], backref=db.backref("sessions", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "createdAt": to_utc_z(self.created_at),
            "lastUsedAt": to_utc_z(self.last_used_at),
            "expiresAt": to_utc_z(self.expires_at),
            "isRevoked": self.is_revoked,
        }
