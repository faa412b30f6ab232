from __future__ import annotations

from sqlalchemy.orm import declared_attr

from ..extensions import db


class AuditMixin:
    """
    Audit trail + soft delete shared by every domain table.

    Rows are never physically removed; deletion sets is_deleted and the
    deleted_* pair. Queries that list or resolve entities must exclude
    is_deleted rows themselves.
    """

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    is_deleted = db.Column(db.Boolean, nullable=False, default=False, index=True)

    @declared_attr
    def created_by_user_id(cls):
        return db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    @declared_attr
    def updated_by_user_id(cls):
        return db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    @declared_attr
    def deleted_by_user_id(cls):
        return db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    def mark_created(self, user_id: int | None, at) -> None:
        self.created_by_user_id = user_id
        self.created_at = at
        self.updated_by_user_id = user_id
        self.updated_at = at

    def mark_updated(self, user_id: int | None, at) -> None:
        self.updated_by_user_id = user_id
        self.updated_at = at

    def mark_deleted(self, user_id: int | None, at) -> None:
        self.is_deleted = True
        self.deleted_by_user_id = user_id
        self.deleted_at = at
        self.mark_updated(user_id, at)
