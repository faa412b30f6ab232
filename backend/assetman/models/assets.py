from __future__ import annotations

from ..extensions import db
from ..time_utils import to_iso_date
from .base import AuditMixin
from .enums import AssetState, Location, enum_column_type


class Category(AuditMixin, db.Model):
    """
    Asset category. The 2-letter prefix seeds every asset code in it.

    Categories are never deleted once an asset references them
    (FK is RESTRICT, no cascade).
    """
    __tablename__ = "categories"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False, unique=True)
    # Always stored upper-case; uniqueness is therefore case-insensitive
    prefix = db.Column(db.String(2), nullable=False, unique=True)

    def __repr__(self) -> str:
        return f"<Category id={self.id} prefix={self.prefix!r} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "prefix": self.prefix,
        }


class Asset(AuditMixin, db.Model):
    __tablename__ = "assets"
    __table_args__ = (
        db.Index("ix_assets_location_state", "location", "state"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # {prefix}{6-digit zero padded sequence}, e.g. LA000042.
    # Fixed width keeps lexicographic order == numeric order within a prefix.
    code = db.Column(db.String(16), nullable=False, unique=True, index=True)
    name = db.Column(db.String(255), nullable=False)
    specification = db.Column(db.Text, nullable=False, default="")

    state = db.Column(enum_column_type(AssetState), nullable=False, default=AssetState.AVAILABLE, index=True)
    installed_date = db.Column(db.Date, nullable=False)
    location = db.Column(enum_column_type(Location), nullable=False, index=True)

    category_id = db.Column(
        db.Integer,
        db.ForeignKey("categories.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    category = db.relationship("Category", backref=db.backref("assets", lazy=True))

    def __repr__(self) -> str:
        return f"<Asset id={self.id} code={self.code!r} state={self.state}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "specification": self.specification,
            "state": self.state.value if self.state else None,
            "stateLabel": self.state.label if self.state else None,
            "installedDate": to_iso_date(self.installed_date),
            "location": self.location.value if self.location else None,
            "categoryId": self.category_id,
            "categoryName": self.category.name if self.category else None,
        }
