# Overview: Service-layer operations for asset categories.

import re

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Category
from ..time_utils import utcnow
from ..validation import ConflictError, FieldErrors, NotFoundError


PREFIX_PATTERN = re.compile(r"^[A-Za-z]{2}$")
MAX_NAME_LENGTH = 100


def list_categories() -> list[Category]:
    """Categories are shared by every location; ordered by name for dropdowns."""
    return (
        db.session.query(Category)
        .filter(Category.is_deleted.is_(False))
        .order_by(Category.name.asc(), Category.id.asc())
        .all()
    )


def get_category(category_id: int) -> Category:
    category = db.session.query(Category).filter_by(id=category_id, is_deleted=False).first()
    if not category:
        raise NotFoundError(f"Category {category_id} not found")
    return category


def create_category(caller, payload: dict) -> Category:
    """
    Create a category from {name, prefix}.

    Raises:
        FieldValidationError: missing name, prefix not exactly 2 letters
        ConflictError: name or prefix already used (case-insensitive)
    """
    payload = payload or {}
    errors = FieldErrors()

    name = (payload.get("name") or "").strip()
    prefix = (payload.get("prefix") or "").strip()

    if not name:
        errors.add("name", "Category name is required")
    elif len(name) > MAX_NAME_LENGTH:
        errors.add("name", f"Category name must not exceed {MAX_NAME_LENGTH} characters")

    if not prefix:
        errors.add("prefix", "Prefix is required")
    elif not PREFIX_PATTERN.match(prefix):
        errors.add("prefix", "The category prefix must be exactly 2 letters")

    errors.raise_if_any()

    if db.session.query(Category).filter(func.lower(Category.name) == name.lower()).first():
        raise ConflictError("Category is already existed. Please enter a different category")

    prefix = prefix.upper()
    if db.session.query(Category).filter(Category.prefix == prefix).first():
        raise ConflictError("Prefix is already existed. Please enter a different prefix")

    category = Category(name=name, prefix=prefix)
    category.mark_created(caller.user_id, utcnow())

    db.session.add(category)
    db.session.commit()

    current_app.logger.info("Category %s (%s) created by user %s", category.id, prefix, caller.user_id)
    return category
