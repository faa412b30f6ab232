# Overview: Flask API routes for asset categories.

from flask import Blueprint, request, g

from ..decorators import require_auth, require_role
from ..responses import ok, created, error_response
from ..validation import json_object
from ..services import category_service


categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")


@categories_bp.get("")
@require_auth
@require_role("Admin")
def list_categories_route():
    try:
        return ok([c.to_dict() for c in category_service.list_categories()])
    except Exception as e:
        return error_response(e, context="List categories failed")


@categories_bp.post("")
@require_auth
@require_role("Admin")
def create_category_route():
    """Body: {"name": "Laptop", "prefix": "LA"}"""
    try:
        data = json_object(request.get_json(silent=True))
        category = category_service.create_category(g.caller, data)
        return created(category.to_dict(), message="Category created successfully")
    except Exception as e:
        return error_response(e, context="Create category failed")
