# Overview: Flask API routes for assets; parses input and returns JSON responses.

"""
Asset Routes

SECURITY: All routes require an Admin session. Assets of other locations are
reported as not found.

List query parameters:
- searchTerm: matches code or name
- sortBy: "code:asc,name:desc" (code, name, state, category, installedDate)
- assetState: repeated or comma separated; "All" means no filter
- assetCategory: category names, repeated or comma separated
- pageNumber, pageSize
"""

from flask import Blueprint, request, g

from ..decorators import require_auth, require_role
from ..models import AssetState
from ..responses import ok, created, error_response
from ..validation import json_object
from ..services import asset_service
from ..services.query_params import base_params, parse_enum_set, parse_name_set, read_multi


assets_bp = Blueprint("assets", __name__, url_prefix="/api/assets")


@assets_bp.get("")
@require_auth
@require_role("Admin")
def list_assets_route():
    try:
        params = base_params(request.args)
        params.states = parse_enum_set(AssetState, read_multi(request.args, "assetState", "state"))
        params.categories = parse_name_set(read_multi(request.args, "assetCategory", "category"))

        page = asset_service.list_assets(g.caller, params)
        return ok(page.to_dict(lambda idx, asset: asset.to_dict()))
    except Exception as e:
        return error_response(e, context="List assets failed")


@assets_bp.get("/available")
@require_auth
@require_role("Admin")
def list_available_assets_route():
    """Assets that can be picked for an assignment."""
    try:
        assets = asset_service.list_available_assets(g.caller, request.args.get("searchTerm"))
        return ok([a.to_dict() for a in assets])
    except Exception as e:
        return error_response(e, context="List available assets failed")


@assets_bp.get("/<int:asset_id>")
@require_auth
@require_role("Admin")
def get_asset_route(asset_id: int):
    """Asset details plus its assignment history."""
    try:
        return ok(asset_service.get_asset_details(g.caller, asset_id))
    except Exception as e:
        return error_response(e, context="Get asset failed")


@assets_bp.post("")
@require_auth
@require_role("Admin")
def create_asset_route():
    """
    Body:
    {
        "name": "Laptop HP Probook 450 G1",
        "categoryId": 1,
        "specification": "Intel Core i5, 8GB RAM",
        "installedDate": "2024-03-01",
        "state": "Available"  // or "NotAvailable"
    }
    """
    try:
        data = json_object(request.get_json(silent=True))
        asset = asset_service.create_asset(g.caller, data)
        return created(asset.to_dict(), message="Asset created successfully")
    except Exception as e:
        return error_response(e, context="Create asset failed")


@assets_bp.put("/<int:asset_id>")
@require_auth
@require_role("Admin")
def update_asset_route(asset_id: int):
    try:
        data = json_object(request.get_json(silent=True))
        asset = asset_service.update_asset(g.caller, asset_id, data)
        return ok(asset.to_dict(), message="Asset updated successfully")
    except Exception as e:
        return error_response(e, context="Update asset failed")


@assets_bp.delete("/<int:asset_id>")
@require_auth
@require_role("Admin")
def delete_asset_route(asset_id: int):
    try:
        asset_service.delete_asset(g.caller, asset_id)
        return ok(None, message="Asset deleted successfully")
    except Exception as e:
        return error_response(e, context="Delete asset failed")
