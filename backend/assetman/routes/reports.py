# Overview: Flask API routes for the admin dashboard and the asset report (JSON and CSV).

"""
Dashboard & Report Routes

SECURITY: Admin only.

Dashboard figures default to the admin's own location; ?location=HN (or
"Ha Noi") selects another one. ?timeRange=7d|30d|90d|1y (default 30d).

The asset report always covers the admin's location.
"""

from flask import Blueprint, Response, request, g

from ..decorators import require_auth, require_role
from ..models import Location
from ..responses import ok, error_response
from ..services import dashboard_service, report_service
from ..time_utils import today


dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")
reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


def _location():
    return Location.parse(request.args.get("location")) or g.caller.location


def _time_range():
    return request.args.get("timeRange", dashboard_service.DEFAULT_TIME_RANGE)


# =============================================================================
# DASHBOARD
# =============================================================================

@dashboard_bp.get("/stats")
@require_auth
@require_role("Admin")
def dashboard_stats_route():
    try:
        return ok(dashboard_service.get_stats(_location()))
    except Exception as e:
        return error_response(e, context="Dashboard stats failed")


@dashboard_bp.get("/assets-by-category")
@require_auth
@require_role("Admin")
def assets_by_category_route():
    try:
        return ok(dashboard_service.assets_by_category(_location()))
    except Exception as e:
        return error_response(e, context="Dashboard category breakdown failed")


@dashboard_bp.get("/assets-by-state")
@require_auth
@require_role("Admin")
def assets_by_state_route():
    try:
        return ok(dashboard_service.assets_by_state(_location()))
    except Exception as e:
        return error_response(e, context="Dashboard state breakdown failed")


@dashboard_bp.get("/assets-by-location")
@require_auth
@require_role("Admin")
def assets_by_location_route():
    try:
        return ok(dashboard_service.assets_by_location())
    except Exception as e:
        return error_response(e, context="Dashboard location breakdown failed")


@dashboard_bp.get("/monthly-stats")
@require_auth
@require_role("Admin")
def monthly_stats_route():
    try:
        return ok(dashboard_service.monthly_stats(_location(), _time_range()))
    except Exception as e:
        return error_response(e, context="Dashboard monthly stats failed")


@dashboard_bp.get("/recent-activity")
@require_auth
@require_role("Admin")
def recent_activity_route():
    limit = request.args.get("limit", dashboard_service.DEFAULT_ACTIVITY_LIMIT, type=int)
    try:
        return ok(dashboard_service.recent_activity(_location(), _time_range(), limit))
    except Exception as e:
        return error_response(e, context="Dashboard recent activity failed")


# =============================================================================
# ASSET REPORT
# =============================================================================

@reports_bp.get("/assets")
@require_auth
@require_role("Admin")
def asset_report_route():
    """
    Query parameters:
    - sortBy: category, total, assigned, available, notAvailable,
      waitingForRecycling, recycled (default category)
    - sortOrder: asc / desc
    """
    try:
        rows = report_service.asset_report(
            g.caller.location,
            request.args.get("sortBy"),
            request.args.get("sortOrder"),
        )
        return ok(rows)
    except Exception as e:
        return error_response(e, context="Asset report failed")


@reports_bp.get("/assets/export")
@require_auth
@require_role("Admin")
def asset_report_export_route():
    """Same rows as /assets, as a CSV attachment."""
    try:
        rows = report_service.asset_report(
            g.caller.location,
            request.args.get("sortBy"),
            request.args.get("sortOrder"),
        )
        filename = f"asset-report-{today().strftime('%Y%m%d')}.csv"
        return Response(
            report_service.report_csv(rows),
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename={filename}"},
        )
    except Exception as e:
        return error_response(e, context="Asset report export failed")
