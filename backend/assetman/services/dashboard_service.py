# Overview: Aggregate counts for the admin dashboard (stats, breakdowns, monthly trend, recent activity).

"""
Dashboard Service

LOCATION: Every figure is computed for one location. Routes pass the admin's
own location unless the request names another one.

TIME RANGES: "7d", "30d", "90d", "1y". Anything else is treated as "30d".
"""

from __future__ import annotations

from datetime import date, datetime

from dateutil.relativedelta import relativedelta
from sqlalchemy import func

from ..extensions import db
from ..models import (
    Asset,
    AssetState,
    Assignment,
    AssignmentState,
    Category,
    Location,
    ReturnRequest,
    ReturnRequestState,
    User,
)
from ..time_utils import to_utc_z, utcnow


TIME_RANGES = {
    "7d": relativedelta(days=7),
    "30d": relativedelta(days=30),
    "90d": relativedelta(days=90),
    "1y": relativedelta(years=1),
}
DEFAULT_TIME_RANGE = "30d"

DEFAULT_ACTIVITY_LIMIT = 10
MAX_ACTIVITY_LIMIT = 50


def date_range(time_range: str | None, now: datetime | None = None) -> tuple[datetime, datetime]:
    now = now or utcnow()
    delta = TIME_RANGES.get((time_range or "").strip().lower(), TIME_RANGES[DEFAULT_TIME_RANGE])
    return now - delta, now


def _assets(location: Location):
    return db.session.query(Asset).filter(Asset.location == location, Asset.is_deleted.is_(False))


def get_stats(location: Location) -> dict:
    assets = _assets(location)

    def count_state(state):
        return assets.filter(Asset.state == state).count()

    active_assignments = (
        db.session.query(Assignment)
        .join(Asset, Assignment.asset_id == Asset.id)
        .filter(
            Asset.location == location,
            Assignment.is_deleted.is_(False),
            Assignment.state == AssignmentState.ACCEPTED,
        )
        .count()
    )
    pending_returns = (
        db.session.query(ReturnRequest)
        .join(Assignment, ReturnRequest.assignment_id == Assignment.id)
        .join(Asset, Assignment.asset_id == Asset.id)
        .filter(
            Asset.location == location,
            ReturnRequest.is_deleted.is_(False),
            ReturnRequest.state == ReturnRequestState.WAITING_FOR_RETURNING,
        )
        .count()
    )

    return {
        "totalAssets": assets.count(),
        "availableAssets": count_state(AssetState.AVAILABLE),
        "assignedAssets": count_state(AssetState.ASSIGNED),
        "notAvailableAssets": count_state(AssetState.NOT_AVAILABLE),
        "totalUsers": db.session.query(User).filter(
            User.location == location,
            User.is_deleted.is_(False),
            User.is_active.is_(True),
        ).count(),
        "activeAssignments": active_assignments,
        "pendingReturns": pending_returns,
        "totalCategories": db.session.query(Category).filter(Category.is_deleted.is_(False)).count(),
    }


def assets_by_category(location: Location) -> list[dict]:
    rows = (
        db.session.query(Category.id, Category.name, Category.prefix, func.count(Asset.id).label("count"))
        .join(Asset, Asset.category_id == Category.id)
        .filter(Asset.location == location, Asset.is_deleted.is_(False))
        .group_by(Category.id, Category.name, Category.prefix)
        .order_by(func.count(Asset.id).desc(), Category.name.asc())
        .all()
    )
    return [
        {"categoryId": r.id, "categoryName": r.name, "prefix": r.prefix, "count": int(r.count)}
        for r in rows
    ]


def assets_by_state(location: Location) -> list[dict]:
    rows = (
        db.session.query(Asset.state, func.count(Asset.id).label("count"))
        .filter(Asset.location == location, Asset.is_deleted.is_(False))
        .group_by(Asset.state)
        .all()
    )
    counts = {r.state: int(r.count) for r in rows}
    return [
        {"state": state.value, "stateLabel": state.label, "count": counts[state]}
        for state in AssetState
        if state in counts
    ]


def assets_by_location() -> list[dict]:
    """Cross-location breakdown; the only dashboard figure not limited to one location."""
    rows = (
        db.session.query(Asset.location, func.count(Asset.id).label("count"))
        .filter(Asset.is_deleted.is_(False))
        .group_by(Asset.location)
        .all()
    )
    result = [
        {"location": r.location.value, "locationLabel": r.location.label, "count": int(r.count)}
        for r in rows
    ]
    return sorted(result, key=lambda item: (-item["count"], item["location"]))


def monthly_stats(location: Location, time_range: str | None, now: datetime | None = None) -> list[dict]:
    """
    One bucket per calendar month touched by the range, oldest first.

    assignments: assignments by assigned date
    returns:     completed return requests by returned date
    """
    start, end = date_range(time_range, now)
    start_day, end_day = start.date(), end.date()

    assigned = (
        db.session.query(Assignment.assigned_date)
        .join(Asset, Assignment.asset_id == Asset.id)
        .filter(
            Asset.location == location,
            Assignment.is_deleted.is_(False),
            Assignment.assigned_date >= start_day,
            Assignment.assigned_date <= end_day,
        )
        .all()
    )
    returned = (
        db.session.query(ReturnRequest.returned_date)
        .join(Assignment, ReturnRequest.assignment_id == Assignment.id)
        .join(Asset, Assignment.asset_id == Asset.id)
        .filter(
            Asset.location == location,
            ReturnRequest.is_deleted.is_(False),
            ReturnRequest.returned_date.isnot(None),
            ReturnRequest.returned_date >= start_day,
            ReturnRequest.returned_date <= end_day,
        )
        .all()
    )

    def bucket(rows) -> dict:
        counts: dict[tuple[int, int], int] = {}
        for (day,) in rows:
            key = (day.year, day.month)
            counts[key] = counts.get(key, 0) + 1
        return counts

    assignment_counts = bucket(assigned)
    return_counts = bucket(returned)

    result = []
    cursor = date(start_day.year, start_day.month, 1)
    while cursor <= end_day:
        key = (cursor.year, cursor.month)
        result.append({
            "month": cursor.strftime("%b"),
            "year": cursor.year,
            "assignments": assignment_counts.get(key, 0),
            "returns": return_counts.get(key, 0),
        })
        cursor += relativedelta(months=1)
    return result


def recent_activity(
    location: Location,
    time_range: str | None,
    limit: int = DEFAULT_ACTIVITY_LIMIT,
    now: datetime | None = None,
) -> list[dict]:
    """Newest assignments, completed returns and created assets, merged by timestamp."""
    limit = max(1, min(int(limit or DEFAULT_ACTIVITY_LIMIT), MAX_ACTIVITY_LIMIT))
    start, _ = date_range(time_range, now)
    activities: list[dict] = []

    assignments = (
        db.session.query(Assignment)
        .join(Asset, Assignment.asset_id == Asset.id)
        .filter(
            Asset.location == location,
            Assignment.is_deleted.is_(False),
            Assignment.created_at >= start,
        )
        .order_by(Assignment.created_at.desc(), Assignment.id.desc())
        .limit(limit)
        .all()
    )
    for a in assignments:
        activities.append({
            "id": a.id,
            "type": "assignment",
            "description": f"Asset {a.asset.code} assigned to {a.assignee.username} ({a.assignee.full_name})",
            "timestamp": a.created_at,
            "userId": a.assignor_id,
            "userName": a.assignor.username,
            "assetId": a.asset_id,
            "assetCode": a.asset.code,
        })

    returns = (
        db.session.query(ReturnRequest)
        .join(Assignment, ReturnRequest.assignment_id == Assignment.id)
        .join(Asset, Assignment.asset_id == Asset.id)
        .filter(
            Asset.location == location,
            ReturnRequest.is_deleted.is_(False),
            ReturnRequest.state == ReturnRequestState.COMPLETED,
            ReturnRequest.updated_at >= start,
        )
        .order_by(ReturnRequest.updated_at.desc(), ReturnRequest.id.desc())
        .limit(limit)
        .all()
    )
    for r in returns:
        assignment = r.assignment
        activities.append({
            "id": r.id,
            "type": "return",
            "description": f"Asset {assignment.asset.code} returned by {assignment.assignee.full_name}",
            "timestamp": r.updated_at or r.created_at,
            "userId": r.acceptor_id,
            "userName": r.acceptor.username if r.acceptor else "System",
            "assetId": assignment.asset_id,
            "assetCode": assignment.asset.code,
        })

    assets = (
        _assets(location)
        .filter(Asset.created_at >= start)
        .order_by(Asset.created_at.desc(), Asset.id.desc())
        .limit(limit)
        .all()
    )
    for asset in assets:
        activities.append({
            "id": asset.id,
            "type": "asset_created",
            "description": f"New {asset.category.name} {asset.code} added to inventory",
            "timestamp": asset.created_at,
            "userId": asset.created_by_user_id,
            "userName": "System",
            "assetId": asset.id,
            "assetCode": asset.code,
        })

    activities.sort(key=lambda item: item["timestamp"] or datetime.min, reverse=True)
    for item in activities:
        item["timestamp"] = to_utc_z(item["timestamp"])
    return activities[:limit]
