# Overview: Per-category asset report for one location, with CSV export.

from __future__ import annotations

import csv
import io

from sqlalchemy import case, func

from ..extensions import db
from ..models import Asset, AssetState, Category
from .query_params import is_descending


# Report column key -> (JSON key, CSV header)
COLUMNS = [
    ("category", "category", "Category"),
    ("total", "total", "Total"),
    ("assigned", "assigned", "Assigned"),
    ("available", "available", "Available"),
    ("notavailable", "notAvailable", "Not available"),
    ("waitingforrecycling", "waitingForRecycling", "Waiting for recycling"),
    ("recycled", "recycled", "Recycled"),
]
SORTABLE = {key: json_key for key, json_key, _ in COLUMNS}
DEFAULT_SORT = "category"

_STATE_COLUMNS = {
    "assigned": AssetState.ASSIGNED,
    "available": AssetState.AVAILABLE,
    "notAvailable": AssetState.NOT_AVAILABLE,
    "waitingForRecycling": AssetState.WAITING_FOR_RECYCLING,
    "recycled": AssetState.RECYCLED,
}


def asset_report(location, sort_by: str | None = None, sort_order: str | None = None) -> list[dict]:
    """
    One row per category, every category included (zero rows for categories
    with no assets in the location).

    Unknown sort keys fall back to category ascending. Ties are broken by
    category name.
    """
    counted = [
        func.coalesce(func.sum(case((Asset.state == state, 1), else_=0)), 0).label(json_key)
        for json_key, state in _STATE_COLUMNS.items()
    ]
    rows = (
        db.session.query(Category.name, func.count(Asset.id).label("total"), *counted)
        .outerjoin(
            Asset,
            (Asset.category_id == Category.id)
            & (Asset.location == location)
            & (Asset.is_deleted.is_(False)),
        )
        .filter(Category.is_deleted.is_(False))
        .group_by(Category.id, Category.name)
        .all()
    )

    report = []
    for row in rows:
        item = {"category": row.name, "total": int(row.total or 0)}
        for json_key in _STATE_COLUMNS:
            item[json_key] = int(getattr(row, json_key) or 0)
        report.append(item)

    key = (sort_by or DEFAULT_SORT).strip().lower()
    if key not in SORTABLE:
        key, sort_order = DEFAULT_SORT, "asc"
    json_key = SORTABLE[key]

    # Stable sorts: name first, then the requested column
    report.sort(key=lambda r: r["category"].lower())
    if json_key != "category":
        report.sort(key=lambda r: r[json_key], reverse=is_descending(sort_order))
    elif is_descending(sort_order):
        report.reverse()
    return report


def report_csv(rows: list[dict]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow([header for _, _, header in COLUMNS])
    for row in rows:
        writer.writerow([row[json_key] for _, json_key, _ in COLUMNS])
    return buffer.getvalue()
