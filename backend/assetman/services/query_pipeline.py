# Overview: Shared search / sort / paginate steps applied to SQLAlchemy queries.

"""
Query Composition Pipeline

Each entity service builds its list query in the same order:

    scope (location, soft delete) -> search -> filter -> sort -> paginate

The entity-specific parts (which columns are searched, which sort keys
exist, the default ordering) are passed in; the mechanics live here.

DETERMINISM: apply_sorting() always appends the entity's primary key as the
final ascending tie-breaker, so repeated calls over unchanged data return
rows in the same order and consecutive pages never overlap.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Callable, Sequence

from sqlalchemy import or_

from .query_params import is_descending


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def apply_search(query, search_term: str | None, columns: Sequence[Any]):
    """
    Case-insensitive substring match of the trimmed term against any column.

    Empty or whitespace-only terms leave the query untouched.
    """
    if not search_term or not search_term.strip():
        return query

    pattern = f"%{_escape_like(search_term.strip())}%"
    return query.filter(or_(*[col.ilike(pattern, escape="\\") for col in columns]))


def apply_sorting(
    query,
    criteria: Sequence[tuple[str, str]],
    *,
    sort_keys: dict[str, Sequence[Any]],
    fallback_key: str,
    default_order: Sequence[tuple[str, str]],
    tie_breaker,
):
    """
    Multi-key ORDER BY from parsed (property, order) pairs.

    - property names match sort_keys case-insensitively; unknown names sort
      by fallback_key instead of failing
    - a key may expand to several columns (e.g. name -> first, last)
    - no criteria at all -> default_order
    - tie_breaker (the primary key) is always appended ascending
    """
    effective = list(criteria) if criteria else list(default_order)

    clauses = []
    for prop, order in effective:
        columns = sort_keys.get((prop or "").strip().lower())
        if columns is None:
            columns = sort_keys[fallback_key]
        desc = is_descending(order)
        for col in columns:
            clauses.append(col.desc() if desc else col.asc())

    clauses.append(tie_breaker.asc())
    return query.order_by(*clauses)


@dataclass
class Page:
    items: list
    page_number: int
    page_size: int
    total_items: int
    extra: dict = field(default_factory=dict)

    @property
    def total_pages(self) -> int:
        if self.page_size <= 0:
            return 0
        return math.ceil(self.total_items / self.page_size)

    @property
    def has_next_page(self) -> bool:
        return self.page_number < self.total_pages

    @property
    def has_previous_page(self) -> bool:
        return self.page_number > 1

    def metadata(self) -> dict:
        return {
            "pageSize": self.page_size,
            "currentPage": self.page_number,
            "totalItems": self.total_items,
            "totalPages": self.total_pages,
            "hasNextPage": self.has_next_page,
            "hasPreviousPage": self.has_previous_page,
        }

    def to_dict(self, serialize: Callable[[int, Any], dict]) -> dict:
        """{items, paginationMetadata}; serialize gets (index_within_page, item)."""
        return {
            "items": [serialize(i, item) for i, item in enumerate(self.items)],
            "paginationMetadata": self.metadata(),
        }


def paginate(query, page_number: int, page_size: int) -> Page:
    """
    Count (before LIMIT) then fetch one page.

    page_number/page_size are expected already normalized by
    query_params.parse_page_params(). A page past the end comes back empty
    with the real totals.
    """
    total = query.order_by(None).count()
    offset = (page_number - 1) * page_size
    items = query.offset(offset).limit(page_size).all() if offset < total else []
    return Page(items=items, page_number=page_number, page_size=page_size, total_items=total)


def row_number(index: int, page_number: int, page_size: int, total: int, descending: bool = False) -> int:
    """
    Stable "No." column across pages.

    Ascending:  index + page_size * (page_number - 1) + 1
    Descending: total - (index + page_size * (page_number - 1))
    """
    offset = index + page_size * (page_number - 1)
    if descending:
        return total - offset
    return offset + 1


def sorts_descending_on(criteria: Sequence[tuple[str, str]], prop: str) -> bool:
    """True when any criterion sorts the given property descending."""
    prop = prop.lower()
    return any((p or "").strip().lower() == prop and is_descending(o) for p, o in criteria)
