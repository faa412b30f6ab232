# Overview: Normalizes raw list-endpoint query parameters (sort, filters, paging).

"""
List Query Parameter Parsing

Every list endpoint accepts the same loose query-string shape:

    ?searchTerm=lap&sortBy=name:asc,code:desc&assetState=Available&pageNumber=2&pageSize=10

LENIENCY POLICY:
- unknown sort directions become "asc"
- unknown enum / category tokens are dropped, not rejected
- "All" in any multi-value filter means "no constraint"
- non-numeric paging values fall back to defaults; oversized pages are capped

The only hard failure is a non-empty date filter that cannot be parsed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from flask import current_app, has_app_context

from ..time_utils import parse_date
from ..validation import ValidationError


ALL_SENTINEL = "all"
DEFAULT_PAGE_SIZE = 5
MAX_PAGE_SIZE = 50

INVALID_FILTER_DATE = "Invalid date format for filtering"


@dataclass
class ListParams:
    """Normalized list request. Entity-specific filters stay empty when unused."""
    search_term: str | None = None
    sort_criteria: list[tuple[str, str]] = field(default_factory=list)
    page_number: int = 1
    page_size: int = DEFAULT_PAGE_SIZE

    states: set = field(default_factory=set)
    categories: set[str] = field(default_factory=set)
    filter_date: date | None = None
    user_type: object | None = None


def _config_int(key: str, fallback: int) -> int:
    if has_app_context():
        return int(current_app.config.get(key, fallback))
    return fallback


def parse_sort_criteria(raw: str | None) -> list[tuple[str, str]]:
    """
    "name:asc, code:DESC,state" -> [("name", "asc"), ("code", "desc"), ("state", "asc")]

    Property names keep their case (sorters match case-insensitively).
    Segments with an empty property are skipped.
    """
    if not raw:
        return []

    criteria: list[tuple[str, str]] = []
    for segment in str(raw).split(","):
        parts = segment.split(":")
        prop = parts[0].strip()
        if not prop:
            continue
        order = parts[1].strip().lower() if len(parts) > 1 and parts[1].strip() else "asc"
        criteria.append((prop, order))
    return criteria


def is_descending(order: str) -> bool:
    """Anything other than "desc" sorts ascending."""
    return (order or "").strip().lower() == "desc"


def _split_tokens(raw_values) -> list[str]:
    """Accepts None, a comma separated string, or a list of such strings."""
    if raw_values is None:
        return []
    if isinstance(raw_values, str):
        raw_values = [raw_values]
    tokens: list[str] = []
    for value in raw_values:
        if value is None:
            continue
        tokens.extend(t.strip() for t in str(value).split(",") if t.strip())
    return tokens


def parse_enum_set(enum_cls, raw_values) -> set:
    """
    Case-insensitive match of each token against the enum.

    An "All" token, or no tokens at all, yields an empty set (no constraint).
    Unrecognized tokens are dropped.
    """
    tokens = _split_tokens(raw_values)
    if any(t.lower() == ALL_SENTINEL for t in tokens):
        return set()

    members = set()
    for token in tokens:
        member = enum_cls.parse(token)
        if member is not None:
            members.add(member)
    return members


def parse_name_set(raw_values) -> set[str]:
    """Lower-cased names (e.g. category names). "All" means no constraint."""
    tokens = _split_tokens(raw_values)
    if any(t.lower() == ALL_SENTINEL for t in tokens):
        return set()
    return {t.lower() for t in tokens}


def parse_filter_date(raw) -> date | None:
    """
    Permissive date filter. Empty -> None.

    Raises ValidationError("Invalid date format for filtering") on garbage.
    """
    if raw is None or not str(raw).strip():
        return None
    try:
        return parse_date(raw)
    except ValueError:
        raise ValidationError(INVALID_FILTER_DATE)


def _to_int(raw, default: int) -> int:
    if raw is None:
        return default
    if isinstance(raw, bool):
        return default
    if isinstance(raw, int):
        return raw
    try:
        return int(str(raw).strip())
    except ValueError:
        return default


def parse_page_params(page_number, page_size) -> tuple[int, int]:
    """
    (page, size) with page >= 1 and 1 <= size <= MAX_PAGE_SIZE.

    Sizes above the max are capped, never rejected.
    """
    default_size = _config_int("DEFAULT_PAGE_SIZE", DEFAULT_PAGE_SIZE)
    max_size = _config_int("MAX_PAGE_SIZE", MAX_PAGE_SIZE)

    page = _to_int(page_number, 1)
    if page < 1:
        page = 1

    size = _to_int(page_size, default_size)
    if size < 1:
        size = default_size
    if size > max_size:
        size = max_size

    return page, size


def read_multi(args, *keys: str) -> list[str]:
    """Collect repeated and comma separated values across alias keys."""
    values: list[str] = []
    for key in keys:
        if hasattr(args, "getlist"):
            values.extend(args.getlist(key))
        elif args.get(key) is not None:
            raw = args.get(key)
            values.extend(raw if isinstance(raw, list) else [raw])
    return _split_tokens(values)


def base_params(args) -> ListParams:
    """searchTerm, sortBy, pageNumber, pageSize from a request.args-like mapping."""
    page, size = parse_page_params(args.get("pageNumber"), args.get("pageSize"))
    search = args.get("searchTerm")
    return ListParams(
        search_term=search.strip() if search and search.strip() else None,
        sort_criteria=parse_sort_criteria(args.get("sortBy")),
        page_number=page,
        page_size=size,
    )
