"""
Listing query composition: raw query-string parameters -> SQL filter + paging.

Filters are validated, sort and paging inputs are clamped (never rejected).
"""

import math
from dataclasses import dataclass
from typing import Mapping, Optional

from data.errors import ValidationFailure
from utils import clamp, is_blank, parse_int

CONTENT_TYPES = ("video", "image")
DIFFICULTIES = ("easy", "medium", "hard")

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 50
# keeps (page - 1) * limit inside SQLite's signed 64-bit INTEGER
MAX_PAGE = (2**63 - 1) // MAX_LIMIT

# Wire sort field -> column. Only these names ever reach ORDER BY.
SORT_COLUMNS = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "title": "title",
    "views": "view_count",
    "likes": "likes",
}
DEFAULT_SORT_BY = "createdAt"
DEFAULT_SORT_ORDER = "desc"

# Wire filter name -> (column, match kind)
_FILTERS = (
    ("bookTitle", "book_title", "contains"),
    ("chapter", "chapter", "contains"),
    ("type", "content_type", "exact"),
    ("subject", "subject", "contains"),
    ("grade", "grade", "exact"),
    ("difficulty", "difficulty", "exact"),
)
FILTER_KEYS = tuple(name for name, _, _ in _FILTERS) + ("search",)

_SEARCH_COLUMNS = ("title", "description", "book_title", "chapter")


@dataclass
class ListParams:
    """Validated listing parameters. Absent filters are None."""
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT
    sort_by: str = DEFAULT_SORT_BY
    sort_order: str = DEFAULT_SORT_ORDER
    bookTitle: Optional[str] = None
    chapter: Optional[str] = None
    type: Optional[str] = None
    subject: Optional[str] = None
    grade: Optional[str] = None
    difficulty: Optional[str] = None
    search: Optional[str] = None

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit

    @property
    def order_by(self) -> str:
        direction = "ASC" if self.sort_order == "asc" else "DESC"
        # rowid keeps pages stable when the sort column ties
        return f"{SORT_COLUMNS[self.sort_by]} {direction}, rowid {direction}"

    def filters(self) -> dict:
        """The applied filters as echoed back to clients."""
        return {key: getattr(self, key) for key in FILTER_KEYS}


def _first(value):
    """Query strings may repeat a key; the first occurrence wins."""
    if isinstance(value, (list, tuple)):
        return value[0] if value else None
    return value


def coerce_page(raw) -> int:
    page = parse_int(raw)
    if page is None or page < 1:
        return DEFAULT_PAGE
    return min(page, MAX_PAGE)


def coerce_limit(raw) -> int:
    if is_blank(raw):
        return DEFAULT_LIMIT
    limit = parse_int(raw)
    if limit is None:
        return 1
    return clamp(limit, 1, MAX_LIMIT)


def parse_list_params(raw: Mapping) -> ListParams:
    """Build ListParams from raw string parameters.

    Unknown keys are ignored and empty strings count as absent. Only the enum
    filters (type, difficulty) can reject a request.
    """
    get = lambda key: _first(raw.get(key))  # noqa: E731

    params = ListParams(
        page=coerce_page(get("page")),
        limit=coerce_limit(get("limit")),
    )

    sort_by = get("sortBy")
    if sort_by in SORT_COLUMNS:
        params.sort_by = sort_by
    sort_order = get("sortOrder")
    if sort_order in ("asc", "desc"):
        params.sort_order = sort_order

    errors = []
    for name in FILTER_KEYS:
        value = get(name)
        if is_blank(value):
            continue
        value = str(value).strip()
        if name == "type" and value not in CONTENT_TYPES:
            errors.append({"field": "type", "message": 'Type must be either "video" or "image"'})
            continue
        if name == "difficulty" and value not in DIFFICULTIES:
            errors.append({"field": "difficulty", "message": "Difficulty must be easy, medium, or hard"})
            continue
        setattr(params, name, value)

    if errors:
        raise ValidationFailure("Validation failed", errors=errors)
    return params


def build_filter(params: ListParams) -> tuple[str, list]:
    """Compose the WHERE clause for a listing.

    Every clause is ANDed; the search term is one OR-group across the text
    columns and tag membership. Matching is literal, case-insensitive
    substring via the icontains() SQL function registered by the store.
    """
    clauses = ["is_active = 1"]
    args: list = []

    for name, column, kind in _FILTERS:
        value = getattr(params, name)
        if value is None:
            continue
        if kind == "exact":
            clauses.append(f"{column} = ?")
        else:
            clauses.append(f"icontains({column}, ?)")
        args.append(value)

    if params.search is not None:
        group = [f"icontains({column}, ?)" for column in _SEARCH_COLUMNS]
        group.append("EXISTS (SELECT 1 FROM json_each(entries.tags) WHERE icontains(json_each.value, ?))")
        clauses.append("(" + " OR ".join(group) + ")")
        args.extend([params.search] * len(group))

    return " AND ".join(clauses), args


def build_pagination(page: int, limit: int, total: int) -> dict:
    """Derive page metadata from the total match count."""
    total_pages = math.ceil(total / limit) if limit else 0
    has_next = page < total_pages
    has_prev = page > 1
    return {
        "currentPage": page,
        "totalPages": total_pages,
        "totalCount": total,
        "limit": limit,
        "hasNextPage": has_next,
        "hasPrevPage": has_prev,
        "nextPage": page + 1 if has_next else None,
        "prevPage": page - 1 if has_prev else None,
    }
