"""
List query composition - search, foreign-key, day/date filters, sorting and
pagination shared by every list endpoint.

Composing zero filters yields "match all". Nothing in here raises on
unknown sort fields; those fall back to the entity's default sort.
"""
import base64
import binascii
import json
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import and_, or_, true

from opsboard.services.recurrence import ALL, ScheduleFilter, schedule_clauses


class InvalidCursor(ValueError):
    """Raised when a pagination cursor cannot be decoded"""


# --- Filters ---

def parse_id_filter(value: Optional[str]) -> Optional[int]:
    """'ALL', empty and missing all mean "no filter"; anything else is an id"""
    if value is None or value == "" or value == ALL:
        return None
    return int(value)


class ListQuery:
    """Accumulates AND-ed predicates for one entity"""

    def __init__(self, model):
        self.model = model
        self.clauses: list = []

    def where(self, clause) -> "ListQuery":
        if clause is not None:
            self.clauses.append(clause)
        return self

    def search(self, term: Optional[str], fields: Sequence[str], numeric_fields: Sequence[str] = ()) -> "ListQuery":
        """Case-insensitive substring match on any field; numeric terms also match ids exactly"""
        term = (term or "").strip()
        if not term or not (fields or numeric_fields):
            return self

        conditions = [getattr(self.model, f).icontains(term, autoescape=True) for f in fields]
        if term.isdigit():
            conditions.extend(getattr(self.model, f) == int(term) for f in numeric_fields)
        return self.where(or_(*conditions))

    def equals(self, column, value: Any) -> "ListQuery":
        """Exact match, skipped when the value is missing or the ALL sentinel"""
        if value is None or value == ALL:
            return self
        return self.where(column == value)

    def has_related(self, relationship, related_id: Optional[int]) -> "ListQuery":
        """Many-to-many / one-to-many membership (e.g. order has service X)"""
        if related_id is None:
            return self
        target = relationship.property.mapper.class_
        return self.where(relationship.any(target.id == related_id))

    def schedule(self, schedule: ScheduleFilter) -> "ListQuery":
        for clause in schedule_clauses(self.model, schedule):
            self.where(clause)
        return self

    @property
    def condition(self):
        if not self.clauses:
            return true()
        return and_(*self.clauses)


# --- Sorting ---

@dataclass(frozen=True)
class SortSpec:
    field: str
    expression: Any
    descending: bool = False


def resolve_sort(
    allowed: Dict[str, Any],
    sort_by: Optional[str],
    order: Optional[str],
    default: str,
) -> SortSpec:
    """Pick the sort expression from an allow-list, ignoring unknown fields"""
    field = sort_by if sort_by in allowed else default
    return SortSpec(field=field, expression=allowed[field], descending=order == "desc")


def order_clauses(sort: SortSpec, id_column) -> list:
    """Primary sort (nulls treated as smallest) with id as tie-breaker"""
    if sort.descending:
        primary = sort.expression.desc().nulls_last()
    else:
        primary = sort.expression.asc().nulls_first()
    return [primary, id_column.asc()]


# --- Offset pagination ---

@dataclass(frozen=True)
class PageParams:
    page: int
    limit: int

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


def page_params(page: Optional[int], limit: Optional[int], default_limit: int = 10, max_limit: int = 100) -> PageParams:
    page = max(page or 1, 1)
    limit = min(limit or default_limit, max_limit)
    return PageParams(page=page, limit=limit)


def page_metadata(total: int, params: PageParams) -> dict:
    return {
        "total_records": total,
        "current_page": params.page,
        "total_pages": math.ceil(total / params.limit) if params.limit else 0,
        "limit": params.limit,
        "next_page": params.page + 1 if params.page * params.limit < total else None,
        "prev_page": params.page - 1 if params.page > 1 else None,
    }


# --- Cursor pagination ---

def _tag(value: Any) -> Any:
    if isinstance(value, datetime):
        return {"dt": value.isoformat()}
    return value


def _untag(value: Any) -> Any:
    if isinstance(value, dict) and "dt" in value:
        return datetime.fromisoformat(value["dt"])
    return value


def encode_cursor(sort: SortSpec, value: Any, last_id: int) -> str:
    payload = {"k": sort.field, "d": sort.descending, "v": _tag(value), "id": last_id}
    raw = json.dumps(payload, separators=(",", ":")).encode()
    return base64.urlsafe_b64encode(raw).decode()


def decode_cursor(cursor: str, sort: SortSpec) -> Tuple[Any, int]:
    """Returns (last sort value, last id); the cursor must match the current sort"""
    try:
        payload = json.loads(base64.urlsafe_b64decode(cursor.encode()))
        value, last_id = _untag(payload["v"]), int(payload["id"])
        field, descending = payload["k"], bool(payload["d"])
    except (binascii.Error, ValueError, KeyError, TypeError) as exc:
        raise InvalidCursor("Malformed cursor") from exc

    if field != sort.field or descending != sort.descending:
        raise InvalidCursor("Cursor does not match the requested sort order")
    return value, last_id


def keyset_clause(sort: SortSpec, id_column, value: Any, last_id: int):
    """Rows strictly after (value, last_id) in the order produced by order_clauses()"""
    column = sort.expression
    if not sort.descending:
        if value is None:
            return or_(and_(column.is_(None), id_column > last_id), column.is_not(None))
        return or_(column > value, and_(column == value, id_column > last_id))

    if value is None:
        return and_(column.is_(None), id_column > last_id)
    return or_(column < value, and_(column == value, id_column > last_id), column.is_(None))


def cursor_page(rows: List[Any], limit: int, sort: SortSpec, cursor: Optional[str]) -> Tuple[List[Any], dict]:
    """Trim a limit+1 fetch to one page and build its page info"""
    has_more = len(rows) > limit
    records = rows[:limit]

    next_cursor = None
    if has_more and records:
        last = records[-1]
        # cursor sorts are plain mapped columns, so .key is the attribute name
        next_cursor = encode_cursor(sort, getattr(last, sort.expression.key), last.id)

    return records, {
        "cursor": cursor,
        "next_cursor": next_cursor,
        "limit": limit,
        "has_more": has_more,
    }
