"""
Shared request parameters, response envelopes and reference checks for the
entity routers.
"""
from datetime import datetime
from typing import Annotated, Iterable, List, Optional, Sequence, Tuple, Type

from fastapi import HTTPException, Query
from pydantic import AfterValidator, BaseModel
from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from opsboard.config import get_settings
from opsboard.repositories import Repository
from opsboard.services.query import (
    PageParams, SortSpec, cursor_page, decode_cursor, keyset_clause, order_clauses, page_params,
)
from opsboard.services.recurrence import ScheduleFilter
from opsboard.utils.helpers import to_naive_utc

settings = get_settings()

ID_FILTER_PATTERN = r"^(ALL|\d+)$"
DAY_FILTER_PATTERN = r"^(MON|TUE|WED|THU|FRI|SAT|SUN|ALL)$"
ORDER_PATTERN = r"^(asc|desc)$"

# Timestamps are stored as naive UTC; aware input is converted on the way in
UtcDateTime = Annotated[datetime, AfterValidator(to_naive_utc)]


# --- Response envelopes ---

class PageMeta(BaseModel):
    total_records: int
    current_page: int
    total_pages: int
    limit: int
    next_page: Optional[int]
    prev_page: Optional[int]


class PageInfo(BaseModel):
    cursor: Optional[str]
    next_cursor: Optional[str]
    limit: int
    has_more: bool


class MessageResponse(BaseModel):
    message: str


# --- Query parameter dependencies ---

def id_filter(alias: str):
    """Foreign-key filter: an id or 'ALL'"""
    return Query(None, alias=alias, pattern=ID_FILTER_PATTERN)


def pagination(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_LIMIT, ge=1, le=settings.MAX_PAGE_LIMIT),
) -> PageParams:
    return page_params(page, limit, settings.DEFAULT_PAGE_LIMIT, settings.MAX_PAGE_LIMIT)


def schedule_filter(
    day: Optional[str] = Query(None, pattern=DAY_FILTER_PATTERN),
    date_from: Optional[datetime] = Query(None, alias="date"),
) -> ScheduleFilter:
    return ScheduleFilter(day=day, date=date_from)


class SortParams(BaseModel):
    sort_by: Optional[str] = None
    order: Optional[str] = None


def sort_params(
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    order: Optional[str] = Query(None, pattern=ORDER_PATTERN),
) -> SortParams:
    return SortParams(sort_by=sort_by, order=order)


# --- Reference checks ---

async def ensure_exists(db: AsyncSession, model: Type, entity_id: Optional[int], field: str) -> None:
    """400 when a referenced row is missing (None means no reference)"""
    if entity_id is None:
        return
    if await db.get(model, entity_id) is None:
        raise HTTPException(status_code=400, detail=f"Invalid reference: {field}")


async def load_related(db: AsyncSession, model: Type, ids: Optional[Iterable[int]], field: str) -> List:
    """Fetch rows for a many-to-many id list, rejecting unknown ids"""
    wanted = list(dict.fromkeys(ids or []))
    if not wanted:
        return []

    result = await db.execute(select(model).where(model.id.in_(wanted)))
    rows = {row.id: row for row in result.scalars().all()}
    missing = [i for i in wanted if i not in rows]
    if missing:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid reference: {field} ({', '.join(str(i) for i in missing)})",
        )
    return [rows[i] for i in wanted]


# --- Cursor pages ---

def cursor_limit(limit: int = Query(settings.DEFAULT_CURSOR_LIMIT, ge=1, le=settings.MAX_PAGE_LIMIT)) -> int:
    return limit


async def fetch_cursor_page(
    repo: Repository,
    where,
    sort: SortSpec,
    cursor: Optional[str],
    limit: int,
    options: Sequence = (),
) -> Tuple[List, dict]:
    """One keyset page: rows after the cursor, in sort order, plus page info"""
    if cursor:
        value, last_id = decode_cursor(cursor, sort)
        where = and_(where, keyset_clause(sort, repo.model.id, value, last_id))

    rows = await repo.find(
        where=where,
        order_by=order_clauses(sort, repo.model.id),
        take=limit + 1,
        options=options,
    )
    return cursor_page(rows, limit, sort, cursor)
