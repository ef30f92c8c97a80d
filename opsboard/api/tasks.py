"""
Tasks API endpoints - to-dos scheduled on a date or recurring on a weekday
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, Field

from opsboard.database import get_db
from opsboard.models.user import User
from opsboard.models.day_of_week import DayOfWeek
from opsboard.models.task import Task
from opsboard.models.product import Product
from opsboard.models.order import Order
from opsboard.models.reference import Entity
from opsboard.models.document import Document
from opsboard.api.auth import get_current_user, require_admin
from opsboard.api.common import (
    MessageResponse, PageInfo, SortParams, cursor_limit, ensure_exists, fetch_cursor_page, id_filter,
    schedule_filter, sort_params, UtcDateTime,
)
from opsboard.api.documents import DocumentResponse
from opsboard.repositories import Repository
from opsboard.services.grouping import group_by_date
from opsboard.services.query import ListQuery, order_clauses, parse_id_filter, resolve_sort
from opsboard.services.recurrence import ScheduleFilter

router = APIRouter()

SORT_FIELDS = {
    "date": Task.date,
    "title": Task.title,
    "id": Task.id,
    "createdAt": Task.created_at,
}

TASK_OPTIONS = (
    selectinload(Task.product),
    selectinload(Task.order),
    selectinload(Task.entity),
    selectinload(Task.document),
)

LINKS = (
    ("product_id", Product),
    ("order_id", Order),
    ("entity_id", Entity),
    ("document_id", Document),
)


# --- Pydantic Schemas ---

class ProductBrief(BaseModel):
    id: int
    plu: int
    name: str

    class Config:
        from_attributes = True


class OrderBrief(BaseModel):
    id: int
    date: datetime
    comment: Optional[str]

    class Config:
        from_attributes = True


class EntityBrief(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class TaskResponse(BaseModel):
    id: int
    title: str
    comment: Optional[str]
    quantity: float
    date: Optional[datetime]
    day: Optional[DayOfWeek]
    product_id: Optional[int]
    order_id: Optional[int]
    entity_id: Optional[int]
    document_id: Optional[int]
    created_at: Optional[datetime]
    product: Optional[ProductBrief]
    order: Optional[OrderBrief]
    entity: Optional[EntityBrief]
    document: Optional[DocumentResponse]

    class Config:
        from_attributes = True


class TaskListResponse(BaseModel):
    records: List[TaskResponse]
    page_info: PageInfo


class TaskGroup(BaseModel):
    date_key: str
    heading: str
    records: List[TaskResponse]

    class Config:
        from_attributes = True


class TaskCreate(BaseModel):
    title: str = Field(min_length=1, max_length=300)
    comment: Optional[str] = None
    quantity: float = Field(gt=0)
    date: Optional[UtcDateTime] = None
    day: Optional[DayOfWeek] = None
    product_id: Optional[int] = Field(None, gt=0)
    order_id: Optional[int] = Field(None, gt=0)
    entity_id: Optional[int] = Field(None, gt=0)
    document_id: Optional[int] = Field(None, gt=0)


class TaskUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=300)
    comment: Optional[str] = None
    quantity: Optional[float] = Field(None, gt=0)
    date: Optional[UtcDateTime] = None
    day: Optional[DayOfWeek] = None
    product_id: Optional[int] = Field(None, gt=0)
    order_id: Optional[int] = Field(None, gt=0)
    entity_id: Optional[int] = Field(None, gt=0)
    document_id: Optional[int] = Field(None, gt=0)


# --- Helper ---

def _filters(
    search: Optional[str],
    entity_id: Optional[str],
    product_id: Optional[str],
    order_id: Optional[str],
    document_id: Optional[str],
    schedule: ScheduleFilter,
) -> ListQuery:
    return (
        ListQuery(Task)
        .search(search, ("title", "comment"))
        .equals(Task.entity_id, parse_id_filter(entity_id))
        .equals(Task.product_id, parse_id_filter(product_id))
        .equals(Task.order_id, parse_id_filter(order_id))
        .equals(Task.document_id, parse_id_filter(document_id))
        .schedule(schedule)
    )


async def _check_links(db: AsyncSession, values: dict) -> None:
    for field, model in LINKS:
        await ensure_exists(db, model, values.get(field), field)


# --- Endpoints ---

@router.get("/", response_model=TaskListResponse)
async def list_tasks(
    search: Optional[str] = None,
    cursor: Optional[str] = None,
    entity_id: Optional[str] = id_filter("entityId"),
    product_id: Optional[str] = id_filter("productId"),
    order_id: Optional[str] = id_filter("orderId"),
    document_id: Optional[str] = id_filter("documentId"),
    schedule: ScheduleFilter = Depends(schedule_filter),
    limit: int = Depends(cursor_limit),
    sort: SortParams = Depends(sort_params),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    List tasks, one cursor page at a time. Pass ``next_cursor`` back as
    ``cursor`` with the same sort to get the following page.
    """
    where = _filters(search, entity_id, product_id, order_id, document_id, schedule).condition
    sort_spec = resolve_sort(SORT_FIELDS, sort.sort_by, sort.order, default="date")

    records, page_info = await fetch_cursor_page(
        Repository(db, Task), where, sort_spec, cursor, limit, TASK_OPTIONS
    )
    return {"records": records, "page_info": page_info}


@router.get("/grouped", response_model=List[TaskGroup])
async def list_tasks_grouped(
    search: Optional[str] = None,
    entity_id: Optional[str] = id_filter("entityId"),
    product_id: Optional[str] = id_filter("productId"),
    order_id: Optional[str] = id_filter("orderId"),
    document_id: Optional[str] = id_filter("documentId"),
    schedule: ScheduleFilter = Depends(schedule_filter),
    sort: SortParams = Depends(sort_params),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Tasks grouped by calendar day; weekday tasks are listed under today"""
    where = _filters(search, entity_id, product_id, order_id, document_id, schedule).condition
    sort_spec = resolve_sort(SORT_FIELDS, sort.sort_by, sort.order, default="date")

    records = await Repository(db, Task).find(
        where=where,
        order_by=order_clauses(sort_spec, Task.id),
        options=TASK_OPTIONS,
    )
    return [TaskGroup.model_validate(group) for group in group_by_date(records)]


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Get a single task"""
    return await Repository(db, Task).get_or_404(task_id, TASK_OPTIONS)


@router.post("/", response_model=TaskResponse, status_code=201)
async def create_task(
    data: TaskCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Create a task"""
    values = data.model_dump()
    await _check_links(db, values)

    repo = Repository(db, Task)
    task = await repo.create(**values)
    await db.commit()
    return await repo.get_or_404(task.id, TASK_OPTIONS)


@router.put("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: int,
    data: TaskUpdate,
    db: AsyncSession = Depends(get_db),
    auth=Depends(require_admin)
):
    """Update a task; links, date and day may be cleared with an explicit null"""
    repo = Repository(db, Task)
    task = await repo.get_or_404(task_id, TASK_OPTIONS)

    updates = data.model_dump(exclude_unset=True)
    for key in ("title", "quantity"):
        if key in updates and updates[key] is None:
            del updates[key]
    await _check_links(db, updates)

    await repo.update(task, updates)
    await db.commit()
    return await repo.get_or_404(task_id, TASK_OPTIONS)


@router.delete("/{task_id}", response_model=MessageResponse)
async def delete_task(
    task_id: int,
    db: AsyncSession = Depends(get_db),
    auth=Depends(require_admin)
):
    """Delete a task"""
    repo = Repository(db, Task)
    task = await repo.get_or_404(task_id)
    await repo.delete(task)
    await db.commit()
    return {"message": "Task deleted successfully"}
