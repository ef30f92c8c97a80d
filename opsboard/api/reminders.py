"""
Reminders API endpoints
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, Field

from opsboard.database import get_db
from opsboard.models.user import User
from opsboard.models.reminder import Reminder
from opsboard.models.reference import Entity
from opsboard.models.document import Document
from opsboard.api.auth import get_current_user, require_admin
from opsboard.api.common import (
    MessageResponse, PageInfo, SortParams, UtcDateTime, cursor_limit, fetch_cursor_page, id_filter, load_related,
    sort_params,
)
from opsboard.api.documents import DocumentResponse
from opsboard.repositories import Repository
from opsboard.services.query import ListQuery, parse_id_filter, resolve_sort
from opsboard.services.recurrence import date_filter_clause

router = APIRouter()

SORT_FIELDS = {
    "date": Reminder.date,
    "title": Reminder.title,
    "id": Reminder.id,
}

REMINDER_OPTIONS = (
    selectinload(Reminder.entities),
    selectinload(Reminder.documents),
)


class EntityBrief(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class ReminderResponse(BaseModel):
    id: int
    title: str
    comment: Optional[str]
    date: datetime
    created_at: Optional[datetime]
    entities: List[EntityBrief] = []
    documents: List[DocumentResponse] = []

    class Config:
        from_attributes = True


class ReminderListResponse(BaseModel):
    records: List[ReminderResponse]
    page_info: PageInfo


class ReminderCreate(BaseModel):
    title: str = Field(min_length=1, max_length=300)
    comment: Optional[str] = None
    date: UtcDateTime
    entity_ids: List[int] = []
    document_ids: List[int] = []


class ReminderUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=300)
    comment: Optional[str] = None
    date: Optional[UtcDateTime] = None
    entity_ids: Optional[List[int]] = None
    document_ids: Optional[List[int]] = None


@router.get("/", response_model=ReminderListResponse)
async def list_reminders(
    search: Optional[str] = None,
    cursor: Optional[str] = None,
    entity_id: Optional[str] = id_filter("entityId"),
    document_id: Optional[str] = id_filter("documentId"),
    date_from: Optional[datetime] = Query(None, alias="date"),
    limit: int = Depends(cursor_limit),
    sort: SortParams = Depends(sort_params),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """List reminders, one cursor page at a time"""
    where = (
        ListQuery(Reminder)
        .search(search, ("title", "comment"))
        .has_related(Reminder.entities, parse_id_filter(entity_id))
        .has_related(Reminder.documents, parse_id_filter(document_id))
        .where(date_filter_clause(Reminder.date, date_from))
        .condition
    )
    sort_spec = resolve_sort(SORT_FIELDS, sort.sort_by, sort.order, default="date")

    records, page_info = await fetch_cursor_page(
        Repository(db, Reminder), where, sort_spec, cursor, limit, REMINDER_OPTIONS
    )
    return {"records": records, "page_info": page_info}


@router.get("/{reminder_id}", response_model=ReminderResponse)
async def get_reminder(
    reminder_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await Repository(db, Reminder).get_or_404(reminder_id, REMINDER_OPTIONS)


@router.post("/", response_model=ReminderResponse, status_code=201)
async def create_reminder(
    data: ReminderCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Create a reminder linked to entities and documents"""
    reminder = Reminder(
        **data.model_dump(exclude={"entity_ids", "document_ids"}),
        entities=await load_related(db, Entity, data.entity_ids, "entity_ids"),
        documents=await load_related(db, Document, data.document_ids, "document_ids"),
    )
    db.add(reminder)
    await db.commit()
    return await Repository(db, Reminder).get_or_404(reminder.id, REMINDER_OPTIONS)


@router.put("/{reminder_id}", response_model=ReminderResponse)
async def update_reminder(
    reminder_id: int,
    data: ReminderUpdate,
    db: AsyncSession = Depends(get_db),
    auth=Depends(require_admin)
):
    """Update a reminder; id lists replace the linked entities/documents"""
    repo = Repository(db, Reminder)
    reminder = await repo.get_or_404(reminder_id, REMINDER_OPTIONS)

    updates = data.model_dump(exclude_none=True, exclude={"entity_ids", "document_ids"})
    for key, value in updates.items():
        setattr(reminder, key, value)

    if data.entity_ids is not None:
        reminder.entities = await load_related(db, Entity, data.entity_ids, "entity_ids")
    if data.document_ids is not None:
        reminder.documents = await load_related(db, Document, data.document_ids, "document_ids")

    await db.commit()
    return await repo.get_or_404(reminder_id, REMINDER_OPTIONS)


@router.delete("/{reminder_id}", response_model=MessageResponse)
async def delete_reminder(
    reminder_id: int,
    db: AsyncSession = Depends(get_db),
    auth=Depends(require_admin)
):
    """Delete a reminder"""
    repo = Repository(db, Reminder)
    reminder = await repo.get_or_404(reminder_id, REMINDER_OPTIONS)
    await repo.delete(reminder)
    await db.commit()
    return {"message": "Reminder deleted successfully"}
