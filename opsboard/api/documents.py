"""
Documents API - titled bundles of uploaded files
"""
import logging
from datetime import datetime, timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from pydantic import BaseModel, Field, field_validator
from sqlalchemy import and_
from sqlalchemy.ext.asyncio import AsyncSession

from opsboard.api.auth import get_current_user, require_admin
from opsboard.api.common import MessageResponse, PageMeta, SortParams, pagination, sort_params
from opsboard.config import get_settings
from opsboard.database import get_db
from opsboard.models.document import Document
from opsboard.models.user import User
from opsboard.repositories import Repository
from opsboard.services.query import ListQuery, PageParams, order_clauses, page_metadata, resolve_sort
from opsboard.services.storage import FileStorage, StorageError, get_storage
from opsboard.utils.helpers import start_of_day

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter()

STORAGE_FOLDER = "documents"

SORT_FIELDS = {
    "title": Document.title,
    "importedOn": Document.imported_on,
}


# --- Schemas ---

class DocumentResponse(BaseModel):
    id: int
    title: str
    links: List[str]
    imported_on: Optional[datetime]

    class Config:
        from_attributes = True


class DocumentListResponse(BaseModel):
    records: List[DocumentResponse]
    pagination: PageMeta


class DocumentUpdate(BaseModel):
    title: str = Field(min_length=1, max_length=255)

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Title is required and cannot be empty")
        return v


# --- Helper ---

def _discard_files(storage: FileStorage, urls: List[str]) -> None:
    """Remove files stored for a document that was never saved"""
    for url in urls:
        try:
            storage.delete(url)
        except (StorageError, OSError) as e:
            logger.warning(f"Could not remove orphaned file {url}: {e}")


# --- Endpoints ---

@router.get("/", response_model=DocumentListResponse)
async def list_documents(
    search: Optional[str] = None,
    imported: Optional[datetime] = Query(None, alias="date"),
    page: PageParams = Depends(pagination),
    sort: SortParams = Depends(sort_params),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """List documents; ``date`` restricts to files imported on that calendar day"""
    query = ListQuery(Document).search(search, ("title",))
    if imported is not None:
        day_start = start_of_day(imported)
        query.where(and_(
            Document.imported_on >= day_start,
            Document.imported_on < day_start + timedelta(days=1),
        ))
    sort_spec = resolve_sort(SORT_FIELDS, sort.sort_by, sort.order, default="importedOn")

    repo = Repository(db, Document)
    records = await repo.find(
        where=query.condition,
        order_by=order_clauses(sort_spec, Document.id),
        skip=page.skip,
        take=page.limit,
    )
    return {"records": records, "pagination": page_metadata(await repo.count(query.condition), page)}


@router.get("/{document_id}", response_model=DocumentResponse)
async def get_document(
    document_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await Repository(db, Document).get_or_404(document_id)


@router.post("/", response_model=DocumentResponse, status_code=201)
async def create_document(
    title: str = Form(..., min_length=1, max_length=255),
    files: List[UploadFile] = File(...),
    db: AsyncSession = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
    current_user: User = Depends(get_current_user)
):
    """Upload one or more files and store their links under a title"""
    if not files:
        raise HTTPException(status_code=400, detail="At least one file is required")
    if len(files) > settings.MAX_FILES_PER_DOCUMENT:
        raise HTTPException(
            status_code=400,
            detail=f"Too many files. Maximum: {settings.MAX_FILES_PER_DOCUMENT}",
        )

    links = []
    try:
        for upload in files:
            content = await upload.read()
            if len(content) > settings.MAX_UPLOAD_SIZE:
                raise HTTPException(
                    413, f"File too large. Maximum size: {settings.MAX_UPLOAD_SIZE // (1024 * 1024)}MB"
                )
            links.append(storage.upload(content, upload.filename, STORAGE_FOLDER)["url"])

        document = await Repository(db, Document).create(title=title.strip(), links=links)
        await db.commit()
    except Exception:
        _discard_files(storage, links)
        raise

    logger.info(f"User {current_user.id} created document #{document.id} with {len(links)} file(s)")
    return document


@router.put("/{document_id}", response_model=DocumentResponse)
async def update_document(
    document_id: int,
    data: DocumentUpdate,
    db: AsyncSession = Depends(get_db),
    auth=Depends(require_admin)
):
    """Rename a document (files are immutable)"""
    repo = Repository(db, Document)
    document = await repo.get_or_404(document_id)
    await repo.update(document, {"title": data.title})
    await db.commit()
    return document


@router.delete("/{document_id}", response_model=MessageResponse)
async def delete_document(
    document_id: int,
    db: AsyncSession = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
    auth=Depends(require_admin)
):
    """Delete a document and its stored files"""
    repo = Repository(db, Document)
    document = await repo.get_or_404(document_id)

    for url in document.links or []:
        try:
            storage.delete(url)
        except (StorageError, OSError) as e:
            logger.warning(f"Could not delete file {url} of document #{document.id}: {e}")

    await repo.delete(document)
    await db.commit()
    return {"message": "Document deleted successfully"}
