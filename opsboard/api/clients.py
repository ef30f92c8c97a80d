"""
Clients API endpoints
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, Field

from opsboard.database import get_db
from opsboard.models.user import User
from opsboard.models.client import Client
from opsboard.api.auth import get_current_user, require_admin
from opsboard.api.common import MessageResponse, PageMeta, SortParams, pagination, sort_params
from opsboard.repositories import Repository
from opsboard.services.query import ListQuery, PageParams, order_clauses, page_metadata, resolve_sort

router = APIRouter()

SORT_FIELDS = {
    "firstName": Client.first_name,
    "surname": Client.surname,
    "email": Client.email,
    "createdAt": Client.created_at,
}
SEARCH_FIELDS = ("first_name", "surname", "email", "phone")


# --- Pydantic Schemas ---

class ClientResponse(BaseModel):
    id: int
    first_name: str
    surname: Optional[str]
    address: Optional[str]
    email: Optional[str]
    phone: Optional[str]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


class ClientListResponse(BaseModel):
    records: List[ClientResponse]
    pagination: PageMeta


class ClientCreate(BaseModel):
    first_name: str = Field(min_length=1, max_length=250)
    surname: Optional[str] = Field(None, max_length=250)
    address: Optional[str] = Field(None, max_length=400)
    email: Optional[str] = Field(None, max_length=250, pattern=r"^$|^[^@\s]+@[^@\s]+\.[^@\s]+$")
    phone: Optional[str] = Field(None, max_length=250)


class ClientUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=250)
    surname: Optional[str] = Field(None, max_length=250)
    address: Optional[str] = Field(None, max_length=400)
    email: Optional[str] = Field(None, max_length=250, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    phone: Optional[str] = Field(None, max_length=250)


# --- Helper ---

async def _ensure_email_free(db: AsyncSession, email: Optional[str], exclude_id: Optional[int] = None):
    if not email:
        return
    query = select(Client.id).where(Client.email == email)
    if exclude_id is not None:
        query = query.where(Client.id != exclude_id)
    result = await db.execute(query)
    if result.first() is not None:
        raise HTTPException(status_code=409, detail="Client with this email already exists")


# --- Endpoints ---

@router.get("/", response_model=ClientListResponse)
async def list_clients(
    search: Optional[str] = None,
    page: PageParams = Depends(pagination),
    sort: SortParams = Depends(sort_params),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """List clients (paginated, searchable by name, e-mail and phone)"""
    where = ListQuery(Client).search(search, SEARCH_FIELDS).condition
    sort_spec = resolve_sort(SORT_FIELDS, sort.sort_by, sort.order, default="firstName")

    repo = Repository(db, Client)
    records = await repo.find(
        where=where,
        order_by=order_clauses(sort_spec, Client.id),
        skip=page.skip,
        take=page.limit,
    )
    total = await repo.count(where)
    return {"records": records, "pagination": page_metadata(total, page)}


@router.get("/{client_id}", response_model=ClientResponse)
async def get_client(
    client_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Get a single client"""
    return await Repository(db, Client).get_or_404(client_id)


@router.post("/", response_model=ClientResponse, status_code=201)
async def create_client(
    data: ClientCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Create a new client"""
    payload = data.model_dump()
    payload["email"] = payload["email"] or None
    await _ensure_email_free(db, payload["email"])

    client = await Repository(db, Client).create(**payload)
    await db.commit()
    return client


@router.put("/{client_id}", response_model=ClientResponse)
async def update_client(
    client_id: int,
    data: ClientUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Update a client"""
    repo = Repository(db, Client)
    client = await repo.get_or_404(client_id)

    updates = data.model_dump(exclude_none=True)
    if "email" in updates and updates["email"] != client.email:
        await _ensure_email_free(db, updates["email"], exclude_id=client.id)

    await repo.update(client, updates)
    await db.commit()
    return client


@router.delete("/{client_id}", response_model=MessageResponse)
async def delete_client(
    client_id: int,
    db: AsyncSession = Depends(get_db),
    auth=Depends(require_admin)
):
    """Delete a client"""
    repo = Repository(db, Client)
    client = await repo.get_or_404(client_id)
    await repo.delete(client)
    await db.commit()
    return {"message": "Client deleted successfully"}
