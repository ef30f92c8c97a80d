"""
Suppliers API endpoints
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, Field

from opsboard.database import get_db
from opsboard.models.user import User
from opsboard.models.supplier import Supplier
from opsboard.api.auth import get_current_user, require_admin
from opsboard.api.common import MessageResponse, PageMeta, SortParams, pagination, sort_params
from opsboard.repositories import Repository
from opsboard.services.query import ListQuery, PageParams, order_clauses, page_metadata, resolve_sort

router = APIRouter()

SORT_FIELDS = {
    "name": Supplier.name,
    "email": Supplier.email,
    "phone": Supplier.phone,
    "createdAt": Supplier.created_at,
}


class SupplierResponse(BaseModel):
    id: int
    name: str
    email: Optional[str]
    phone: Optional[str]
    contact_method: Optional[str]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


class SupplierListResponse(BaseModel):
    records: List[SupplierResponse]
    pagination: PageMeta


class SupplierCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    contact_method: Optional[str] = Field(None, max_length=100)


class SupplierUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    contact_method: Optional[str] = Field(None, max_length=100)


@router.get("/", response_model=SupplierListResponse)
async def list_suppliers(
    search: Optional[str] = None,
    page: PageParams = Depends(pagination),
    sort: SortParams = Depends(sort_params),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """List suppliers"""
    where = ListQuery(Supplier).search(search, ("name", "email", "phone", "contact_method")).condition
    sort_spec = resolve_sort(SORT_FIELDS, sort.sort_by, sort.order, default="name")

    repo = Repository(db, Supplier)
    records = await repo.find(
        where=where,
        order_by=order_clauses(sort_spec, Supplier.id),
        skip=page.skip,
        take=page.limit,
    )
    return {"records": records, "pagination": page_metadata(await repo.count(where), page)}


@router.get("/{supplier_id}", response_model=SupplierResponse)
async def get_supplier(
    supplier_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Get a single supplier"""
    return await Repository(db, Supplier).get_or_404(supplier_id)


@router.post("/", response_model=SupplierResponse, status_code=201)
async def create_supplier(
    data: SupplierCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Create a new supplier"""
    supplier = await Repository(db, Supplier).create(**data.model_dump(exclude_none=True))
    await db.commit()
    return supplier


@router.put("/{supplier_id}", response_model=SupplierResponse)
async def update_supplier(
    supplier_id: int,
    data: SupplierUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Update a supplier"""
    repo = Repository(db, Supplier)
    supplier = await repo.get_or_404(supplier_id)
    await repo.update(supplier, data.model_dump(exclude_none=True))
    await db.commit()
    return supplier


@router.delete("/{supplier_id}", response_model=MessageResponse)
async def delete_supplier(
    supplier_id: int,
    db: AsyncSession = Depends(get_db),
    auth=Depends(require_admin)
):
    """Delete a supplier"""
    repo = Repository(db, Supplier)
    supplier = await repo.get_or_404(supplier_id)
    await repo.delete(supplier)
    await db.commit()
    return {"message": "Supplier deleted successfully"}
