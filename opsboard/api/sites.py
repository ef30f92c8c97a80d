"""
Sites API endpoints - refill rounds, each site visited on a fixed weekday
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy import case
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from typing import List, Optional
from pydantic import BaseModel, Field

from opsboard.database import get_db
from opsboard.models.user import User
from opsboard.models.day_of_week import DayOfWeek
from opsboard.models.site import Site, Refill
from opsboard.api.auth import get_current_user
from opsboard.api.common import DAY_FILTER_PATTERN, MessageResponse
from opsboard.repositories import Repository
from opsboard.services.query import ListQuery
from opsboard.services.recurrence import ScheduleFilter

router = APIRouter()

SITE_OPTIONS = (
    selectinload(Site.refills).selectinload(Refill.product),
)

# Weekday order (MON first) rather than alphabetical
DAY_ORDER = case({day: index for index, day in enumerate(DayOfWeek)}, value=Site.day)


# --- Pydantic Schemas ---

class ProductBrief(BaseModel):
    id: int
    plu: int
    name: str

    class Config:
        from_attributes = True


class RefillResponse(BaseModel):
    id: int
    site_id: int
    product_id: int
    quantity: int
    product: Optional[ProductBrief]

    class Config:
        from_attributes = True


class SiteResponse(BaseModel):
    id: int
    site_name: str
    day: DayOfWeek
    supervisor: str
    refills: List[RefillResponse] = []

    class Config:
        from_attributes = True


class SiteListResponse(BaseModel):
    records: List[SiteResponse]


class SiteCreate(BaseModel):
    site_name: str = Field(min_length=1)
    day: DayOfWeek
    supervisor: str = Field(min_length=1)


class SiteUpdate(BaseModel):
    site_name: Optional[str] = Field(None, min_length=1)
    day: Optional[DayOfWeek] = None
    supervisor: Optional[str] = Field(None, min_length=1)


# --- Endpoints ---

@router.get("/", response_model=SiteListResponse)
async def list_sites(
    day: Optional[str] = Query(None, pattern=DAY_FILTER_PATTERN),
    supervisor: Optional[str] = None,
    search: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """All sites ordered by weekday, then name"""
    query = (
        ListQuery(Site)
        .schedule(ScheduleFilter(day=day))
        .search(search, ("site_name",))
    )
    if supervisor and supervisor.strip():
        query.where(Site.supervisor.icontains(supervisor.strip(), autoescape=True))

    records = await Repository(db, Site).find(
        where=query.condition,
        order_by=[DAY_ORDER, Site.site_name, Site.id],
        options=SITE_OPTIONS,
    )
    return {"records": records}


@router.get("/{site_id}", response_model=SiteResponse)
async def get_site(
    site_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Get a single site with its refills"""
    return await Repository(db, Site).get_or_404(site_id, SITE_OPTIONS)


@router.post("/", response_model=SiteResponse, status_code=201)
async def create_site(
    data: SiteCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Create a site"""
    repo = Repository(db, Site)
    site = await repo.create(**data.model_dump())
    await db.commit()
    return await repo.get_or_404(site.id, SITE_OPTIONS)


@router.put("/{site_id}", response_model=SiteResponse)
async def update_site(
    site_id: int,
    data: SiteUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Update a site"""
    repo = Repository(db, Site)
    site = await repo.get_or_404(site_id, SITE_OPTIONS)
    await repo.update(site, data.model_dump(exclude_none=True))
    await db.commit()
    return await repo.get_or_404(site_id, SITE_OPTIONS)


@router.delete("/{site_id}", response_model=MessageResponse)
async def delete_site(
    site_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Delete a site and its refills"""
    repo = Repository(db, Site)
    site = await repo.get_or_404(site_id, SITE_OPTIONS)
    await repo.delete(site)
    await db.commit()
    return {"message": "Site deleted successfully"}
