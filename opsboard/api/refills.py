"""
Refills API endpoints - product quantities restocked at a site
"""
import logging
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from typing import List
from pydantic import BaseModel, Field

from opsboard.database import get_db
from opsboard.models.user import User
from opsboard.models.site import Site, Refill
from opsboard.models.product import Product
from opsboard.api.auth import get_current_user
from opsboard.api.common import MessageResponse, ensure_exists
from opsboard.api.sites import RefillResponse
from opsboard.repositories import Repository

logger = logging.getLogger(__name__)

router = APIRouter()

REFILL_OPTIONS = (selectinload(Refill.product),)


class RefillLine(BaseModel):
    product_id: int = Field(gt=0)
    quantity: int = Field(gt=0)


class RefillBatchCreate(BaseModel):
    site_id: int = Field(gt=0)
    refills: List[RefillLine] = Field(min_length=1)


class RefillUpdate(BaseModel):
    quantity: int = Field(gt=0)


@router.post("/", response_model=List[RefillResponse], status_code=201)
async def create_refills(
    data: RefillBatchCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Add several refills to a site at once; returns all refills of the site"""
    await ensure_exists(db, Site, data.site_id, "site_id")
    for line in data.refills:
        await ensure_exists(db, Product, line.product_id, "refills.product_id")

    db.add_all([
        Refill(site_id=data.site_id, product_id=line.product_id, quantity=line.quantity)
        for line in data.refills
    ])
    await db.commit()
    logger.info(f"Added {len(data.refills)} refill(s) to site #{data.site_id}")

    return await Repository(db, Refill).find(
        where=Refill.site_id == data.site_id,
        order_by=[Refill.id],
        options=REFILL_OPTIONS,
    )


@router.put("/{refill_id}", response_model=RefillResponse)
async def update_refill(
    refill_id: int,
    data: RefillUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Change the quantity of a refill"""
    repo = Repository(db, Refill)
    refill = await repo.get_or_404(refill_id, REFILL_OPTIONS)
    await repo.update(refill, {"quantity": data.quantity})
    await db.commit()
    return refill


@router.delete("/{refill_id}", response_model=MessageResponse)
async def delete_refill(
    refill_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Delete a refill"""
    repo = Repository(db, Refill)
    refill = await repo.get_or_404(refill_id)
    await repo.delete(refill)
    await db.commit()
    return {"message": "Refill deleted successfully"}
