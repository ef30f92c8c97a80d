"""
Open products API - products opened at a site, each record backed by a document
"""
import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from opsboard.api.auth import get_current_user
from opsboard.api.common import MessageResponse, ensure_exists, id_filter, load_related
from opsboard.api.documents import DocumentResponse
from opsboard.api.sites import ProductBrief
from opsboard.database import get_db
from opsboard.models.day_of_week import DayOfWeek
from opsboard.models.document import Document
from opsboard.models.open_product import OpenProduct, OpenProductItem
from opsboard.models.product import Product
from opsboard.models.site import Site
from opsboard.models.user import User
from opsboard.repositories import Repository
from opsboard.services.query import ListQuery, parse_id_filter
from opsboard.utils.helpers import start_of_day

logger = logging.getLogger(__name__)

router = APIRouter()

OPEN_PRODUCT_OPTIONS = (
    selectinload(OpenProduct.site),
    selectinload(OpenProduct.document),
    selectinload(OpenProduct.products).selectinload(OpenProductItem.product),
)


# --- Pydantic Schemas ---

class SiteBrief(BaseModel):
    id: int
    site_name: str
    day: DayOfWeek
    supervisor: str

    class Config:
        from_attributes = True


class OpenProductItemResponse(BaseModel):
    id: int
    product_id: int
    product: Optional[ProductBrief]

    class Config:
        from_attributes = True


class OpenProductResponse(BaseModel):
    id: int
    site_id: int
    document_id: Optional[int]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]
    site: Optional[SiteBrief]
    document: Optional[DocumentResponse]
    products: List[OpenProductItemResponse] = []

    class Config:
        from_attributes = True


class OpenProductListResponse(BaseModel):
    records: List[OpenProductResponse]


class OpenProductLine(BaseModel):
    product_id: int = Field(gt=0)


class OpenProductCreate(BaseModel):
    site_id: int = Field(gt=0)
    document_id: int = Field(gt=0)
    products: List[OpenProductLine] = Field(min_length=1)


class OpenProductUpdate(BaseModel):
    site_id: Optional[int] = Field(None, gt=0)
    document_id: Optional[int] = Field(None, gt=0)
    # Replaces the whole product list when given
    products: Optional[List[OpenProductLine]] = Field(None, min_length=1)


# --- Helper ---

async def _check_references(db: AsyncSession, site_id, document_id, products) -> None:
    await ensure_exists(db, Site, site_id, "site_id")
    await ensure_exists(db, Document, document_id, "document_id")
    if products:
        await load_related(db, Product, [line.product_id for line in products], "products.product_id")


# --- Endpoints ---

@router.get("/", response_model=OpenProductListResponse)
async def list_open_products(
    site_id: Optional[str] = id_filter("siteId"),
    since: Optional[datetime] = Query(None, alias="date"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Newest first; ``date`` keeps records created on or after that day"""
    query = ListQuery(OpenProduct).equals(OpenProduct.site_id, parse_id_filter(site_id))
    if since is not None:
        query.where(OpenProduct.created_at >= start_of_day(since))

    records = await Repository(db, OpenProduct, "Open product").find(
        where=query.condition,
        order_by=[OpenProduct.created_at.desc(), OpenProduct.id.desc()],
        options=OPEN_PRODUCT_OPTIONS,
    )
    return {"records": records}


@router.get("/{open_product_id}", response_model=OpenProductResponse)
async def get_open_product(
    open_product_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await Repository(db, OpenProduct, "Open product").get_or_404(open_product_id, OPEN_PRODUCT_OPTIONS)


@router.post("/", response_model=OpenProductResponse, status_code=201)
async def create_open_product(
    data: OpenProductCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Record products opened at a site"""
    await _check_references(db, data.site_id, data.document_id, data.products)

    repo = Repository(db, OpenProduct, "Open product")
    open_product = await repo.create(
        site_id=data.site_id,
        document_id=data.document_id,
        products=[OpenProductItem(product_id=line.product_id) for line in data.products],
    )
    await db.commit()
    return await repo.get_or_404(open_product.id, OPEN_PRODUCT_OPTIONS)


@router.put("/{open_product_id}", response_model=OpenProductResponse)
async def update_open_product(
    open_product_id: int,
    data: OpenProductUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Update site or document; a product list replaces the existing one"""
    repo = Repository(db, OpenProduct, "Open product")
    open_product = await repo.get_or_404(open_product_id, OPEN_PRODUCT_OPTIONS)
    await _check_references(db, data.site_id, data.document_id, data.products)

    changes = data.model_dump(exclude_none=True, exclude={"products"})
    if data.products is not None:
        changes["products"] = [OpenProductItem(product_id=line.product_id) for line in data.products]
    await repo.update(open_product, changes)
    await db.commit()
    return await repo.get_or_404(open_product_id, OPEN_PRODUCT_OPTIONS)


@router.delete("/{open_product_id}", response_model=MessageResponse)
async def delete_open_product(
    open_product_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    repo = Repository(db, OpenProduct, "Open product")
    open_product = await repo.get_or_404(open_product_id, OPEN_PRODUCT_OPTIONS)
    await repo.delete(open_product)
    await db.commit()
    return {"message": "Open product deleted successfully"}
