"""
Products API endpoints - catalog items with stock batches and documents
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, Field

from opsboard.database import get_db
from opsboard.models.user import User
from opsboard.models.product import Product, ProductBatch
from opsboard.models.reference import Department, Unit
from opsboard.models.supplier import Supplier
from opsboard.models.document import Document
from opsboard.api.auth import get_current_user, require_admin
from opsboard.api.common import (
    MessageResponse, PageMeta, SortParams, UtcDateTime, ensure_exists, id_filter, load_related, pagination,
    sort_params,
)
from opsboard.api.documents import DocumentResponse
from opsboard.repositories import Repository
from opsboard.services.query import (
    ListQuery, PageParams, order_clauses, page_metadata, parse_id_filter, resolve_sort,
)
from opsboard.services.reconcile import reconcile_children

router = APIRouter()

SORT_FIELDS = {
    "name": Product.name,
    "productType": Product.product_type,
    "createdAt": Product.created_at,
    "restock": Product.restock,
}

PRODUCT_OPTIONS = (
    selectinload(Product.batches).selectinload(ProductBatch.unit),
    selectinload(Product.batches).selectinload(ProductBatch.supplier),
    selectinload(Product.department),
    selectinload(Product.documents),
)


# --- Pydantic Schemas ---

class UnitBrief(BaseModel):
    id: int
    unit_type: str

    class Config:
        from_attributes = True


class SupplierBrief(BaseModel):
    id: int
    name: str
    email: Optional[str]

    class Config:
        from_attributes = True


class DepartmentBrief(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class BatchResponse(BaseModel):
    id: int
    quantity: float
    dlc: datetime
    delivery_temp: float
    unit_id: int
    supplier_id: int
    unit: Optional[UnitBrief]
    supplier: Optional[SupplierBrief]

    class Config:
        from_attributes = True


class ProductResponse(BaseModel):
    id: int
    plu: int
    name: str
    product_type: str
    department_id: int
    critical_quantity: float
    restock: bool
    created_at: Optional[datetime]
    department: Optional[DepartmentBrief]
    batches: List[BatchResponse] = []
    documents: List[DocumentResponse] = []

    class Config:
        from_attributes = True


class ProductListResponse(BaseModel):
    records: List[ProductResponse]
    pagination: PageMeta


class BatchInput(BaseModel):
    id: Optional[int] = None
    quantity: float
    dlc: UtcDateTime
    delivery_temp: float
    unit_id: int
    supplier_id: int


class ProductCreate(BaseModel):
    plu: int
    name: str = Field(min_length=1, max_length=255)
    product_type: str = Field(min_length=1, max_length=255)
    department_id: int
    critical_quantity: float = Field(ge=0)
    batches: List[BatchInput] = []
    document_ids: List[int] = []


class ProductUpdate(BaseModel):
    plu: Optional[int] = None
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    product_type: Optional[str] = Field(None, min_length=1, max_length=255)
    department_id: Optional[int] = None
    critical_quantity: Optional[float] = Field(None, ge=0)
    batches: Optional[List[BatchInput]] = None
    document_ids: Optional[List[int]] = None


# --- Helper ---

BATCH_FIELDS = ("quantity", "dlc", "delivery_temp", "unit_id", "supplier_id")


def _build_batch(entry: BatchInput) -> ProductBatch:
    return ProductBatch(**entry.model_dump(include=set(BATCH_FIELDS)))


def _apply_batch(batch: ProductBatch, entry: BatchInput) -> None:
    for key in BATCH_FIELDS:
        setattr(batch, key, getattr(entry, key))


def needs_restock(product: Product) -> bool:
    """Total stock across batches has fallen to the critical quantity"""
    total = sum(batch.quantity or 0 for batch in product.batches)
    return total <= (product.critical_quantity or 0)


async def _check_batch_references(db: AsyncSession, batches: List[BatchInput]) -> None:
    for batch in batches:
        await ensure_exists(db, Unit, batch.unit_id, "unit_id")
        await ensure_exists(db, Supplier, batch.supplier_id, "supplier_id")


# --- Endpoints ---

@router.get("/", response_model=ProductListResponse)
async def list_products(
    search: Optional[str] = None,
    supplier_id: Optional[str] = id_filter("supplierId"),
    page: PageParams = Depends(pagination),
    sort: SortParams = Depends(sort_params),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """List products; numeric searches also match id and PLU"""
    query = (
        ListQuery(Product)
        .search(search, ("name",), numeric_fields=("id", "plu"))
    )
    supplier = parse_id_filter(supplier_id)
    if supplier is not None:
        query.where(Product.batches.any(ProductBatch.supplier_id == supplier))
    sort_spec = resolve_sort(SORT_FIELDS, sort.sort_by, sort.order, default="createdAt")

    repo = Repository(db, Product)
    records = await repo.find(
        where=query.condition,
        order_by=order_clauses(sort_spec, Product.id),
        skip=page.skip,
        take=page.limit,
        options=PRODUCT_OPTIONS,
    )
    return {"records": records, "pagination": page_metadata(await repo.count(query.condition), page)}


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Get a single product with its batches"""
    return await Repository(db, Product).get_or_404(product_id, PRODUCT_OPTIONS)


@router.post("/", response_model=ProductResponse, status_code=201)
async def create_product(
    data: ProductCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Create a product, optionally with initial batches and linked documents"""
    await ensure_exists(db, Department, data.department_id, "department_id")
    await _check_batch_references(db, data.batches)
    documents = await load_related(db, Document, data.document_ids, "document_ids")

    product = Product(
        **data.model_dump(exclude={"batches", "document_ids"}),
        batches=[_build_batch(b) for b in data.batches],
        documents=documents,
    )
    product.restock = needs_restock(product)
    db.add(product)
    await db.commit()

    return await Repository(db, Product).get_or_404(product.id, PRODUCT_OPTIONS)


@router.put("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: int,
    data: ProductUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Update a product. When ``batches`` is sent it replaces the batch list:
    batches with an id are updated, new ones created, omitted ones deleted.
    """
    repo = Repository(db, Product)
    product = await repo.get_or_404(product_id, PRODUCT_OPTIONS)

    updates = data.model_dump(exclude_none=True, exclude={"batches", "document_ids"})
    if "department_id" in updates:
        await ensure_exists(db, Department, updates["department_id"], "department_id")
    for key, value in updates.items():
        setattr(product, key, value)

    if data.document_ids is not None:
        product.documents = await load_related(db, Document, data.document_ids, "document_ids")

    if data.batches is not None:
        await _check_batch_references(db, data.batches)
        reconcile_children(product.batches, data.batches, _build_batch, _apply_batch)

    product.restock = needs_restock(product)
    await db.commit()

    return await repo.get_or_404(product_id, PRODUCT_OPTIONS)


@router.delete("/{product_id}", response_model=MessageResponse)
async def delete_product(
    product_id: int,
    db: AsyncSession = Depends(get_db),
    auth=Depends(require_admin)
):
    """Delete a product and its batches"""
    repo = Repository(db, Product)
    product = await repo.get_or_404(product_id, PRODUCT_OPTIONS)
    await repo.delete(product)
    await db.commit()
    return {"message": "Product deleted successfully"}
