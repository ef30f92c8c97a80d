"""
Purchases API endpoints - supplier pickups scheduled on a date or weekly on a day
"""
from fastapi import APIRouter, Depends
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, Field, model_validator

from opsboard.database import get_db
from opsboard.models.user import User
from opsboard.models.day_of_week import DayOfWeek
from opsboard.models.purchase import Purchase, PurchaseItem
from opsboard.models.product import Product
from opsboard.models.reference import Pickup
from opsboard.models.supplier import Supplier
from opsboard.api.auth import get_current_user, require_admin
from opsboard.api.common import (
    MessageResponse, PageMeta, SortParams, UtcDateTime, ensure_exists, id_filter, pagination, schedule_filter,
    sort_params,
)
from opsboard.repositories import Repository
from opsboard.services.grouping import group_by_date
from opsboard.services.query import (
    ListQuery, PageParams, order_clauses, page_metadata, parse_id_filter, resolve_sort,
)
from opsboard.services.reconcile import reconcile_children
from opsboard.services.recurrence import ScheduleFilter

router = APIRouter()

SORT_FIELDS = {
    "date": Purchase.date,
    "pickup": select(Pickup.pickup).where(Pickup.id == Purchase.pickup_id).scalar_subquery(),
    "supplier": select(Supplier.name).where(Supplier.id == Purchase.supplier_id).scalar_subquery(),
}

PURCHASE_OPTIONS = (
    selectinload(Purchase.pickup),
    selectinload(Purchase.supplier),
    selectinload(Purchase.items).selectinload(PurchaseItem.product),
)


# --- Pydantic Schemas ---

class PickupBrief(BaseModel):
    id: int
    pickup: str

    class Config:
        from_attributes = True


class SupplierBrief(BaseModel):
    id: int
    name: str
    email: Optional[str]

    class Config:
        from_attributes = True


class ProductBrief(BaseModel):
    id: int
    plu: int
    name: str

    class Config:
        from_attributes = True


class PurchaseItemResponse(BaseModel):
    id: int
    product_id: int
    quantity: float
    product: Optional[ProductBrief]

    class Config:
        from_attributes = True


class PurchaseResponse(BaseModel):
    id: int
    pickup_id: int
    supplier_id: int
    date: Optional[datetime]
    day: Optional[DayOfWeek]
    created_at: Optional[datetime]
    pickup: Optional[PickupBrief]
    supplier: Optional[SupplierBrief]
    items: List[PurchaseItemResponse] = []

    class Config:
        from_attributes = True


class PurchaseListResponse(BaseModel):
    records: List[PurchaseResponse]
    pagination: PageMeta


class PurchaseGroup(BaseModel):
    date_key: str
    heading: str
    records: List[PurchaseResponse]

    class Config:
        from_attributes = True


class PurchaseItemInput(BaseModel):
    id: Optional[int] = None
    product_id: Optional[int] = None
    quantity: Optional[float] = Field(None, gt=0)

    @model_validator(mode="after")
    def new_items_are_complete(self):
        if self.id is None and (self.product_id is None or self.quantity is None):
            raise ValueError("New items require product_id and quantity")
        return self


class PurchaseCreate(BaseModel):
    pickup_id: int
    supplier_id: int
    date: Optional[UtcDateTime] = None
    day: Optional[DayOfWeek] = None
    items: List[PurchaseItemInput] = []


class PurchaseUpdate(BaseModel):
    pickup_id: Optional[int] = None
    supplier_id: Optional[int] = None
    date: Optional[UtcDateTime] = None
    day: Optional[DayOfWeek] = None
    items: Optional[List[PurchaseItemInput]] = None


# --- Helper ---

def _build_item(entry: PurchaseItemInput) -> PurchaseItem:
    return PurchaseItem(product_id=entry.product_id, quantity=entry.quantity)


def _apply_item(item: PurchaseItem, entry: PurchaseItemInput) -> None:
    if entry.product_id is not None:
        item.product_id = entry.product_id
    if entry.quantity is not None:
        item.quantity = entry.quantity


def _filters(
    search: Optional[str],
    pickup_id: Optional[str],
    supplier_id: Optional[str],
    schedule: ScheduleFilter,
) -> ListQuery:
    query = (
        ListQuery(Purchase)
        .equals(Purchase.pickup_id, parse_id_filter(pickup_id))
        .equals(Purchase.supplier_id, parse_id_filter(supplier_id))
        .schedule(schedule)
    )
    term = (search or "").strip()
    if term:
        query.where(or_(
            Purchase.supplier.has(Supplier.name.icontains(term, autoescape=True)),
            Purchase.pickup.has(Pickup.pickup.icontains(term, autoescape=True)),
        ))
    return query


async def _check_references(db: AsyncSession, data: BaseModel) -> None:
    await ensure_exists(db, Pickup, getattr(data, "pickup_id", None), "pickup_id")
    await ensure_exists(db, Supplier, getattr(data, "supplier_id", None), "supplier_id")
    for item in getattr(data, "items", None) or []:
        await ensure_exists(db, Product, item.product_id, "items.product_id")


# --- Endpoints ---

@router.get("/", response_model=PurchaseListResponse)
async def list_purchases(
    search: Optional[str] = None,
    pickup_id: Optional[str] = id_filter("pickupId"),
    supplier_id: Optional[str] = id_filter("supplierId"),
    schedule: ScheduleFilter = Depends(schedule_filter),
    page: PageParams = Depends(pagination),
    sort: SortParams = Depends(sort_params),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    List purchases. ``day`` keeps purchases recurring on that weekday plus
    all date-specific ones; ``date`` keeps purchases from that day onwards
    plus all weekly ones.
    """
    where = _filters(search, pickup_id, supplier_id, schedule).condition
    sort_spec = resolve_sort(SORT_FIELDS, sort.sort_by, sort.order, default="date")

    repo = Repository(db, Purchase)
    records = await repo.find(
        where=where,
        order_by=order_clauses(sort_spec, Purchase.id),
        skip=page.skip,
        take=page.limit,
        options=PURCHASE_OPTIONS,
    )
    return {"records": records, "pagination": page_metadata(await repo.count(where), page)}


@router.get("/grouped", response_model=List[PurchaseGroup])
async def list_purchases_grouped(
    search: Optional[str] = None,
    pickup_id: Optional[str] = id_filter("pickupId"),
    supplier_id: Optional[str] = id_filter("supplierId"),
    schedule: ScheduleFilter = Depends(schedule_filter),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Purchases grouped by calendar day; weekly purchases are listed under today"""
    where = _filters(search, pickup_id, supplier_id, schedule).condition
    sort_spec = resolve_sort(SORT_FIELDS, None, None, default="date")

    records = await Repository(db, Purchase).find(
        where=where,
        order_by=order_clauses(sort_spec, Purchase.id),
        options=PURCHASE_OPTIONS,
    )
    return [PurchaseGroup.model_validate(group) for group in group_by_date(records)]


@router.get("/{purchase_id}", response_model=PurchaseResponse)
async def get_purchase(
    purchase_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Get a single purchase"""
    return await Repository(db, Purchase).get_or_404(purchase_id, PURCHASE_OPTIONS)


@router.post("/", response_model=PurchaseResponse, status_code=201)
async def create_purchase(
    data: PurchaseCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Create a purchase with its items"""
    await _check_references(db, data)

    purchase = Purchase(
        **data.model_dump(exclude={"items"}),
        items=[_build_item(i) for i in data.items],
    )
    db.add(purchase)
    await db.commit()

    return await Repository(db, Purchase).get_or_404(purchase.id, PURCHASE_OPTIONS)


@router.put("/{purchase_id}", response_model=PurchaseResponse)
async def update_purchase(
    purchase_id: int,
    data: PurchaseUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Update a purchase. When ``items`` is sent it becomes the full item list:
    items with an id are updated, items without one are created and existing
    items left out are deleted, all in one transaction.
    """
    repo = Repository(db, Purchase)
    purchase = await repo.get_or_404(purchase_id, PURCHASE_OPTIONS)
    await _check_references(db, data)

    updates = data.model_dump(exclude_unset=True, exclude={"items"})
    # pickup/supplier cannot be cleared; date/day can be set to null explicitly
    for key in ("pickup_id", "supplier_id"):
        if updates.get(key) is None:
            updates.pop(key, None)
    for key, value in updates.items():
        setattr(purchase, key, value)

    if data.items is not None:
        reconcile_children(purchase.items, data.items, _build_item, _apply_item)

    await db.commit()
    return await repo.get_or_404(purchase_id, PURCHASE_OPTIONS)


@router.delete("/{purchase_id}", response_model=MessageResponse)
async def delete_purchase(
    purchase_id: int,
    db: AsyncSession = Depends(get_db),
    auth=Depends(require_admin)
):
    """Delete a purchase and its items"""
    repo = Repository(db, Purchase)
    purchase = await repo.get_or_404(purchase_id, PURCHASE_OPTIONS)
    await repo.delete(purchase)
    await db.commit()
    return {"message": "Purchase deleted successfully"}
