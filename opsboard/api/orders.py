"""
Orders API endpoints - client orders with line items, services and documents
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, Field, model_validator

from opsboard.database import get_db
from opsboard.models.user import User
from opsboard.models.order import Order, OrderItem
from opsboard.models.client import Client
from opsboard.models.product import Product
from opsboard.models.reference import OrderType, Pickup, Service
from opsboard.models.document import Document
from opsboard.api.auth import get_current_user, require_admin
from opsboard.api.common import (
    MessageResponse, PageMeta, UtcDateTime, ensure_exists, id_filter, load_related, pagination,
)
from opsboard.api.documents import DocumentResponse
from opsboard.repositories import Repository
from opsboard.services.query import ListQuery, PageParams, page_metadata, parse_id_filter
from opsboard.services.reconcile import reconcile_children
from opsboard.utils.helpers import start_of_day

router = APIRouter()

ORDER_OPTIONS = (
    selectinload(Order.client),
    selectinload(Order.order_type),
    selectinload(Order.pickup),
    selectinload(Order.items).selectinload(OrderItem.product),
    selectinload(Order.services),
    selectinload(Order.documents),
)


# --- Pydantic Schemas ---

class ClientBrief(BaseModel):
    id: int
    first_name: str
    surname: Optional[str]

    class Config:
        from_attributes = True


class NamedRef(BaseModel):
    id: int

    class Config:
        from_attributes = True


class OrderTypeBrief(NamedRef):
    order_type: str


class PickupBrief(NamedRef):
    pickup: str


class ServiceBrief(NamedRef):
    service_type: str


class ProductBrief(NamedRef):
    plu: int
    name: str


class OrderItemResponse(BaseModel):
    id: int
    product_id: int
    quantity: float
    product: Optional[ProductBrief]

    class Config:
        from_attributes = True


class OrderResponse(BaseModel):
    id: int
    client_id: int
    order_type_id: int
    pickup_id: int
    date: datetime
    comment: Optional[str]
    bill: bool
    created_at: Optional[datetime]
    client: Optional[ClientBrief]
    order_type: Optional[OrderTypeBrief]
    pickup: Optional[PickupBrief]
    items: List[OrderItemResponse] = []
    services: List[ServiceBrief] = []
    documents: List[DocumentResponse] = []

    class Config:
        from_attributes = True


class OrderListResponse(BaseModel):
    records: List[OrderResponse]
    pagination: PageMeta


class OrderItemInput(BaseModel):
    id: Optional[int] = None
    product_id: Optional[int] = None
    quantity: Optional[float] = Field(None, gt=0)

    @model_validator(mode="after")
    def new_items_are_complete(self):
        if self.id is None and (self.product_id is None or self.quantity is None):
            raise ValueError("New items require product_id and quantity")
        return self


class OrderCreate(BaseModel):
    client_id: int
    order_type_id: int
    pickup_id: int
    date: UtcDateTime
    comment: Optional[str] = None
    bill: bool = False
    items: List[OrderItemInput] = []
    service_ids: List[int] = []
    document_ids: List[int] = []


class OrderUpdate(BaseModel):
    client_id: Optional[int] = None
    order_type_id: Optional[int] = None
    pickup_id: Optional[int] = None
    date: Optional[UtcDateTime] = None
    comment: Optional[str] = None
    bill: Optional[bool] = None
    items: Optional[List[OrderItemInput]] = None
    service_ids: Optional[List[int]] = None
    document_ids: Optional[List[int]] = None


# --- Helper ---

REFERENCES = (
    ("client_id", Client),
    ("order_type_id", OrderType),
    ("pickup_id", Pickup),
)


def _build_item(entry: OrderItemInput) -> OrderItem:
    return OrderItem(product_id=entry.product_id, quantity=entry.quantity)


def _apply_item(item: OrderItem, entry: OrderItemInput) -> None:
    if entry.product_id is not None:
        item.product_id = entry.product_id
    if entry.quantity is not None:
        item.quantity = entry.quantity


async def _check_items(db: AsyncSession, items: List[OrderItemInput]) -> None:
    for item in items:
        await ensure_exists(db, Product, item.product_id, "items.product_id")


# --- Endpoints ---

@router.get("/", response_model=OrderListResponse)
async def list_orders(
    search: Optional[str] = None,
    client_id: Optional[str] = id_filter("clientId"),
    pickup_id: Optional[str] = id_filter("pickupId"),
    order_type_id: Optional[str] = id_filter("orderTypeId"),
    service_id: Optional[str] = id_filter("serviceId"),
    date_from: Optional[datetime] = Query(None, alias="date"),
    page: PageParams = Depends(pagination),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    List orders by date. Numeric searches match the order id as well as the
    comment; ``date`` keeps orders from that day onwards.
    """
    query = (
        ListQuery(Order)
        .search(search, ("comment",), numeric_fields=("id",))
        .equals(Order.client_id, parse_id_filter(client_id))
        .equals(Order.pickup_id, parse_id_filter(pickup_id))
        .equals(Order.order_type_id, parse_id_filter(order_type_id))
        .has_related(Order.services, parse_id_filter(service_id))
    )
    if date_from is not None:
        query.where(Order.date >= start_of_day(date_from))

    repo = Repository(db, Order)
    records = await repo.find(
        where=query.condition,
        order_by=[Order.date.asc(), Order.id.asc()],
        skip=page.skip,
        take=page.limit,
        options=ORDER_OPTIONS,
    )
    return {"records": records, "pagination": page_metadata(await repo.count(query.condition), page)}


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Get a single order"""
    return await Repository(db, Order).get_or_404(order_id, ORDER_OPTIONS)


@router.post("/", response_model=OrderResponse, status_code=201)
async def create_order(
    data: OrderCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Create an order with its items, services and documents"""
    for field, model in REFERENCES:
        await ensure_exists(db, model, getattr(data, field), field)
    await _check_items(db, data.items)

    order = Order(
        **data.model_dump(exclude={"items", "service_ids", "document_ids"}),
        items=[_build_item(i) for i in data.items],
        services=await load_related(db, Service, data.service_ids, "service_ids"),
        documents=await load_related(db, Document, data.document_ids, "document_ids"),
    )
    db.add(order)
    await db.commit()

    return await Repository(db, Order).get_or_404(order.id, ORDER_OPTIONS)


@router.put("/{order_id}", response_model=OrderResponse)
async def update_order(
    order_id: int,
    data: OrderUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Update an order. ``items`` replaces the item list (id = update, no id =
    new item, omitted = deleted); ``service_ids`` / ``document_ids`` replace
    the linked sets.
    """
    repo = Repository(db, Order)
    order = await repo.get_or_404(order_id, ORDER_OPTIONS)

    updates = data.model_dump(exclude_none=True, exclude={"items", "service_ids", "document_ids"})
    for field, model in REFERENCES:
        if field in updates:
            await ensure_exists(db, model, updates[field], field)
    for key, value in updates.items():
        setattr(order, key, value)

    if data.service_ids is not None:
        order.services = await load_related(db, Service, data.service_ids, "service_ids")
    if data.document_ids is not None:
        order.documents = await load_related(db, Document, data.document_ids, "document_ids")

    if data.items is not None:
        await _check_items(db, data.items)
        reconcile_children(order.items, data.items, _build_item, _apply_item)

    await db.commit()
    return await repo.get_or_404(order_id, ORDER_OPTIONS)


@router.delete("/{order_id}", response_model=MessageResponse)
async def delete_order(
    order_id: int,
    db: AsyncSession = Depends(get_db),
    auth=Depends(require_admin)
):
    """Delete an order and its items"""
    repo = Repository(db, Order)
    order = await repo.get_or_404(order_id, ORDER_OPTIONS)
    await repo.delete(order)
    await db.commit()
    return {"message": "Order deleted successfully"}
