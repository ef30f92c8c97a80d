"""
Generic CRUD routers for single-label reference data (units, pickups, ...).

Each resource is declared once in ``CRUD_RESOURCES``; ``build_crud_router``
turns a declaration into list/get/create/patch/delete endpoints.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Type

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field, create_model
from sqlalchemy.ext.asyncio import AsyncSession

from opsboard.api.auth import get_current_user, require_admin
from opsboard.api.common import MessageResponse
from opsboard.database import get_db
from opsboard.models.reference import Department, Entity, OrderType, Pickup, Recurrence, Service, Unit
from opsboard.repositories import Repository
from opsboard.services.query import ListQuery

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CrudResource:
    path: str
    model: Type
    label: str
    field: str
    search_fields: Tuple[str, ...] = field(default=())

    @property
    def tag(self) -> str:
        return self.label + "s" if not self.label.endswith("y") else self.label[:-1] + "ies"


CRUD_RESOURCES = [
    CrudResource("units", Unit, "Unit", "unit_type", ("unit_type",)),
    CrudResource("pickups", Pickup, "Pickup", "pickup", ("pickup",)),
    CrudResource("entities", Entity, "Entity", "name", ("name",)),
    CrudResource("order-types", OrderType, "Order Type", "order_type", ("order_type",)),
    CrudResource("services", Service, "Service", "service_type", ("service_type",)),
    CrudResource("departments", Department, "Department", "name", ("name",)),
    CrudResource("recurrences", Recurrence, "Recurrence", "recurrence_type", ("recurrence_type",)),
]


def _schemas(resource: CrudResource) -> Tuple[Type[BaseModel], Type[BaseModel], Type[BaseModel]]:
    name = resource.model.__name__
    create_schema = create_model(
        f"{name}Create",
        **{resource.field: (str, Field(min_length=1, max_length=255))},
    )
    update_schema = create_model(
        f"{name}Update",
        **{resource.field: (Optional[str], Field(None, min_length=1, max_length=255))},
    )
    response_schema = create_model(
        f"{name}Response",
        __config__={"from_attributes": True},
        id=(int, ...),
        **{resource.field: (str, ...)},
    )
    return create_schema, update_schema, response_schema


def build_crud_router(resource: CrudResource) -> APIRouter:
    """List (with ``search``), get, create for any user; patch and delete for admins"""
    router = APIRouter()
    CreateSchema, UpdateSchema, ResponseSchema = _schemas(resource)
    order_column = getattr(resource.model, resource.field)

    @router.get("/", response_model=List[ResponseSchema], name=f"list_{resource.path}")
    async def list_items(
        search: Optional[str] = None,
        db: AsyncSession = Depends(get_db),
        current_user=Depends(get_current_user)
    ):
        query = ListQuery(resource.model).search(search, resource.search_fields)
        return await Repository(db, resource.model, resource.label).find(
            where=query.condition, order_by=[order_column, resource.model.id]
        )

    @router.get("/{item_id}", response_model=ResponseSchema, name=f"get_{resource.path}")
    async def get_item(
        item_id: int,
        db: AsyncSession = Depends(get_db),
        current_user=Depends(get_current_user)
    ):
        return await Repository(db, resource.model, resource.label).get_or_404(item_id)

    @router.post("/", response_model=ResponseSchema, status_code=201, name=f"create_{resource.path}")
    async def create_item(
        data: CreateSchema,
        db: AsyncSession = Depends(get_db),
        current_user=Depends(get_current_user)
    ):
        item = await Repository(db, resource.model, resource.label).create(**data.model_dump())
        await db.commit()
        return item

    @router.patch("/{item_id}", response_model=ResponseSchema, name=f"update_{resource.path}")
    async def update_item(
        item_id: int,
        data: UpdateSchema,
        db: AsyncSession = Depends(get_db),
        auth=Depends(require_admin)
    ):
        repo = Repository(db, resource.model, resource.label)
        item = await repo.get_or_404(item_id)
        await repo.update(item, data.model_dump(exclude_none=True))
        await db.commit()
        return item

    @router.delete("/{item_id}", response_model=MessageResponse, name=f"delete_{resource.path}")
    async def delete_item(
        item_id: int,
        db: AsyncSession = Depends(get_db),
        auth=Depends(require_admin)
    ):
        repo = Repository(db, resource.model, resource.label)
        item = await repo.get_or_404(item_id)
        await repo.delete(item)
        await db.commit()
        return {"message": f"{resource.label} deleted successfully"}

    return router
