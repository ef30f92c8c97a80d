"""
Test fixtures - in-memory SQLite database + authenticated HTTP clients
"""
from datetime import datetime

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from opsboard.database import Base, get_db, enable_sqlite_foreign_keys
from opsboard.main import app
from opsboard.api.auth import get_password_hash, create_access_token
from opsboard.models import (
    User, Pickup, Supplier, Department, Unit, Entity, Service, OrderType, Client, Product, ProductBatch,
)
from opsboard.services.storage import LocalFileStorage, get_storage


@pytest_asyncio.fixture()
async def db_session():
    """Create a fresh in-memory SQLite database for each test"""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    enable_sqlite_foreign_keys(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with session_factory() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture()
async def seed_data(db_session):
    """Insert baseline test data: user + reference rows + one stocked product"""
    user = User(
        email="test@opsboard.io",
        full_name="Test User",
        hashed_password=get_password_hash("testpass123"),
        hashed_admin_code=get_password_hash("4321"),
        is_active=True,
    )
    pickup = Pickup(pickup="Morning run")
    supplier = Supplier(name="Fresh Farms", email="orders@freshfarms.io")
    department = Department(name="Bakery")
    unit = Unit(unit_type="kg")
    entity = Entity(name="Kitchen")
    service = Service(service_type="Delivery")
    order_type = OrderType(order_type="Catering")
    client = Client(first_name="Ada", surname="Lovelace", email="ada@example.io")

    db_session.add_all([user, pickup, supplier, department, unit, entity, service, order_type, client])
    await db_session.flush()

    product = Product(
        plu=1001,
        name="Sourdough",
        product_type="Bread",
        department_id=department.id,
        critical_quantity=5,
        restock=False,
        batches=[
            ProductBatch(
                quantity=20,
                dlc=datetime(2030, 1, 1),
                delivery_temp=4,
                unit_id=unit.id,
                supplier_id=supplier.id,
            )
        ],
    )
    db_session.add(product)
    await db_session.commit()

    return {
        "user": user,
        "pickup": pickup,
        "supplier": supplier,
        "department": department,
        "unit": unit,
        "entity": entity,
        "service": service,
        "order_type": order_type,
        "client": client,
        "product": product,
    }


def _override_dependencies(db_session, upload_dir):
    async def override_get_db():
        try:
            yield db_session
        except SQLAlchemyError:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: LocalFileStorage(str(upload_dir), "/uploads")


async def _client_with_token(token=None):
    transport = ASGITransport(app=app)
    ac = AsyncClient(transport=transport, base_url="http://test", follow_redirects=True)
    if token:
        ac.headers["Authorization"] = f"Bearer {token}"
    return ac


@pytest_asyncio.fixture()
async def upload_dir(tmp_path):
    return tmp_path / "uploads"


@pytest_asyncio.fixture()
async def client(db_session, seed_data, upload_dir):
    """Authenticated httpx AsyncClient in admin mode"""
    _override_dependencies(db_session, upload_dir)

    token = create_access_token(data={"sub": seed_data["user"].email}, is_admin=True)
    async with await _client_with_token(token) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def user_client(db_session, seed_data, upload_dir):
    """Authenticated httpx AsyncClient in user mode"""
    _override_dependencies(db_session, upload_dir)

    token = create_access_token(data={"sub": seed_data["user"].email})
    async with await _client_with_token(token) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def unauth_client(db_session, upload_dir):
    """Unauthenticated httpx AsyncClient"""
    _override_dependencies(db_session, upload_dir)

    async with await _client_with_token() as ac:
        yield ac

    app.dependency_overrides.clear()
