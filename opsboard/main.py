"""
Main FastAPI application
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from opsboard.config import get_settings
from opsboard.database import engine, Base, AsyncSessionLocal
from opsboard.seed import seed_admin_user
from opsboard.utils.logger import setup_logging
from opsboard.api import auth, clients, suppliers, products, orders, purchases
from opsboard.api import tasks, reminders, sites, refills, documents, open_products
from opsboard.api.crud import CRUD_RESOURCES, build_crud_router
from opsboard.api.errors import install_exception_handlers

settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created")

    async with AsyncSessionLocal() as session:
        await seed_admin_user(session)

    yield

    await engine.dispose()

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

install_exception_handlers(app)

# Include routers
app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
app.include_router(clients.router, prefix="/api/client", tags=["Clients"])
app.include_router(suppliers.router, prefix="/api/supplier", tags=["Suppliers"])
app.include_router(products.router, prefix="/api/product", tags=["Products"])
app.include_router(orders.router, prefix="/api/order", tags=["Orders"])
app.include_router(purchases.router, prefix="/api/purchase", tags=["Purchases"])
app.include_router(tasks.router, prefix="/api/task", tags=["Tasks"])
app.include_router(reminders.router, prefix="/api/reminder", tags=["Reminders"])
app.include_router(sites.router, prefix="/api/site", tags=["Sites"])
app.include_router(refills.router, prefix="/api/refill", tags=["Refills"])
app.include_router(documents.router, prefix="/api/document", tags=["Documents"])
app.include_router(open_products.router, prefix="/api/open-product", tags=["Open Products"])

for resource in CRUD_RESOURCES:
    app.include_router(build_crud_router(resource), prefix=f"/api/{resource.path}", tags=[resource.tag])

# Uploaded files
app.mount(
    settings.UPLOAD_URL_PREFIX,
    StaticFiles(directory=settings.UPLOAD_DIR, check_dir=False),
    name="uploads",
)


@app.get("/")
async def root():
    return {
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running"
    }


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "opsboard.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG
    )
