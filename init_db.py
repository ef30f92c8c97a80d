"""Initialize database tables and the default admin account"""
import asyncio
from opsboard.database import engine, Base, AsyncSessionLocal
from opsboard.models import *  # noqa: F401,F403 - Import all models to register them
from opsboard.seed import seed_admin_user


async def init():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    print("Database tables created successfully.")

    async with AsyncSessionLocal() as session:
        user = await seed_admin_user(session)
    print(f"Admin account: {user.email}")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(init())
