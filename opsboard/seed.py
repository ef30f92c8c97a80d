"""
Default data created at startup
"""
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from opsboard.api.auth import get_password_hash
from opsboard.config import get_settings
from opsboard.models import User

settings = get_settings()
logger = logging.getLogger(__name__)


async def seed_admin_user(session: AsyncSession) -> User:
    """Create the configured admin account if it does not exist yet"""
    result = await session.execute(select(User).where(User.email == settings.ADMIN_EMAIL))
    user = result.scalar_one_or_none()
    if user:
        return user

    user = User(
        email=settings.ADMIN_EMAIL,
        full_name="Administrator",
        hashed_password=get_password_hash(settings.ADMIN_PASSWORD),
        hashed_admin_code=get_password_hash(settings.ADMIN_CODE),
        is_active=True,
    )
    session.add(user)
    await session.commit()
    logger.info(f"Created default admin user {settings.ADMIN_EMAIL}")
    return user
