# src/carmarket_admin/core/initial_data.py
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from carmarket_admin.core.config import settings
from carmarket_admin.crud import admin as crud_admin
from carmarket_admin.models.admin import Admin, AdminRole

logger = logging.getLogger(__name__)


async def init_super_admin(session: AsyncSession) -> Optional[Admin]:

    email = settings.FIRST_SUPERUSER_EMAIL
    password = settings.FIRST_SUPERUSER_PASSWORD

    if not email or not password:
        logger.warning("Superuser credentials not set in .env, skipping superuser creation")
        return None

    existing = await crud_admin.get_admin_by_email(session, email)
    if existing:
        logger.info("Super Admin already exists: %s", existing.email)
        return existing

    new_admin = await crud_admin.create_admin(
        session,
        email=email,
        password=password,
        name=settings.FIRST_SUPERUSER_NAME,
        role=AdminRole.SUPER_ADMIN,
    )
    logger.info("Super Admin created: %s", new_admin.email)
    return new_admin
