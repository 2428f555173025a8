# src/carmarket_admin/crud/admin.py
import logging
from typing import Optional, Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from carmarket_admin.core.clock import utcnow
from carmarket_admin.core.exceptions import DuplicateEmail
from carmarket_admin.core.security import hash_password, hash_reset_token, verify_password
from carmarket_admin.core.validation import normalize_email
from carmarket_admin.models.admin import Admin, AdminRole

logger = logging.getLogger(__name__)


async def get_admin_by_email(db: AsyncSession, email: str) -> Optional[Admin]:
    result = await db.execute(select(Admin).where(Admin.email == normalize_email(email)))
    return result.scalar_one_or_none()


async def get_admin_by_id(db: AsyncSession, admin_id: int) -> Optional[Admin]:
    return await db.get(Admin, admin_id)


async def get_admin_by_reset_token(db: AsyncSession, raw_token: str) -> Optional[Admin]:
    result = await db.execute(
        select(Admin).where(Admin.reset_password_token_hash == hash_reset_token(raw_token))
    )
    return result.scalar_one_or_none()


async def list_admins(db: AsyncSession) -> Sequence[Admin]:
    result = await db.execute(select(Admin).order_by(Admin.created_at.desc(), Admin.id.desc()))
    return result.scalars().all()


async def get_oldest_admin(db: AsyncSession) -> Optional[Admin]:
    result = await db.execute(select(Admin).order_by(Admin.created_at.asc(), Admin.id.asc()).limit(1))
    return result.scalar_one_or_none()


async def create_admin(
    db: AsyncSession,
    email: str,
    password: str,
    name: str,
    role: AdminRole = AdminRole.ADMIN,
) -> Admin:
    """Insert a new admin, hashing ``password`` here rather than on save."""
    email = normalize_email(email)
    if await get_admin_by_email(db, email):
        raise DuplicateEmail()

    admin = Admin(
        email=email,
        hashed_password=hash_password(password),
        name=name.strip(),
        role=role,
    )
    db.add(admin)
    try:
        await db.commit()
    except IntegrityError:
        # concurrent insert won the unique index
        await db.rollback()
        raise DuplicateEmail()
    await db.refresh(admin)
    logger.info("Admin created: %s (%s)", admin.email, admin.role.value)
    return admin


def set_password(admin: Admin, new_password: str) -> None:
    """Replace the stored hash in memory; the caller commits."""
    admin.hashed_password = hash_password(new_password)
    admin.updated_at = utcnow()


def compare_password(admin: Admin, candidate: str) -> bool:
    return verify_password(candidate, admin.hashed_password)


async def set_role(db: AsyncSession, admin: Admin, role: AdminRole) -> Admin:
    admin.role = role
    admin.updated_at = utcnow()
    db.add(admin)
    await db.commit()
    await db.refresh(admin)
    return admin


async def delete_admin(db: AsyncSession, admin: Admin) -> None:
    await db.delete(admin)
    await db.commit()
    logger.info("Admin deleted: %s", admin.email)

