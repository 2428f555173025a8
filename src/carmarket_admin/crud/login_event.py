# src/carmarket_admin/crud/login_event.py
from typing import Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from carmarket_admin.core.validation import normalize_email
from carmarket_admin.models.admin import Admin
from carmarket_admin.models.login_event import LoginEvent, LoginStatus

UNKNOWN_ADMIN_NAME = "Unknown"
DEFAULT_EVENT_PAGE_SIZE = 100
MAX_EVENT_PAGE_SIZE = 500


async def record_login_event(
    db: AsyncSession,
    email: str,
    status: LoginStatus,
    admin: Optional[Admin] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
    failure_reason: Optional[str] = None,
) -> LoginEvent:
    event = LoginEvent(
        admin_id=admin.id if admin else None,
        email=normalize_email(email),
        admin_name=admin.name if admin else UNKNOWN_ADMIN_NAME,
        ip_address=ip_address,
        user_agent=user_agent,
        status=status,
        failure_reason=failure_reason,
    )
    db.add(event)
    await db.commit()
    return event


async def list_login_events(
    db: AsyncSession,
    email: Optional[str] = None,
    skip: int = 0,
    limit: int = DEFAULT_EVENT_PAGE_SIZE,
) -> Sequence[LoginEvent]:
    query = select(LoginEvent).order_by(LoginEvent.timestamp.desc(), LoginEvent.id.desc())
    if email:
        query = query.where(LoginEvent.email == normalize_email(email))
    result = await db.execute(query.offset(skip).limit(limit))
    return result.scalars().all()
