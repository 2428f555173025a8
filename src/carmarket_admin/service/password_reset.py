# src/carmarket_admin/service/password_reset.py
"""
Password-reset token lifecycle.

Per admin record the reset fields form a small state machine:

* **none**: no token hash, no expiry, attempts 0.
* **pending**: token hash, expiry one hour out, attempts counter.

Use, expiry and attempt exhaustion all return the record to **none** by
clearing the fields. Only the SHA-256 hash of the raw token is stored;
the raw value exists just long enough to be mailed.

Functions that take a session persist their side effects; ``check_reset_token``
and ``clear_reset_token`` only touch the in-memory record.
"""
import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from carmarket_admin.core.clock import utcnow
from carmarket_admin.core.config import settings
from carmarket_admin.core.exceptions import InvalidOrExpiredToken
from carmarket_admin.core.security import generate_reset_token, hash_reset_token, reset_token_matches
from carmarket_admin.crud.admin import set_password
from carmarket_admin.models.admin import Admin

logger = logging.getLogger(__name__)

RESET_TOKEN_TTL = timedelta(minutes=settings.RESET_TOKEN_EXPIRE_MINUTES)
RESET_REQUEST_COOLDOWN = timedelta(minutes=settings.RESET_REQUEST_COOLDOWN_MINUTES)
MAX_RESET_ATTEMPTS = settings.RESET_MAX_ATTEMPTS


def clear_reset_token(admin: Admin) -> None:
    admin.reset_password_token_hash = None
    admin.reset_password_expires_at = None
    admin.reset_password_attempts = 0


def in_cooldown(admin: Admin, now: Optional[datetime] = None) -> bool:
    last = admin.last_password_reset_request
    if last is None:
        return False
    return (now or utcnow()) - last < RESET_REQUEST_COOLDOWN


async def request_reset(db: AsyncSession, admin: Admin, now: Optional[datetime] = None) -> Optional[str]:
    """
    Issue a fresh reset token for ``admin``.

    Returns the raw token, or ``None`` when the account asked for one within
    the cooldown window; in that case nothing is written. Callers must answer
    both outcomes identically.
    """
    now = now or utcnow()
    if in_cooldown(admin, now):
        logger.info("Password reset throttled for %s", admin.email)
        return None

    raw_token = generate_reset_token()
    admin.reset_password_token_hash = hash_reset_token(raw_token)
    admin.reset_password_expires_at = now + RESET_TOKEN_TTL
    admin.reset_password_attempts = 0
    admin.last_password_reset_request = now
    db.add(admin)
    await db.commit()
    logger.info("Password reset token issued for %s", admin.email)
    return raw_token


async def abandon_reset(db: AsyncSession, admin: Admin, previous_request: Optional[datetime]) -> None:
    """Undo ``request_reset`` after the token could not be delivered."""
    clear_reset_token(admin)
    admin.last_password_reset_request = previous_request
    db.add(admin)
    await db.commit()


def check_reset_token(admin: Admin, raw_token: str, now: Optional[datetime] = None) -> bool:
    """
    Validate ``raw_token`` against the pending reset on ``admin`` in memory.

    Expired or exhausted tokens are cleared. Otherwise the attempt counter is
    incremented before the hash comparison, so a wrong guess still spends
    an attempt.
    """
    if not admin.has_pending_reset:
        return False

    now = now or utcnow()
    expires_at = admin.reset_password_expires_at
    if expires_at is None or expires_at <= now:
        clear_reset_token(admin)
        return False

    if (admin.reset_password_attempts or 0) >= MAX_RESET_ATTEMPTS:
        clear_reset_token(admin)
        return False

    admin.reset_password_attempts = (admin.reset_password_attempts or 0) + 1
    return reset_token_matches(raw_token, admin.reset_password_token_hash)


async def validate_reset_token(
    db: AsyncSession, admin: Admin, raw_token: str, now: Optional[datetime] = None
) -> bool:
    had_pending = admin.has_pending_reset
    valid = check_reset_token(admin, raw_token, now)
    if had_pending:
        db.add(admin)
        await db.commit()
    return valid


async def consume_reset_token(
    db: AsyncSession,
    admin: Admin,
    raw_token: str,
    new_password: str,
    now: Optional[datetime] = None,
) -> Admin:
    """
    Spend the token: set the new password and clear the reset fields in one
    commit. On any failure the validation side effects are still persisted
    and ``InvalidOrExpiredToken`` is raised.
    """
    had_pending = admin.has_pending_reset
    if not check_reset_token(admin, raw_token, now):
        if had_pending:
            db.add(admin)
            await db.commit()
        raise InvalidOrExpiredToken()

    set_password(admin, new_password)
    clear_reset_token(admin)
    db.add(admin)
    await db.commit()
    await db.refresh(admin)
    logger.info("Password reset completed for %s", admin.email)
    return admin
