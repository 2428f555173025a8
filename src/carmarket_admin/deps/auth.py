# src/carmarket_admin/deps/auth.py
from typing import Dict, Optional

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from carmarket_admin.core.db import get_session
from carmarket_admin.core.exceptions import (
    Forbidden,
    InvalidToken,
    MalformedAuthHeader,
    MissingAuthHeader,
)
from carmarket_admin.core.security import decode_access_token
from carmarket_admin.crud.admin import get_admin_by_id
from carmarket_admin.models.admin import Admin


def parse_bearer(authorization: Optional[str]) -> str:
    if not authorization:
        raise MissingAuthHeader()
    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
        raise MalformedAuthHeader()
    return parts[1]


async def get_current_admin(
    request: Request,
    authorization: Optional[str] = Header(default=None),
) -> Dict[str, str]:
    """Verify the bearer token and expose ``{"id", "email"}`` to the route."""
    token = parse_bearer(authorization)
    claims = decode_access_token(token)
    request.state.admin = claims
    return claims


def admin_id_from_claims(claims: Dict[str, str]) -> int:
    try:
        return int(claims["id"])
    except (KeyError, TypeError, ValueError):
        raise InvalidToken()


async def require_super_admin(
    claims: Dict[str, str] = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> Admin:
    # role is re-read from the database, never trusted from the token
    admin = await get_admin_by_id(db, admin_id_from_claims(claims))
    if admin is None or not admin.is_super_admin:
        raise Forbidden()
    return admin
