# src/carmarket_admin/core/security.py
import hashlib
import hmac
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any

from jose import jwt, JWTError
from passlib.context import CryptContext

from carmarket_admin.core.config import settings
from carmarket_admin.core.exceptions import InvalidToken

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)

ALGORITHM = settings.JWT_ALGORITHM
ACCESS_EXPIRE_MINUTES = settings.ACCESS_TOKEN_EXPIRE_MINUTES
RESET_TOKEN_BYTES = 32


# Password
def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: Optional[str]) -> bool:
    if not hashed:
        return False
    try:
        return pwd_context.verify(password, hashed)
    except ValueError:
        # unrecognised or corrupted hash counts as a mismatch
        return False


def _signing_secret() -> str:
    secret = settings.JWT_SECRET
    if not secret:
        raise RuntimeError("JWT_SECRET not configured")
    return secret


# Session tokens
def create_access_token(admin_id: Any, email: str, expires_delta: Optional[timedelta] = None) -> str:
    secret = _signing_secret()
    iat = datetime.now(timezone.utc)
    exp = iat + (expires_delta or timedelta(minutes=ACCESS_EXPIRE_MINUTES))
    payload = {
        "id": str(admin_id),
        "email": email,
        "iat": int(iat.timestamp()),
        "exp": int(exp.timestamp()),
    }
    return jwt.encode(payload, secret, algorithm=ALGORITHM)


def decode_access_token(token: str) -> Dict[str, str]:
    """
    Verify a session token and return ``{"id": ..., "email": ...}``.
    Expired, tampered and garbage tokens all raise ``InvalidToken``.
    """
    secret = _signing_secret()
    try:
        payload = jwt.decode(token, secret, algorithms=[ALGORITHM])
    except JWTError:
        raise InvalidToken()

    admin_id = payload.get("id")
    email = payload.get("email")
    if not admin_id or not email:
        raise InvalidToken()
    return {"id": admin_id, "email": email}


# Reset tokens
def generate_reset_token() -> str:
    return secrets.token_hex(RESET_TOKEN_BYTES)


def hash_reset_token(raw_token: str) -> str:
    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()


def reset_token_matches(raw_token: str, stored_hash: Optional[str]) -> bool:
    if not stored_hash:
        return False
    return hmac.compare_digest(hash_reset_token(raw_token), stored_hash)
