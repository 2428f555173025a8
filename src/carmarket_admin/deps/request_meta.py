from fastapi import Request

from carmarket_admin.core.config import settings


def get_client_ip(request: Request) -> str:
    """Client IP; proxy headers count only when the peer is in TRUSTED_PROXIES."""
    peer = request.client.host if request.client else None

    if peer and peer in settings.trusted_proxies:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            return forwarded.split(",")[0].strip()

        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip.strip()

    return peer or "unknown"


def get_user_agent(request: Request) -> str:
    return request.headers.get("User-Agent", "unknown")
