# src/carmarket_admin/deps/services.py
import logging

from fastapi import Depends, Request

from carmarket_admin.core.config import settings
from carmarket_admin.core.exceptions import RateLimited
from carmarket_admin.core.redis_cache import RateLimiter
from carmarket_admin.deps.request_meta import get_client_ip
from carmarket_admin.service.email import Mailer

logger = logging.getLogger(__name__)


def get_mailer(request: Request) -> Mailer:
    return request.app.state.mailer


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


async def registration_rate_limit(
    request: Request,
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> None:
    ip = get_client_ip(request)
    key = f"register:{ip}"
    if await limiter.hit(key, settings.REGISTER_RATE_LIMIT, settings.REGISTER_RATE_WINDOW_SECONDS):
        logger.warning("Registration rate limit hit for %s", ip)
        raise RateLimited(
            "Too many registration attempts, please try again later.",
            retry_after=await limiter.retry_after(key),
        )
