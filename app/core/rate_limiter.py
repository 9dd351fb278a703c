# app/core/rate_limiter.py

from slowapi import Limiter
from slowapi.util import get_remote_address
from app.core.config import settings
from loguru import logger

# Per-route limits
REGISTER_LIMIT = "5/minute"
LOGIN_LIMIT = "10/minute"
FORGOT_PASSWORD_LIMIT = "3/minute"


# ----------------------------------------------------------------
# 1. CLIENT IP IDENTIFICATION
# ----------------------------------------------------------------
def get_real_ip(request):
    """
    Client IP behind proxies: X-Forwarded-For (leftmost entry) first, then
    X-Real-IP, then the socket peer.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    return get_remote_address(request)


# ----------------------------------------------------------------
# 2. STORAGE (Redis when configured, memory otherwise)
# ----------------------------------------------------------------
def build_limiter() -> Limiter:
    storage_uri = settings.REDIS_URL

    # Managed Redis wants TLS outside local development
    if storage_uri and storage_uri.startswith("redis://") and settings.ENV == "prod":
        storage_uri = storage_uri.replace("redis://", "rediss://", 1)

    if not settings.RATE_LIMIT_ENABLED:
        logger.warning("Rate limiting disabled (RATE_LIMIT_ENABLED=false)")

    if storage_uri:
        logger.info("Initializing rate limiter with Redis storage")
        return Limiter(
            key_func=get_real_ip,
            storage_uri=storage_uri,
            strategy="fixed-window",
            storage_options={"socket_connect_timeout": 5, "retry_on_timeout": True},
            enabled=settings.RATE_LIMIT_ENABLED,
        )

    logger.info("REDIS_URL not set. Using in-memory rate limiting.")
    return Limiter(key_func=get_real_ip, enabled=settings.RATE_LIMIT_ENABLED)


limiter = build_limiter()
