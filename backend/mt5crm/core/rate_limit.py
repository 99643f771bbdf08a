"""
MT5 CRM Backend - Rate Limiting

Fixed-window per-IP request limit on the API prefix, counted in Redis.
Without Redis the counter reads 0 and every request passes.
"""
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger
from redis.exceptions import RedisError

from mt5crm.config import settings
from mt5crm.db.redis_client import redis_client


def client_ip(request: Request) -> str:
    """Peer address; X-Forwarded-For only when the proxy is trusted."""
    if settings.RATE_LIMIT_TRUST_FORWARDED:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def install_rate_limit(app: FastAPI) -> None:
    """Register the rate-limit middleware on the application."""

    @app.middleware("http")
    async def rate_limit(request: Request, call_next):
        if not settings.RATE_LIMIT_ENABLED or not request.url.path.startswith(settings.API_PREFIX):
            return await call_next(request)

        ip = client_ip(request)
        try:
            count = await redis_client.increment_rate_limit(ip, settings.RATE_LIMIT_WINDOW_SECONDS)
        except RedisError as e:
            logger.warning(f"Rate limit check skipped, Redis error: {e}")
            count = 0

        if count > settings.RATE_LIMIT_MAX_REQUESTS:
            logger.warning(f"Rate limit exceeded: ip={ip} path={request.url.path} count={count}")
            return JSONResponse(
                status_code=429,
                content={
                    "detail": "Too many requests from this IP, please try again later.",
                    "code": "RATE_LIMIT_EXCEEDED",
                },
                headers={"Retry-After": str(settings.RATE_LIMIT_WINDOW_SECONDS)},
            )

        return await call_next(request)
