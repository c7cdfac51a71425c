from __future__ import annotations

import logging
import time
from typing import Awaitable, Callable

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from assetvault.core.config import settings
from assetvault.db.redis import redis_client

logger = logging.getLogger(__name__)


def route_group(path: str, api_prefix: str = "") -> str:
    rel = path[len(api_prefix) :] if api_prefix and path.startswith(api_prefix) else path
    if rel.startswith("/upload"):
        return "upload"
    if rel == "/account/delete":
        return "account-delete"
    return "default"


def group_limit(group: str) -> int:
    return {
        "upload": settings.rate_limit_upload_per_minute,
        "account-delete": settings.rate_limit_account_delete_per_minute,
    }.get(group, settings.rate_limit_per_minute)


class RedisRateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, api_prefix: str | None = None):
        super().__init__(app)
        self.api_prefix = settings.api_prefix if api_prefix is None else api_prefix

    @staticmethod
    def _resolve_subject(request: Request) -> str:
        """
        Prefer the presented token over the address.
        Uploads usually come through a proxy, so many users share one IP.
        """
        auth = (request.headers.get("authorization") or "").strip()
        if auth.lower().startswith("bearer "):
            token = auth[7:].strip()
            if token:
                # Do not parse claims here; just isolate per presented token.
                return f"jwt:{token}"

        forwarded = (request.headers.get("x-forwarded-for") or "").strip()
        if forwarded:
            return f"ip:{forwarded.split(',')[0].strip()}"

        real_ip = (request.headers.get("x-real-ip") or "").strip()
        if real_ip:
            return f"ip:{real_ip}"

        ip = request.client.host if request.client else "unknown"
        return f"ip:{ip}"

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable]):
        if request.url.path.startswith("/health") or request.url.path.startswith("/metrics"):
            return await call_next(request)

        group = route_group(request.url.path, self.api_prefix)
        subject = self._resolve_subject(request)
        minute_bucket = int(time.time() // 60)
        key = f"rl:{group}:{subject}:{minute_bucket}"

        try:
            count = await redis_client.incr(key)
            if count == 1:
                await redis_client.expire(key, 65)
            if count > group_limit(group):
                return JSONResponse(
                    status_code=429,
                    content={"detail": "Rate limit exceeded"},
                    headers={"Retry-After": "60"},
                )
        except Exception:
            # Fail-open when Redis is unavailable.
            logger.warning("Rate limiter unavailable, letting request through", exc_info=True)

        return await call_next(request)
