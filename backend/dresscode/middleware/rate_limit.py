"""
Redis-backed sliding window rate limiter middleware.

Only the endpoints that reach the reasoning backend or change operator state
are limited. Tracks request counts per client IP per minute and fails open
when Redis is unavailable. A limit of 0 disables the middleware.
"""

import time
import logging

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

import redis.asyncio as aioredis

from dresscode.config import settings

logger = logging.getLogger(__name__)

LIMITED_PATHS = frozenset({"/api/check-compliance", "/api/settings"})


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, limit: int | None = None, redis_url: str | None = None):
        super().__init__(app)
        self._redis: aioredis.Redis | None = None
        self.limit = settings.rate_limit_per_minute if limit is None else limit
        self.redis_url = redis_url or settings.redis_url
        self.window = 60  # seconds

    async def _get_redis(self) -> aioredis.Redis | None:
        if self._redis is None:
            try:
                self._redis = aioredis.from_url(self.redis_url, decode_responses=True)
                await self._redis.ping()
            except Exception as exc:
                logger.warning("Rate limiter: Redis unavailable (%s), passing through", exc)
                self._redis = None
        return self._redis

    async def dispatch(self, request: Request, call_next):
        if self.limit <= 0 or request.method != "POST" or request.url.path not in LIMITED_PATHS:
            return await call_next(request)

        r = await self._get_redis()
        if r is None:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        now = time.time()
        key = f"dresscode:ratelimit:{client_ip}"

        try:
            pipe = r.pipeline()
            pipe.zremrangebyscore(key, 0, now - self.window)
            pipe.zadd(key, {str(now): now})
            pipe.zcard(key)
            pipe.expire(key, self.window)
            results = await pipe.execute()
            request_count = results[2]
        except Exception as exc:
            logger.warning("Rate limiter Redis error: %s", exc)
            return await call_next(request)

        if request_count > self.limit:
            return JSONResponse(
                status_code=429,
                content={"message": "Too many compliance checks. Please try again later."},
                headers={"Retry-After": str(self.window)},
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(self.limit)
        response.headers["X-RateLimit-Remaining"] = str(max(0, self.limit - request_count))
        return response
