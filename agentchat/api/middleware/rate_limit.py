"""Per-caller request limits for the API."""

import time
from typing import NamedTuple

import structlog
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from agentchat.cache import CacheClient, get_cache
from agentchat.config import settings

logger = structlog.get_logger()

CHAT_PATH = "/api/chat"


class Policy(NamedTuple):
    bucket: str
    limit: int
    window: int


class Decision(NamedTuple):
    allowed: bool
    remaining: int
    reset_at: int

    def headers(self, limit: int) -> dict[str, str]:
        return {
            "X-RateLimit-Limit": str(limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset_at),
        }


def policy_for(request: Request) -> Policy:
    """Model calls get their own, larger hourly budget."""
    if request.method == "POST" and request.url.path == CHAT_PATH:
        return Policy("model", settings.chat_rate_limit_requests, settings.chat_rate_limit_window_seconds)
    return Policy("api", settings.rate_limit_requests, settings.rate_limit_window_seconds)


def caller_key(request: Request) -> str:
    """Token prefix for authenticated callers, client address otherwise."""
    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    if scheme == "Bearer" and token:
        return f"key:{token[:13]}"

    forwarded = request.headers.get("X-Forwarded-For", "")
    host = forwarded.split(",")[0].strip() or (request.client.host if request.client else "unknown")
    return f"ip:{host}"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Fixed-window counters in Redis. Requests pass when Redis is unavailable."""

    def __init__(self, app, cache: CacheClient | None = None):
        super().__init__(app)
        self._cache = cache

    @property
    def cache(self) -> CacheClient:
        return self._cache or get_cache()

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if not path.startswith("/api"):
            return await call_next(request)

        caller = caller_key(request)
        policy = policy_for(request)
        try:
            decision = await self._consume(caller, policy)
        except Exception as e:
            logger.warning("rate_limit_check_failed", error=str(e))
            return await call_next(request)

        headers = decision.headers(policy.limit)
        if not decision.allowed:
            logger.info("rate_limit_exceeded", identifier=caller, path=path, bucket=policy.bucket)
            retry_after = max(0, decision.reset_at - int(time.time()))
            return JSONResponse(
                {"detail": "Rate limit exceeded"},
                status_code=429,
                headers={**headers, "Retry-After": str(retry_after)},
            )

        response = await call_next(request)
        response.headers.update(headers)
        return response

    async def _consume(self, caller: str, policy: Policy) -> Decision:
        now = int(time.time())
        window_start = now - now % policy.window
        count = await self.cache.incr_window(
            f"ratelimit:{policy.bucket}:{caller}:{window_start}", policy.window
        )
        return Decision(count <= policy.limit, max(0, policy.limit - count), window_start + policy.window)
