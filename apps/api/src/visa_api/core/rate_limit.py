"""
Rate Limiting Module

Sliding-window rate limiting backed by Redis sorted sets, with an
in-process fallback when Redis is unavailable.

Applied to officer decision endpoints (status changes, document
verification), payment intent creation, login and registration.
"""

import logging
import time
from collections.abc import Callable

from fastapi import Depends, HTTPException, Request, status

from visa_api.core.auth import CurrentUser, get_current_user
from visa_api.core.redis import get_redis_client

logger = logging.getLogger(__name__)

# In-memory fallback. Format: {key: [timestamp, ...]}
_memory_store: dict[str, list[float]] = {}
# Format: {key: time at which its window becomes empty}
_memory_expiry: dict[str, float] = {}
_SWEEP_INTERVAL_SECONDS = 60
_last_sweep = 0.0


class RateLimitExceeded(HTTPException):
    """Exception raised when a rate limit is exceeded."""

    def __init__(self, limit: int, window_seconds: int):
        super().__init__(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "error": "RATE_LIMIT_EXCEEDED",
                "message": f"Rate limit exceeded. Maximum {limit} requests per {window_seconds} seconds.",
            },
            headers={"Retry-After": str(window_seconds)},
        )


async def _check_rate_limit_redis(client, key: str, limit: int, window_seconds: int) -> bool:
    now = time.time()
    window_start = now - window_seconds

    pipe = client.pipeline()
    pipe.zremrangebyscore(key, 0, window_start)
    pipe.zcard(key)
    pipe.zadd(key, {str(now): now})
    pipe.expire(key, window_seconds)

    results = await pipe.execute()
    current_count = results[1]

    return current_count < limit


def _sweep_memory_store(now: float) -> None:
    """Drop keys whose window has emptied. Runs at most once per interval."""
    global _last_sweep
    if now - _last_sweep < _SWEEP_INTERVAL_SECONDS:
        return
    _last_sweep = now

    expired = [key for key, expires_at in _memory_expiry.items() if expires_at <= now]
    for key in expired:
        _memory_store.pop(key, None)
        _memory_expiry.pop(key, None)


def _check_rate_limit_memory(key: str, limit: int, window_seconds: int) -> bool:
    """
    Check rate limit using in-memory storage.

    Does not coordinate across multiple server instances.
    """
    now = time.time()
    window_start = now - window_seconds
    _sweep_memory_store(now)

    entries = [ts for ts in _memory_store.get(key, []) if ts > window_start]

    if len(entries) >= limit:
        _memory_store[key] = entries
        return False

    entries.append(now)
    _memory_store[key] = entries
    _memory_expiry[key] = now + window_seconds
    return True


async def check_rate_limit(key: str, limit: int, window_seconds: int) -> bool:
    """
    Check if a request is within rate limits.

    Tries Redis first, falls back to in-memory storage.

    Returns:
        True if the request is allowed, False if the limit is exceeded
    """
    client = get_redis_client()

    if client is not None:
        try:
            return await _check_rate_limit_redis(client, key, limit, window_seconds)
        except Exception as e:
            logger.warning(f"Redis rate limit check failed, using memory: {e}")

    return _check_rate_limit_memory(key, limit, window_seconds)


def user_rate_limit(action: str, limit: int, window_seconds: int) -> Callable:
    """
    Dependency factory limiting an action per authenticated user.

    Usage:
        @router.put("/{id}/status")
        async def update_status(
            user: CurrentUser = Depends(user_rate_limit("status", 30, 60)),
        ): ...

    Raises:
        RateLimitExceeded: When the user exceeds the limit (HTTP 429)
    """

    async def dependency(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        key = f"rate_limit:{action}:{user.id}"
        if not await check_rate_limit(key, limit, window_seconds):
            logger.warning(f"Rate limit exceeded for user {user.id} on '{action}'")
            raise RateLimitExceeded(limit, window_seconds)
        return user

    return dependency


def ip_rate_limit(action: str, limit: int, window_seconds: int) -> Callable:
    """Dependency factory limiting an unauthenticated action per client IP."""

    async def dependency(request: Request) -> None:
        client_ip = request.client.host if request.client else "unknown"
        key = f"rate_limit:{action}:{client_ip}"
        if not await check_rate_limit(key, limit, window_seconds):
            logger.warning(f"Rate limit exceeded for {client_ip} on '{action}'")
            raise RateLimitExceeded(limit, window_seconds)

    return dependency


__all__ = [
    "RateLimitExceeded",
    "check_rate_limit",
    "ip_rate_limit",
    "user_rate_limit",
]
