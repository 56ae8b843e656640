"""
Rate Limiter - sliding window rate limiting for abuse-prone operations.

This module provides sliding window rate limiting for:
- Advisor invitation creation (per client identifier, usually the caller IP)
- Advisor response submission (per client identifier)

Design:
- Sliding window algorithm (fair and accurate)
- Two backends sharing one contract:
  - Redis sorted sets driven by one atomic Lua script (multi-process deployments)
  - In-process deques guarded by a lock (tests and single-process development)
- Check-and-increment is atomic in both backends, so concurrent callers can
  never both take the last slot
- Fail-open behavior (if Redis is down, allow requests) unless configured otherwise

Usage:
    from app.middleware.rate_limiter import rate_limiter

    result = await rate_limiter.check_invitation_rate_limit("203.0.113.7")

    if not result.allowed:
        raise HTTPException(429, detail="Rate limit exceeded")
"""

import math
import threading
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass

import redis.asyncio as redis

from app.config import settings
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

# How often the in-memory backend drops windows with no live attempts
EVICTION_INTERVAL_SECONDS = 60


@dataclass(frozen=True, slots=True)
class RateLimitResult:
    """Outcome of one rate limit check."""

    allowed: bool
    limit: int
    remaining: int
    retry_after: int | None = None
    window_seconds: int | None = None
    error: str | None = None

    @property
    def info(self) -> dict:
        """Dict form used for logging and X-RateLimit-* headers."""
        info = {
            "allowed": self.allowed,
            "limit": self.limit,
            "remaining": self.remaining,
            "retry_after": self.retry_after,
        }
        if self.window_seconds is not None:
            info["window_seconds"] = self.window_seconds
        if self.error:
            info["error"] = self.error
        return info


class RateLimiter:
    """
    Sliding window rate limiter.

    The sliding window algorithm tracks exact request timestamps,
    providing fair and accurate rate limiting without burst issues.

    Example:
        If limit is 10 per hour and a client made 10 invitations at 10:00:00,
        they can create another one starting at 11:00:01 (not 11:00:00).

    Thread Safety:
        Redis backend uses an atomic Lua script; the in-memory backend holds
        a lock for the whole evict/count/append sequence.
    """

    # Lua script for atomic rate limit check and increment
    # Returns: {allowed (0 or 1), current_count, oldest_timestamp or 0}
    RATE_LIMIT_LUA_SCRIPT = """
    local key = KEYS[1]
    local limit = tonumber(ARGV[1])
    local window_seconds = tonumber(ARGV[2])
    local current_time = tonumber(ARGV[3])
    local unique_id = ARGV[4]

    local window_start = current_time - window_seconds
    redis.call('ZREMRANGEBYSCORE', key, 0, window_start)

    local current_count = redis.call('ZCARD', key)

    if current_count >= limit then
        local oldest_entries = redis.call('ZRANGE', key, 0, 0, 'WITHSCORES')
        local oldest_timestamp = 0
        if #oldest_entries > 0 then
            oldest_timestamp = tonumber(oldest_entries[2])
        end
        return {0, current_count, oldest_timestamp}
    end

    redis.call('ZADD', key, current_time, unique_id)
    redis.call('EXPIRE', key, window_seconds * 2)

    return {1, current_count + 1, 0}
    """

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        fail_open: bool = True,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize rate limiter.

        Args:
            redis_client: Redis client; None selects the in-memory backend
            fail_open: If True, allow requests when the backend fails
            clock: Time source in epoch seconds (overridable in tests)
        """
        self.redis_client = redis_client
        self.fail_open = fail_open
        self._clock = clock
        self._windows: dict[str, deque[float]] = {}
        self._expires_at: dict[str, float] = {}
        self._last_eviction = 0.0
        self._lock = threading.Lock()

    @property
    def backend(self) -> str:
        return "redis" if self.redis_client is not None else "memory"

    def use_redis(self, redis_client: redis.Redis | None) -> None:
        """Switch backends (called from app startup once Redis is up)."""
        self.redis_client = redis_client

    def reset(self) -> None:
        """Forget every in-memory window."""
        with self._lock:
            self._windows.clear()
            self._expires_at.clear()

    async def check_rate_limit(self, key: str, limit: int, window_seconds: int) -> RateLimitResult:
        """
        Check and count one attempt for `key`.

        Args:
            key: Rate limit key (e.g., "invitation:203.0.113.7")
            limit: Attempts allowed per window
            window_seconds: Window length in seconds

        Returns:
            RateLimitResult; a denied attempt is not counted
        """
        if not settings.RATE_LIMIT_ENABLED:
            return RateLimitResult(allowed=True, limit=limit, remaining=limit, window_seconds=window_seconds)

        if self.redis_client is None:
            return self._check_in_memory(key, limit, window_seconds)

        try:
            return await self._check_redis(key, limit, window_seconds)
        except redis.RedisError as e:
            logger.error(
                "Rate limiter Redis error",
                error=str(e),
                error_type=type(e).__name__,
                key=key,
                limit=limit,
            )
            if self.fail_open:
                return RateLimitResult(allowed=True, limit=limit, remaining=limit, error="rate_limiter_error")
            return RateLimitResult(
                allowed=False,
                limit=limit,
                remaining=0,
                retry_after=window_seconds,
                error="rate_limiter_error",
            )

    async def _check_redis(self, key: str, limit: int, window_seconds: int) -> RateLimitResult:
        redis_key = f"ratelimit:{key}"
        current_time = int(self._clock())
        unique_id = f"{current_time}:{time.time_ns()}"

        result = await self.redis_client.eval(
            self.RATE_LIMIT_LUA_SCRIPT,
            1,
            redis_key,
            limit,
            window_seconds,
            current_time,
            unique_id,
        )

        allowed = bool(result[0])
        current_count = int(result[1])
        oldest_timestamp = int(result[2]) if result[2] else 0

        if not allowed:
            if oldest_timestamp > 0:
                retry_after = max(1, (oldest_timestamp + window_seconds) - current_time)
            else:
                retry_after = window_seconds
            return RateLimitResult(
                allowed=False,
                limit=limit,
                remaining=0,
                retry_after=retry_after,
                window_seconds=window_seconds,
            )

        return RateLimitResult(
            allowed=True,
            limit=limit,
            remaining=max(0, limit - current_count),
            window_seconds=window_seconds,
        )

    def _check_in_memory(self, key: str, limit: int, window_seconds: int) -> RateLimitResult:
        now = self._clock()
        window_start = now - window_seconds

        with self._lock:
            self._evict_expired(now)
            window = self._windows.setdefault(key, deque())
            while window and window[0] <= window_start:
                window.popleft()

            if len(window) >= limit:
                retry_after = max(1, math.ceil(window[0] + window_seconds - now))
                return RateLimitResult(
                    allowed=False,
                    limit=limit,
                    remaining=0,
                    retry_after=retry_after,
                    window_seconds=window_seconds,
                )

            window.append(now)
            self._expires_at[key] = now + window_seconds
            remaining = limit - len(window)

        return RateLimitResult(
            allowed=True,
            limit=limit,
            remaining=remaining,
            window_seconds=window_seconds,
        )

    def _evict_expired(self, now: float) -> None:
        """Drop keys whose newest attempt has left its window. Caller holds _lock."""
        if now - self._last_eviction < EVICTION_INTERVAL_SECONDS:
            return
        self._last_eviction = now

        expired = [key for key, expires_at in self._expires_at.items() if expires_at <= now]
        for key in expired:
            self._windows.pop(key, None)
            del self._expires_at[key]

    async def check_invitation_rate_limit(self, client_identifier: str) -> RateLimitResult:
        """Per-client limit on invitation creation."""
        rate_limits = settings.get_rate_limits()
        return await self.check_rate_limit(
            key=f"invitation:{client_identifier}",
            limit=rate_limits["invitation_per_window"],
            window_seconds=rate_limits["invitation_window_seconds"],
        )

    async def check_response_rate_limit(self, client_identifier: str) -> RateLimitResult:
        """Per-client limit on response submission."""
        rate_limits = settings.get_rate_limits()
        return await self.check_rate_limit(
            key=f"response:{client_identifier}",
            limit=rate_limits["response_per_window"],
            window_seconds=rate_limits["response_window_seconds"],
        )


# Global singleton; app startup swaps in the Redis backend when REDIS_URL is set
rate_limiter = RateLimiter(fail_open=settings.RATE_LIMIT_FAIL_OPEN)
