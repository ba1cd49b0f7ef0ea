from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Protocol

from redis.asyncio import Redis
from redis.exceptions import RedisError

log = logging.getLogger(__name__)

Clock = Callable[[], float]  # epoch seconds


@dataclass(frozen=True)
class RateLimitResult:
    success: bool
    limit: int
    remaining: int
    reset_at: float  # epoch seconds when the current window ends

    def retry_after(self, now: float | None = None) -> int:
        now = time.time() if now is None else now
        return max(0, int(-(-(self.reset_at - now) // 1)))  # ceil

    def headers(self) -> dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(int(self.reset_at * 1000)),
        }


class RateLimiter(Protocol):
    limit: int
    window_sec: float

    async def hit(self, key: str) -> RateLimitResult: ...


@dataclass
class _Window:
    count: int
    reset_at: float


class MemoryRateLimiter:
    """
    Fixed-window counter held by this instance (one per app, not per module).
    Expired windows are swept on every hit.
    """

    def __init__(self, *, limit: int, window_sec: float, clock: Clock = time.time):
        self.limit = int(limit)
        self.window_sec = float(window_sec)
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._lock = threading.Lock()

    async def hit(self, key: str) -> RateLimitResult:
        now = self._clock()
        with self._lock:
            for k in [k for k, w in self._windows.items() if w.reset_at < now]:
                del self._windows[k]

            current = self._windows.get(key)
            if current is None:
                current = _Window(count=1, reset_at=now + self.window_sec)
                self._windows[key] = current
                return RateLimitResult(True, self.limit, self.limit - 1, current.reset_at)

            if current.count >= self.limit:
                return RateLimitResult(False, self.limit, 0, current.reset_at)

            current.count += 1
            return RateLimitResult(
                True, self.limit, self.limit - current.count, current.reset_at
            )

    def clear(self) -> None:
        with self._lock:
            self._windows.clear()


class RedisRateLimiter:
    """
    Fixed-window counter shared across processes: INCR + PEXPIRE on
    {namespace}{key}. Redis failures fail open.
    """

    def __init__(
        self,
        *,
        client: Redis,
        limit: int,
        window_sec: float,
        namespace: str = "moviebox:ratelimit:",
        clock: Clock = time.time,
    ) -> None:
        self._r = client
        self._ns = namespace
        self.limit = int(limit)
        self.window_sec = float(window_sec)
        self._clock = clock

    def _k(self, key: str) -> str:
        return f"{self._ns}{key}"

    async def hit(self, key: str) -> RateLimitResult:
        k = self._k(key)
        window_ms = int(self.window_sec * 1000)
        now = self._clock()
        try:
            count = int(await self._r.incr(k))
            if count == 1:
                await self._r.pexpire(k, window_ms)
            ttl_ms = int(await self._r.pttl(k))
            if ttl_ms < 0:
                # counter survived without an expiry (crash between INCR and PEXPIRE)
                await self._r.pexpire(k, window_ms)
                ttl_ms = window_ms
        except (RedisError, RuntimeError, OSError) as e:
            log.warning("Rate limiter unavailable, allowing request: %s", e)
            return RateLimitResult(True, self.limit, self.limit, now + self.window_sec)

        reset_at = now + ttl_ms / 1000
        if count > self.limit:
            return RateLimitResult(False, self.limit, 0, reset_at)
        return RateLimitResult(True, self.limit, self.limit - count, reset_at)

    async def aclose(self) -> None:
        try:
            await self._r.aclose()
        except Exception:
            pass


def make_rate_limiter(
    *,
    use_redis: bool,
    redis_url: str | None,
    limit: int,
    window_sec: float,
    namespace: str = "moviebox:ratelimit:",
) -> RateLimiter:
    if use_redis:
        if not redis_url:
            raise RuntimeError("REDIS_URL is required when USE_REDIS_RATE_LIMIT is set")
        from .redis_infra import make_redis_client

        return RedisRateLimiter(
            client=make_redis_client(redis_url),
            limit=limit,
            window_sec=window_sec,
            namespace=namespace,
        )
    return MemoryRateLimiter(limit=limit, window_sec=window_sec)


def rate_limit_key(user_id: str | None, forwarded_for: str | None) -> str:
    if user_id:
        return f"user:{user_id}"
    ip = forwarded_for.split(",")[0].strip() if forwarded_for else "unknown"
    return f"ip:{ip}"
