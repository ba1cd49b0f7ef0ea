import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from app.infrastructure.rate_limit.rate_limiter import (
    MemoryRateLimiter,
    RedisRateLimiter,
    make_rate_limiter,
    rate_limit_key,
)


class _Clock:
    def __init__(self, now: float = 1_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class _FakeRedis:
    """INCR/PEXPIRE/PTTL over a dict, with a hand-driven clock (ms)."""

    def __init__(self, clock: _Clock):
        self.clock = clock
        self.values: dict[str, int] = {}
        self.expires: dict[str, float] = {}

    def _expire_if_due(self, key):
        at = self.expires.get(key)
        if at is not None and self.clock.now * 1000 >= at:
            self.values.pop(key, None)
            self.expires.pop(key, None)

    async def incr(self, key):
        self._expire_if_due(key)
        self.values[key] = self.values.get(key, 0) + 1
        return self.values[key]

    async def pexpire(self, key, ms):
        self.expires[key] = self.clock.now * 1000 + ms
        return True

    async def pttl(self, key):
        self._expire_if_due(key)
        if key not in self.values:
            return -2
        if key not in self.expires:
            return -1
        return int(self.expires[key] - self.clock.now * 1000)

    async def aclose(self):
        return None


class _DownRedis:
    async def incr(self, key):
        raise RedisConnectionError("connection refused")


@pytest.mark.anyio
async def test_memory_limiter_allows_up_to_limit_then_rejects():
    clock = _Clock()
    limiter = MemoryRateLimiter(limit=3, window_sec=60, clock=clock)

    results = [await limiter.hit("user:a") for _ in range(4)]

    assert [r.success for r in results] == [True, True, True, False]
    assert [r.remaining for r in results] == [2, 1, 0, 0]
    assert results[-1].reset_at == 1_060.0
    assert results[-1].retry_after(now=1_000.0) == 60


@pytest.mark.anyio
async def test_memory_limiter_window_resets_and_keys_are_independent():
    clock = _Clock()
    limiter = MemoryRateLimiter(limit=1, window_sec=10, clock=clock)

    assert (await limiter.hit("user:a")).success
    assert not (await limiter.hit("user:a")).success
    assert (await limiter.hit("user:b")).success

    clock.now += 11
    assert (await limiter.hit("user:a")).success


@pytest.mark.anyio
async def test_memory_limiters_do_not_share_state():
    a = MemoryRateLimiter(limit=1, window_sec=60)
    b = MemoryRateLimiter(limit=1, window_sec=60)

    await a.hit("user:x")

    assert (await b.hit("user:x")).success


@pytest.mark.anyio
async def test_redis_limiter_counts_in_a_namespaced_window():
    clock = _Clock()
    fake = _FakeRedis(clock)
    limiter = RedisRateLimiter(client=fake, limit=2, window_sec=60, namespace="t:", clock=clock)

    first = await limiter.hit("user:a")
    second = await limiter.hit("user:a")
    third = await limiter.hit("user:a")

    assert (first.success, second.success, third.success) == (True, True, False)
    assert first.remaining == 1 and third.remaining == 0
    assert "t:user:a" in fake.values
    assert third.reset_at == pytest.approx(1_060.0)

    clock.now += 61
    assert (await limiter.hit("user:a")).success


@pytest.mark.anyio
async def test_redis_limiter_repairs_missing_expiry():
    clock = _Clock()
    fake = _FakeRedis(clock)
    fake.values["moviebox:ratelimit:user:a"] = 1  # left without a TTL
    limiter = RedisRateLimiter(client=fake, limit=5, window_sec=30, clock=clock)

    result = await limiter.hit("user:a")

    assert result.success and result.remaining == 3
    assert "moviebox:ratelimit:user:a" in fake.expires


@pytest.mark.anyio
async def test_redis_limiter_fails_open():
    limiter = RedisRateLimiter(client=_DownRedis(), limit=1, window_sec=60)

    result = await limiter.hit("user:a")

    assert result.success
    assert result.remaining == 1


def test_rate_limit_keys():
    assert rate_limit_key("u1", "1.2.3.4") == "user:u1"
    assert rate_limit_key(None, "1.2.3.4, 10.0.0.1") == "ip:1.2.3.4"
    assert rate_limit_key(None, None) == "ip:unknown"


def test_factory_requires_url_for_redis():
    with pytest.raises(RuntimeError):
        make_rate_limiter(use_redis=True, redis_url=None, limit=1, window_sec=1)
    assert isinstance(
        make_rate_limiter(use_redis=False, redis_url=None, limit=1, window_sec=1),
        MemoryRateLimiter,
    )


@pytest.mark.anyio
async def test_result_headers():
    limiter = MemoryRateLimiter(limit=10, window_sec=60, clock=_Clock(1_000.0))

    result = await limiter.hit("user:a")

    assert result.headers() == {
        "X-RateLimit-Limit": "10",
        "X-RateLimit-Remaining": "9",
        "X-RateLimit-Reset": "1060000",
    }
