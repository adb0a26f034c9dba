import pytest
from fastapi import HTTPException
from redis.exceptions import ConnectionError as RedisConnectionError

from dareon.db.redis_client import RedisClient
from dareon.utils.rate_limit import RateLimiter

from conftest import build_user


class FakeRedis:
    def __init__(self):
        self.counters = {}
        self.expiries = {}

    async def incr_with_ttl(self, key, ttl_seconds):
        self.counters[key] = self.counters.get(key, 0) + 1
        self.expiries.setdefault(key, ttl_seconds)
        return self.counters[key]


class DownRedis:
    async def incr_with_ttl(self, key, ttl_seconds):
        return None


@pytest.mark.asyncio
async def test_allows_up_to_the_limit_then_refuses():
    redis = FakeRedis()
    limiter = RateLimiter(requests=2, window_seconds=60, scope="command", client=redis)

    assert await limiter.hit("u1") is True
    assert await limiter.hit("u1") is True
    assert await limiter.hit("u1") is False
    assert redis.expiries == {"rate:command:u1": 60}


@pytest.mark.asyncio
async def test_counters_are_per_user():
    limiter = RateLimiter(requests=1, window_seconds=60, client=FakeRedis())

    assert await limiter.hit("u1") is True
    assert await limiter.hit("u2") is True
    assert await limiter.hit("u1") is False


@pytest.mark.asyncio
async def test_redis_outage_allows_requests():
    limiter = RateLimiter(requests=1, window_seconds=60, client=DownRedis())

    for _ in range(5):
        assert await limiter.hit("u1") is True


@pytest.mark.asyncio
async def test_dependency_raises_429_when_exhausted():
    user = build_user()
    limiter = RateLimiter(requests=1, window_seconds=30, client=FakeRedis())

    assert await limiter(user) is user
    with pytest.raises(HTTPException) as exc_info:
        await limiter(user)
    assert exc_info.value.status_code == 429
    assert exc_info.value.detail == "Too many requests. Please try again in 30 seconds"


class FakePipeline:
    """Queues INCR/TTL and applies them together on execute()."""

    def __init__(self, server):
        self.server = server
        self.commands = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    def incr(self, key):
        self.commands.append(("incr", key))
        return self

    def ttl(self, key):
        self.commands.append(("ttl", key))
        return self

    async def execute(self):
        results = []
        for name, key in self.commands:
            if name == "incr":
                self.server.counters[key] = self.server.counters.get(key, 0) + 1
                results.append(self.server.counters[key])
            else:
                results.append(self.server.ttls.get(key, -1))
        self.commands = []
        return results


class FakeRedisServer:
    """Inner redis.asyncio client whose EXPIRE can be made to fail."""

    def __init__(self, expire_failures=0):
        self.counters = {}
        self.ttls = {}
        self.expire_failures = expire_failures
        self.expire_calls = 0

    def pipeline(self, transaction=True):
        assert transaction is True
        return FakePipeline(self)

    async def expire(self, key, seconds):
        self.expire_calls += 1
        if self.expire_failures:
            self.expire_failures -= 1
            raise RedisConnectionError("connection reset")
        self.ttls[key] = seconds
        return True


def _wrap(server):
    wrapper = RedisClient(url="redis://unused:6379/0")
    wrapper._client = server
    return wrapper


@pytest.mark.asyncio
async def test_counter_sets_ttl_once():
    server = FakeRedisServer()
    wrapper = _wrap(server)

    assert await wrapper.incr_with_ttl("rate:command:u1", 60) == 1
    assert await wrapper.incr_with_ttl("rate:command:u1", 60) == 2

    assert server.ttls == {"rate:command:u1": 60}
    assert server.expire_calls == 1


@pytest.mark.asyncio
async def test_failed_expire_is_repaired_on_next_hit():
    server = FakeRedisServer(expire_failures=1)
    limiter = RateLimiter(requests=3, window_seconds=60, scope="command", client=_wrap(server))

    # a failed EXPIRE reports Redis as unavailable, so the hit is allowed
    assert await limiter.hit("u1") is True
    assert server.ttls == {}

    assert await limiter.hit("u1") is True
    assert server.ttls == {"rate:command:u1": 60}

    outcomes = [await limiter.hit("u1") for _ in range(3)]
    assert outcomes == [True, False, False]
