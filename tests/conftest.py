"""Shared test fixtures and configuration."""

import os

import pytest

# In-memory SQLite and no Redis during tests
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("ENVIRONMENT", "test")

from app.database import build_engine, build_session_factory, init_db  # noqa: E402
from app.repositories.api_keys import ApiKeyRepository  # noqa: E402
from app.repositories.users import UserRepository  # noqa: E402
from app.services.cache import CacheService  # noqa: E402


class FakeRedis:
    """Minimal in-process stand-in for redis.asyncio.Redis."""

    def __init__(self):
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.calls: list[tuple] = []

    async def get(self, key):
        self.calls.append(("get", key))
        return self.store.get(key)

    async def setex(self, key, ttl, value):
        self.calls.append(("setex", key, ttl))
        self.store[key] = value
        self.ttls[key] = ttl

    async def delete(self, *keys):
        self.calls.append(("delete", *keys))
        removed = 0
        for key in keys:
            removed += self.store.pop(key, None) is not None
            self.ttls.pop(key, None)
        return removed

    async def exists(self, key):
        return int(key in self.store)

    async def ping(self):
        return True

    async def aclose(self):
        pass


class FailingRedis:
    """Every operation fails as if the connection dropped."""

    async def _fail(self, *args, **kwargs):
        raise ConnectionError("Redis connection refused")

    get = setex = delete = exists = ping = _fail

    async def aclose(self):
        pass


@pytest.fixture
async def engine():
    eng = build_engine("sqlite+aiosqlite://")
    assert await init_db(eng)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def user_repo(session_factory):
    return UserRepository(session_factory)


@pytest.fixture
def api_key_repo(session_factory):
    return ApiKeyRepository(session_factory)


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def memory_cache():
    """Cache service without Redis: in-memory fallback only."""
    return CacheService()


@pytest.fixture
def redis_cache(fake_redis):
    return CacheService(client=fake_redis)


@pytest.fixture
def failing_redis():
    return FailingRedis()


@pytest.fixture
def failing_cache(failing_redis):
    return CacheService(client=failing_redis)


@pytest.fixture
def user_payload():
    return {"email": "ada@example.com", "first_name": "Ada", "last_name": "Lovelace", "is_active": True}
