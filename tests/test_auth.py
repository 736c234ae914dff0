"""Tests for API key validation and its positive/negative caching."""

from datetime import datetime, timedelta, timezone

import pytest

from app.errors import StoreError
from app.repositories.api_keys import ApiKeyRepository, hash_api_key
from app.services.auth import ApiKeyValidator


class CountingApiKeyRepository(ApiKeyRepository):
    def __init__(self, session_factory):
        super().__init__(session_factory)
        self.lookups = 0

    async def find_valid_by_key(self, raw_key):
        self.lookups += 1
        return await super().find_valid_by_key(raw_key)


@pytest.fixture
def keys(session_factory):
    return CountingApiKeyRepository(session_factory)


@pytest.fixture
def validator(keys, redis_cache):
    return ApiKeyValidator(keys, redis_cache, ttl=3600)


class TestHashing:
    def test_hash_is_sha256_hex(self):
        digest = hash_api_key("secret")
        assert len(digest) == 64
        assert digest == hash_api_key("secret")
        assert digest != hash_api_key("Secret")


class TestApiKeyRepository:
    @pytest.mark.asyncio
    async def test_stores_only_hash(self, keys):
        created = await keys.create({"name": "ci", "raw_key": "k-123"})
        assert created.key_hash == hash_api_key("k-123")

    @pytest.mark.asyncio
    async def test_find_valid(self, keys):
        created = await keys.create({"name": "ci", "raw_key": "k-123"})
        assert await keys.find_valid_by_key("k-123") == created
        assert await keys.find_valid_by_key("k-999") is None

    @pytest.mark.asyncio
    async def test_inactive_key_is_invalid(self, keys):
        await keys.create({"name": "ci", "raw_key": "k-123", "is_active": False})
        assert await keys.find_valid_by_key("k-123") is None

    @pytest.mark.asyncio
    async def test_expired_key_is_invalid(self, keys):
        past = datetime.now(timezone.utc) - timedelta(days=1)
        await keys.create({"name": "ci", "raw_key": "k-123", "expires_at": past})
        assert await keys.find_valid_by_key("k-123") is None

    @pytest.mark.asyncio
    async def test_future_expiry_is_valid(self, keys):
        future = datetime.now(timezone.utc) + timedelta(days=1)
        await keys.create({"name": "ci", "raw_key": "k-123", "expires_at": future})
        assert await keys.find_valid_by_key("k-123") is not None


class TestApiKeyValidator:
    @pytest.mark.asyncio
    async def test_invalid_key_cached_for_ttl(self, validator, keys, fake_redis):
        first = await validator.validate("bogus")
        assert first.is_valid is False
        assert fake_redis.ttls["api_key:bogus"] == 3600

        second = await validator.validate("bogus")
        assert second.is_valid is False
        assert keys.lookups == 1

    @pytest.mark.asyncio
    async def test_valid_key_cached_with_id(self, validator, keys, fake_redis):
        created = await keys.create({"name": "ci", "raw_key": "k-123"})

        first = await validator.validate("k-123")
        assert first.is_valid is True
        assert first.id == str(created.id)

        second = await validator.validate("k-123")
        assert second == first
        assert keys.lookups == 1
        assert fake_redis.ttls["api_key:k-123"] == 3600

    @pytest.mark.asyncio
    async def test_works_without_redis(self, keys, failing_cache):
        validator = ApiKeyValidator(keys, failing_cache, ttl=3600)
        await keys.create({"name": "ci", "raw_key": "k-123"})
        assert (await validator.validate("k-123")).is_valid is True
        assert (await validator.validate("nope")).is_valid is False

    @pytest.mark.asyncio
    async def test_store_failure_propagates_and_is_not_cached(self, validator, engine, fake_redis):
        async with engine.begin() as conn:
            await conn.exec_driver_sql("DROP TABLE api_keys")
        with pytest.raises(StoreError):
            await validator.validate("k-123")
        assert "api_key:k-123" not in fake_redis.store
