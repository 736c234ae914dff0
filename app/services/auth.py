"""Authentication: upstream SSO identity or API key.

API key results are cached under "api_key:{key}" in both directions:
valid keys with their id, invalid keys as {"is_valid": false} so repeated
bad attempts do not reach the database until the TTL expires.
"""

import logging

from pydantic import BaseModel

from app.repositories.api_keys import ApiKeyRepository
from app.schemas.api_key import ApiKeyCheck
from app.services.cache import CacheService

logger = logging.getLogger(__name__)

API_KEY_CACHE_PREFIX = "api_key"


class AuthContext(BaseModel):
    """Who made the request and how they proved it."""

    identity_id: str | None = None
    api_key_id: str | None = None
    is_api_key_auth: bool = False


class ApiKeyValidator:
    def __init__(self, repository: ApiKeyRepository, cache: CacheService, ttl: int):
        self._repository = repository
        self._cache = cache
        self._ttl = ttl

    async def validate(self, raw_key: str) -> ApiKeyCheck:
        key = self._cache.make_key(API_KEY_CACHE_PREFIX, raw_key)

        cached = await self._cache.get(key)
        if cached is not None:
            check = ApiKeyCheck.model_validate(cached)
            logger.debug("API key check served from cache | valid=%s", check.is_valid)
            return check

        # Store failures propagate; nothing is cached for them.
        api_key = await self._repository.find_valid_by_key(raw_key)
        if api_key is None:
            check = ApiKeyCheck(is_valid=False)
        else:
            check = ApiKeyCheck(is_valid=True, id=str(api_key.id))

        await self._cache.set(key, check.model_dump(exclude_none=True), self._ttl)
        logger.debug("API key check served from database | valid=%s", check.is_valid)
        return check
