"""Cache-aside policy for one entity type.

Reads check the cache first and populate it on a store hit. Writes go to
the repository first and, once the store confirms, delete the cache key.
The new value is never written into the cache on a write, so the next read
always comes from the store. Misses are not cached.
"""

import logging
from collections.abc import Iterable, Mapping
from typing import Any, Generic

from app.repositories.base import Repository
from app.schemas.common import EntityT, Filter, PaginatedResult, PaginationParams
from app.services.cache import CacheService

logger = logging.getLogger(__name__)


class CacheAside(Generic[EntityT]):
    def __init__(
        self,
        cache: CacheService,
        repository: Repository[EntityT],
        entity_type: str,
        ttl: int,
    ):
        self.cache = cache
        self.repository = repository
        self.entity_type = entity_type
        self.ttl = ttl

    def key(self, id: int) -> str:
        return self.cache.make_key(self.entity_type, id)

    async def get(self, id: int) -> EntityT | None:
        key = self.key(id)
        cached = await self.cache.get(key)
        if cached is not None:
            return self.repository.entity_model.model_validate(cached)

        entity = await self.repository.find_by_id(id)
        if entity is not None:
            await self.cache.set(key, entity.model_dump(mode="json"), self.ttl)
        return entity

    async def find_all(
        self,
        filters: Iterable[Filter | Mapping[str, Any]] | None = None,
        pagination: PaginationParams | None = None,
    ) -> PaginatedResult[EntityT]:
        """Pages are never cached: always served by the store."""
        return await self.repository.find_all(filters, pagination)

    async def create(self, data: Mapping[str, Any]) -> EntityT:
        entity = await self.repository.create(data)
        await self.cache.delete(self.key(entity.id))
        return entity

    async def update(self, id: int, data: Mapping[str, Any]) -> EntityT | None:
        entity = await self.repository.update(id, data)
        if entity is not None:
            await self.cache.delete(self.key(id))
            logger.debug("Invalidated %s after update", self.key(id))
        return entity

    async def delete(self, id: int) -> bool:
        deleted = await self.repository.delete(id)
        if deleted:
            await self.cache.delete(self.key(id))
            logger.debug("Invalidated %s after delete", self.key(id))
        return deleted
