"""User service: business rules on top of the cache-aside user store."""

import logging

from app.errors import ConflictError, NotFoundError
from app.repositories.users import UserRepository
from app.schemas.common import Filter, PaginatedResult, PaginationParams
from app.schemas.user import User, UserCreate, UserUpdate
from app.services.cache import CacheService
from app.services.cache_aside import CacheAside

logger = logging.getLogger(__name__)

USER_CACHE_PREFIX = "user"


class UserService:
    def __init__(self, repository: UserRepository, cache: CacheService, ttl: int):
        self._repository = repository
        self._users = CacheAside(cache, repository, USER_CACHE_PREFIX, ttl)

    async def get_all_users(
        self,
        page: int = 1,
        limit: int = 10,
        filters: list[Filter] | None = None,
    ) -> PaginatedResult[User]:
        return await self._users.find_all(filters, PaginationParams(page=page, limit=limit))

    async def get_user_by_id(self, id: int) -> User:
        user = await self._users.get(id)
        if user is None:
            raise NotFoundError(f"User with ID {id} not found")
        return user

    async def create_user(self, payload: UserCreate) -> User:
        if await self._repository.find_by_email(payload.email):
            raise ConflictError("Email already exists")

        user = await self._users.create({**payload.model_dump(), "is_active": True})
        logger.info("User created: %d", user.id)
        return user

    async def update_user(self, id: int, payload: UserUpdate) -> User:
        existing = await self._repository.find_by_id(id)
        if existing is None:
            raise NotFoundError(f"User with ID {id} not found")

        changes = payload.changes()
        new_email = changes.get("email")
        if new_email and new_email != existing.email:
            if await self._repository.find_by_email(new_email):
                raise ConflictError("Email already exists")

        user = await self._users.update(id, changes)
        if user is None:
            raise NotFoundError(f"User with ID {id} not found")

        logger.info("User updated: %d", id)
        return user

    async def delete_user(self, id: int):
        if not await self._users.delete(id):
            raise NotFoundError(f"User with ID {id} not found")
        logger.info("User deleted: %d", id)
