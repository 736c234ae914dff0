"""FastAPI dependency providers.

The engine/session factory and the cache service are process-wide; each
request gets lightweight repositories and services bound to them. Tests
swap any of these through `app.dependency_overrides`.
"""

import time

from app.config import settings
from app.database import async_session_factory, check_db_health
from app.repositories.api_keys import ApiKeyRepository
from app.repositories.users import UserRepository
from app.services.auth import ApiKeyValidator
from app.services.cache import cache_service
from app.services.health import HealthService
from app.services.users import UserService

STARTED_AT = time.monotonic()


def get_user_service() -> UserService:
    return UserService(UserRepository(async_session_factory), cache_service, settings.entity_cache_ttl)


def get_api_key_validator() -> ApiKeyValidator:
    return ApiKeyValidator(ApiKeyRepository(async_session_factory), cache_service, settings.api_key_cache_ttl)


def get_health_service() -> HealthService:
    return HealthService(check_db_health, cache_service.check_health, started_at=STARTED_AT)
