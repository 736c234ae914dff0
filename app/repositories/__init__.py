"""Data access layer: a generic repository plus one module per entity."""

from app.repositories.api_keys import ApiKeyRepository
from app.repositories.base import Repository, build_where_clause
from app.repositories.users import UserRepository

__all__ = ["Repository", "build_where_clause", "UserRepository", "ApiKeyRepository"]
