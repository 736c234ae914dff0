"""API key entity: only the hash of the key is ever materialized."""

from datetime import datetime

from pydantic import BaseModel

from app.schemas.common import Entity


class ApiKey(Entity):
    name: str
    key_hash: str
    is_active: bool = True
    expires_at: datetime | None = None


class ApiKeyCheck(BaseModel):
    """Cached outcome of an API key lookup (positive or negative)."""

    is_valid: bool
    id: str | None = None
