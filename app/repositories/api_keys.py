"""API key repository: keys are looked up by SHA-256 hash."""

import hashlib
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models.api_key import ApiKeyRecord
from app.repositories.base import Repository
from app.schemas.api_key import ApiKey
from app.schemas.common import Filter, FilterOperator


def hash_api_key(raw_key: str) -> str:
    return hashlib.sha256(raw_key.encode()).hexdigest()


def api_key_from_row(row: Mapping[str, Any]) -> ApiKey:
    return ApiKey(
        id=row["api_key_id"],
        name=row["name"],
        key_hash=row["key_hash"],
        is_active=bool(row["is_active"]),
        expires_at=row["expires_at"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def api_key_to_row(data: Mapping[str, Any]) -> dict[str, Any]:
    row = {}
    if data.get("name") is not None:
        row["name"] = data["name"]
    if data.get("raw_key") is not None:
        row["key_hash"] = hash_api_key(data["raw_key"])
    elif data.get("key_hash") is not None:
        row["key_hash"] = data["key_hash"]
    if data.get("is_active") is not None:
        row["is_active"] = bool(data["is_active"])
    if "expires_at" in data:
        row["expires_at"] = data["expires_at"]
    return row


def _is_expired(expires_at: datetime | None, now: datetime) -> bool:
    if expires_at is None:
        return False
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    return expires_at <= now


class ApiKeyRepository(Repository[ApiKey]):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        super().__init__(
            session_factory,
            table=ApiKeyRecord.__table__,
            id_column="api_key_id",
            entity_model=ApiKey,
            row_to_entity=api_key_from_row,
            entity_to_row=api_key_to_row,
            field_aliases={"id": "api_key_id"},
        )

    async def find_valid_by_key(self, raw_key: str) -> ApiKey | None:
        """Active, unexpired key matching `raw_key`, or None."""
        api_key = await self.find_first([
            Filter(field="key_hash", operator=FilterOperator.EQ, value=hash_api_key(raw_key)),
            Filter(field="is_active", operator=FilterOperator.EQ, value=True),
        ])
        if api_key is None or _is_expired(api_key.expires_at, datetime.now(timezone.utc)):
            return None
        return api_key
