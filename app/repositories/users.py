"""User repository: mapping for the `users` table plus natural-key lookups."""

import logging
from collections.abc import Mapping
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models.user import UserRecord
from app.repositories.base import Repository
from app.schemas.common import Filter, FilterOperator
from app.schemas.user import User

logger = logging.getLogger(__name__)

_WRITABLE = ("email", "first_name", "last_name")

USER_FIELD_ALIASES = {
    "id": "user_id",
    "firstName": "first_name",
    "lastName": "last_name",
    "isActive": "is_active",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
}


def user_from_row(row: Mapping[str, Any]) -> User:
    return User(
        id=row["user_id"],
        email=row["email"],
        first_name=row["first_name"],
        last_name=row["last_name"],
        is_active=bool(row["is_active"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def user_to_row(data: Mapping[str, Any]) -> dict[str, Any]:
    """Only fields that are actually set; id and timestamps are never written."""
    row = {field: data[field] for field in _WRITABLE if data.get(field) is not None}
    if data.get("is_active") is not None:
        row["is_active"] = bool(data["is_active"])
    return row


class UserRepository(Repository[User]):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        super().__init__(
            session_factory,
            table=UserRecord.__table__,
            id_column="user_id",
            entity_model=User,
            row_to_entity=user_from_row,
            entity_to_row=user_to_row,
            field_aliases=USER_FIELD_ALIASES,
        )

    async def find_by_email(self, email: str) -> User | None:
        logger.debug("Finding user by email")
        return await self.find_first([Filter(field="email", operator=FilterOperator.EQ, value=email)])

    async def find_active_users(self) -> list[User]:
        return await self.find_where([Filter(field="is_active", operator=FilterOperator.EQ, value=True)])
