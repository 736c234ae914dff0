"""User entity and request payloads."""

from __future__ import annotations

from pydantic import ConfigDict, EmailStr, Field, model_validator

from app.schemas.common import CamelModel, Entity


class User(Entity):
    email: str
    first_name: str
    last_name: str
    is_active: bool = True


class UserCreate(CamelModel):
    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    first_name: str = Field(min_length=1, max_length=50)
    last_name: str = Field(min_length=1, max_length=50)


class UserUpdate(CamelModel):
    """Partial update: only the fields sent are changed."""

    model_config = ConfigDict(extra="forbid")

    email: EmailStr | None = None
    first_name: str | None = Field(default=None, min_length=1, max_length=50)
    last_name: str | None = Field(default=None, min_length=1, max_length=50)
    is_active: bool | None = None

    @model_validator(mode="after")
    def _check_fields(self) -> UserUpdate:
        if len(self.changes()) != len(self.model_fields_set):
            raise ValueError("Fields must not be null")
        if not self.changes():
            raise ValueError("At least one field must be provided")
        return self

    def changes(self) -> dict:
        """Fields actually sent, by Python name."""
        return self.model_dump(exclude_unset=True, exclude_none=True)
