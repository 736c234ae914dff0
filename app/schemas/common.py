"""Pydantic models shared by every resource: entities, filters, pagination."""

from __future__ import annotations

import math
from datetime import datetime
from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Entity(CamelModel):
    """A stored record. `id` and timestamps are assigned by the store."""

    id: int
    created_at: datetime | None = None
    updated_at: datetime | None = None


EntityT = TypeVar("EntityT", bound=Entity)


# ═══════════════ FILTERS ═══════════════

class FilterOperator(str, Enum):
    EQ = "eq"
    NE = "ne"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    LIKE = "like"
    IN = "in"


class Filter(BaseModel):
    """Single field/operator/value predicate. Filters in a list are ANDed."""

    field: str
    operator: FilterOperator
    value: Any = None


# ═══════════════ PAGINATION ═══════════════

class PaginationParams(BaseModel):
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class PageInfo(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int

    @classmethod
    def build(cls, params: PaginationParams, total: int) -> PageInfo:
        return cls(
            page=params.page,
            limit=params.limit,
            total=total,
            total_pages=math.ceil(total / params.limit),
        )


class PaginatedResult(CamelModel, Generic[EntityT]):
    data: list[EntityT] = Field(default_factory=list)
    pagination: PageInfo
