"""Generic repository: uniform CRUD over one table.

An entity repository is a `Repository` composed with:
  - the SQLAlchemy `Table` and its primary-key column name
  - the Pydantic entity model
  - row → entity and entity → row mapping functions
  - optional aliases from entity field names to column names

Filter translation and pagination live here so entity repositories never
build WHERE clauses by hand. Each call opens its own session and commits
as a single unit; a miss is a return value (None / False), constraint
violations are raised as ConflictError and other store failures as
StoreError.
"""

import logging
from collections.abc import Callable, Iterable, Mapping
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Generic

import pydantic
from sqlalchemy import Column, Table, and_, delete, func, insert, select, true, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.sql.elements import ColumnElement

from app.errors import ConflictError, InvalidFilterError, StoreError
from app.schemas.common import (
    EntityT,
    Filter,
    FilterOperator,
    PageInfo,
    PaginatedResult,
    PaginationParams,
)

logger = logging.getLogger(__name__)

RowToEntity = Callable[[Mapping[str, Any]], EntityT]
EntityToRow = Callable[[Mapping[str, Any]], dict[str, Any]]

_TRUTHY = {"true", "1", "yes"}
_FALSY = {"false", "0", "no"}

_COMPARATORS: dict[FilterOperator, Callable[[Column, Any], ColumnElement[bool]]] = {
    FilterOperator.EQ: lambda col, v: col == v,
    FilterOperator.NE: lambda col, v: col != v,
    FilterOperator.GT: lambda col, v: col > v,
    FilterOperator.GTE: lambda col, v: col >= v,
    FilterOperator.LT: lambda col, v: col < v,
    FilterOperator.LTE: lambda col, v: col <= v,
    FilterOperator.LIKE: lambda col, v: col.like(v),
    FilterOperator.IN: lambda col, v: col.in_(v),
}


# ═══════════════ FILTER TRANSLATION ═══════════════

def build_where_clause(
    table: Table,
    filters: Iterable[Filter | Mapping[str, Any]] | None,
    field_aliases: Mapping[str, str] | None = None,
) -> ColumnElement[bool]:
    """Translate filters into one boolean clause, ANDed together.

    Pure: no I/O and no state, so equal input always compiles to equal SQL.
    No filters gives an unconditional clause. Unknown fields or operators
    raise InvalidFilterError instead of being dropped.
    """
    clauses = []
    for raw in filters or ():
        f = _as_filter(raw)
        column_name = (field_aliases or {}).get(f.field, f.field)
        if column_name not in table.c:
            raise InvalidFilterError(
                f"Unknown filter field: {f.field}",
                [{"field": f.field, "message": "Field is not filterable"}],
            )
        column = table.c[column_name]
        value = _coerce_value(column, f.operator, f.value, f.field)
        clauses.append(_COMPARATORS[f.operator](column, value))

    if not clauses:
        return true()
    return and_(*clauses)


def _as_filter(raw: Filter | Mapping[str, Any]) -> Filter:
    if isinstance(raw, Filter):
        return raw
    try:
        return Filter.model_validate(raw)
    except pydantic.ValidationError as e:
        raise InvalidFilterError(
            "Invalid filter",
            [{"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]} for err in e.errors()],
        ) from e


def _coerce_value(column: Column, operator: FilterOperator, value: Any, field: str) -> Any:
    if operator is FilterOperator.IN:
        if not isinstance(value, (list, tuple, set)) or not value:
            raise InvalidFilterError(
                f"Filter '{field}' with operator 'in' requires a non-empty list",
                [{"field": field, "message": "Expected a non-empty list"}],
            )
        return [_coerce_scalar(column, v, field) for v in value]
    if operator is FilterOperator.LIKE:
        if not isinstance(value, str):
            raise InvalidFilterError(
                f"Filter '{field}' with operator 'like' requires a string pattern",
                [{"field": field, "message": "Expected a string pattern"}],
            )
        return value
    return _coerce_scalar(column, value, field)


def _coerce_scalar(column: Column, value: Any, field: str) -> Any:
    """Convert string values (e.g. from a query string) to the column's type."""
    if not isinstance(value, str):
        return value
    try:
        python_type = column.type.python_type
    except NotImplementedError:
        return value

    try:
        if python_type is bool:
            lowered = value.strip().lower()
            if lowered in _TRUTHY:
                return True
            if lowered in _FALSY:
                return False
            raise ValueError(value)
        if python_type in (int, float):
            return python_type(value)
        if python_type is datetime:
            return datetime.fromisoformat(value)
    except ValueError as e:
        raise InvalidFilterError(
            f"Invalid value for filter '{field}': {value}",
            [{"field": field, "message": f"Expected {python_type.__name__}"}],
        ) from e
    return value


# ═══════════════ REPOSITORY ═══════════════

class Repository(Generic[EntityT]):
    """CRUD for one entity type, composed from its table and mapping functions."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        table: Table,
        id_column: str,
        entity_model: type[EntityT],
        row_to_entity: RowToEntity,
        entity_to_row: EntityToRow,
        field_aliases: Mapping[str, str] | None = None,
    ):
        self._session_factory = session_factory
        self.table = table
        self.id_column = id_column
        self.entity_model = entity_model
        self.row_to_entity = row_to_entity
        self.entity_to_row = entity_to_row
        self.field_aliases = dict(field_aliases or {})

    @property
    def _id(self) -> Column:
        return self.table.c[self.id_column]

    @asynccontextmanager
    async def _session(self, operation: str):
        """Acquire a store handle; translate driver errors into app errors.

        Constraint violations are the caller's fault (ConflictError); any other
        driver failure is a StoreError.
        """
        try:
            async with self._session_factory() as session:
                yield session
        except IntegrityError as e:
            logger.warning(
                "Constraint violation | table=%s | op=%s | %s", self.table.name, operation, str(e.orig)[:200],
            )
            raise ConflictError(f"Constraint violation during {operation}") from e
        except (SQLAlchemyError, OSError) as e:
            logger.error(
                "Store error | table=%s | op=%s | %s", self.table.name, operation, str(e)[:200],
            )
            raise StoreError(operation, str(e)) from e

    async def find_by_id(self, id: int) -> EntityT | None:
        if id < 1:
            return None
        logger.debug("Finding %s by id=%s", self.table.name, id)
        async with self._session("find_by_id") as session:
            result = await session.execute(select(self.table).where(self._id == id))
            row = result.mappings().one_or_none()
        return self.row_to_entity(row) if row is not None else None

    async def find_all(
        self,
        filters: Iterable[Filter | Mapping[str, Any]] | None = None,
        pagination: PaginationParams | None = None,
    ) -> PaginatedResult[EntityT]:
        params = pagination or PaginationParams()
        where = build_where_clause(self.table, filters, self.field_aliases)
        logger.debug(
            "Finding all %s | page=%d | limit=%d", self.table.name, params.page, params.limit,
        )

        async with self._session("find_all") as session:
            count = await session.execute(
                select(func.count()).select_from(self.table).where(where)
            )
            total = count.scalar_one()
            result = await session.execute(
                select(self.table)
                .where(where)
                .order_by(self._id)
                .offset(params.offset)
                .limit(params.limit)
            )
            rows = result.mappings().all()

        return PaginatedResult[self.entity_model](
            data=[self.row_to_entity(row) for row in rows],
            pagination=PageInfo.build(params, total),
        )

    async def find_first(self, filters: Iterable[Filter | Mapping[str, Any]]) -> EntityT | None:
        """First record (lowest id) matching the filters, or None."""
        where = build_where_clause(self.table, filters, self.field_aliases)
        async with self._session("find_first") as session:
            result = await session.execute(
                select(self.table).where(where).order_by(self._id).limit(1)
            )
            row = result.mappings().first()
        return self.row_to_entity(row) if row is not None else None

    async def find_where(self, filters: Iterable[Filter | Mapping[str, Any]]) -> list[EntityT]:
        """Every record matching the filters, unpaginated."""
        where = build_where_clause(self.table, filters, self.field_aliases)
        async with self._session("find_where") as session:
            result = await session.execute(select(self.table).where(where).order_by(self._id))
            rows = result.mappings().all()
        return [self.row_to_entity(row) for row in rows]

    async def create(self, data: Mapping[str, Any]) -> EntityT:
        row = self.entity_to_row(data)
        async with self._session("create") as session:
            result = await session.execute(
                insert(self.table).values(**row).returning(*self.table.c)
            )
            created = result.mappings().one()
            await session.commit()

        entity = self.row_to_entity(created)
        logger.info("Created %s id=%s", self.table.name, entity.id)
        return entity

    async def update(self, id: int, data: Mapping[str, Any]) -> EntityT | None:
        """Partial update: only the mapped fields present in `data` change."""
        if id < 1:
            return None
        values = self.entity_to_row(data)
        if "updated_at" in self.table.c:
            values["updated_at"] = func.now()

        async with self._session("update") as session:
            result = await session.execute(
                update(self.table)
                .where(self._id == id)
                .values(**values)
                .returning(*self.table.c)
            )
            updated = result.mappings().one_or_none()
            await session.commit()

        if updated is None:
            return None
        logger.info("Updated %s id=%s", self.table.name, id)
        return self.row_to_entity(updated)

    async def delete(self, id: int) -> bool:
        if id < 1:
            return False
        async with self._session("delete") as session:
            result = await session.execute(delete(self.table).where(self._id == id))
            await session.commit()

        deleted = result.rowcount > 0
        if deleted:
            logger.info("Deleted %s id=%s", self.table.name, id)
        return deleted
