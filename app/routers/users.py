"""Users resource: /api/v1/users.

Filters come as repeated `filter=field:operator:value` query parameters;
`in` takes a comma-separated list, e.g. `filter=id:in:1,2,3`.
"""

from fastapi import APIRouter, Depends, Path, Query, Response

from app.dependencies import get_user_service
from app.errors import InvalidFilterError
from app.middleware.auth import require_any_auth
from app.schemas.common import Filter, FilterOperator, PaginatedResult
from app.schemas.user import User, UserCreate, UserUpdate
from app.services.users import UserService

router = APIRouter(
    prefix="/api/v1/users",
    tags=["Users"],
    dependencies=[Depends(require_any_auth)],
)


def parse_filters(raw: list[str]) -> list[Filter]:
    filters = []
    for item in raw:
        parts = item.split(":", 2)
        if len(parts) != 3 or not parts[0]:
            raise InvalidFilterError(
                f"Invalid filter '{item}'",
                [{"field": "filter", "message": "Expected field:operator:value"}],
            )
        field, operator, value = parts
        try:
            op = FilterOperator(operator)
        except ValueError:
            raise InvalidFilterError(
                f"Unknown filter operator '{operator}'",
                [{"field": field, "message": f"Operator must be one of: {', '.join(o.value for o in FilterOperator)}"}],
            ) from None
        if op is FilterOperator.IN:
            value = [v.strip() for v in value.split(",") if v.strip()]
        filters.append(Filter(field=field, operator=op, value=value))
    return filters


@router.get("", response_model=PaginatedResult[User])
async def get_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    filter: list[str] = Query(default=[]),
    service: UserService = Depends(get_user_service),
):
    """List users, paginated and optionally filtered."""
    return await service.get_all_users(page, limit, parse_filters(filter))


@router.get("/{id}", response_model=User)
async def get_user(
    id: int = Path(..., gt=0),
    service: UserService = Depends(get_user_service),
):
    return await service.get_user_by_id(id)


@router.post("", response_model=User, status_code=201)
async def create_user(payload: UserCreate, service: UserService = Depends(get_user_service)):
    return await service.create_user(payload)


@router.put("/{id}", response_model=User)
async def update_user(
    payload: UserUpdate,
    id: int = Path(..., gt=0),
    service: UserService = Depends(get_user_service),
):
    return await service.update_user(id, payload)


@router.delete("/{id}", status_code=204)
async def delete_user(
    id: int = Path(..., gt=0),
    service: UserService = Depends(get_user_service),
):
    await service.delete_user(id)
    return Response(status_code=204)
