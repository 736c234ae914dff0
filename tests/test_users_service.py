"""Tests for user business rules: not-found escalation and email uniqueness."""

import pytest

from app.errors import ConflictError, NotFoundError
from app.schemas.common import Filter
from app.schemas.user import UserCreate, UserUpdate
from app.services.users import UserService


@pytest.fixture
def service(user_repo, redis_cache):
    return UserService(user_repo, redis_cache, ttl=300)


@pytest.fixture
def new_user():
    return UserCreate(email="ada@example.com", first_name="Ada", last_name="Lovelace")


class TestCreate:
    @pytest.mark.asyncio
    async def test_create_sets_active(self, service, new_user):
        user = await service.create_user(new_user)
        assert user.id == 1
        assert user.is_active is True
        assert user.created_at is not None

    @pytest.mark.asyncio
    async def test_duplicate_email_conflicts(self, service, new_user):
        await service.create_user(new_user)
        with pytest.raises(ConflictError, match="Email already exists"):
            await service.create_user(new_user)


class TestRead:
    @pytest.mark.asyncio
    async def test_get_missing_raises_not_found(self, service):
        with pytest.raises(NotFoundError, match="User with ID 7 not found"):
            await service.get_user_by_id(7)

    @pytest.mark.asyncio
    async def test_get_all_paginates_and_filters(self, service):
        for name in ["ada", "bob", "cyd"]:
            await service.create_user(
                UserCreate(email=f"{name}@example.com", first_name=name, last_name="X")
            )
        result = await service.get_all_users(page=1, limit=2)
        assert result.pagination.total == 3
        assert result.pagination.total_pages == 2
        assert len(result.data) == 2

        filtered = await service.get_all_users(filters=[Filter(field="email", operator="like", value="b%")])
        assert [u.email for u in filtered.data] == ["bob@example.com"]


class TestUpdate:
    @pytest.mark.asyncio
    async def test_update_missing_raises_not_found(self, service):
        with pytest.raises(NotFoundError):
            await service.update_user(5, UserUpdate(first_name="Renamed"))

    @pytest.mark.asyncio
    async def test_update_cached_user_returns_fresh_value(self, service, new_user, fake_redis):
        created = await service.create_user(new_user)
        await service.get_user_by_id(created.id)
        assert f"user:{created.id}" in fake_redis.store

        await service.update_user(created.id, UserUpdate(first_name="Renamed"))
        assert f"user:{created.id}" not in fake_redis.store
        assert (await service.get_user_by_id(created.id)).first_name == "Renamed"

    @pytest.mark.asyncio
    async def test_update_to_taken_email_conflicts(self, service, new_user):
        await service.create_user(new_user)
        other = await service.create_user(
            UserCreate(email="bob@example.com", first_name="Bob", last_name="X")
        )
        with pytest.raises(ConflictError):
            await service.update_user(other.id, UserUpdate(email="ada@example.com"))

    @pytest.mark.asyncio
    async def test_update_to_same_email_allowed(self, service, new_user):
        created = await service.create_user(new_user)
        updated = await service.update_user(created.id, UserUpdate(email="ada@example.com", is_active=False))
        assert updated.is_active is False


class TestDelete:
    @pytest.mark.asyncio
    async def test_delete(self, service, new_user):
        created = await service.create_user(new_user)
        await service.delete_user(created.id)
        with pytest.raises(NotFoundError):
            await service.get_user_by_id(created.id)

    @pytest.mark.asyncio
    async def test_delete_missing_raises_not_found(self, service):
        with pytest.raises(NotFoundError):
            await service.delete_user(3)
