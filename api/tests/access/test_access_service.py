"""Tests for the access query facade."""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest
from redis.asyncio import ConnectionError as RedisConnectionError

from conftest import FRIEND_WALLET, OWNER_WALLET, STRANGER_WALLET
from coursepass.access.schemas import AccessType
from coursepass.access.service import AccessService
from coursepass.core.redis import access_cache_key
from coursepass.courses.models import Course
from coursepass.identity.models import User
from coursepass.ownership.models import Ownership


class TestCheckAccess:
    """Tests for check_access."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "wallet", [OWNER_WALLET, OWNER_WALLET.lower(), OWNER_WALLET.upper()]
    )
    async def test_owner_in_any_case(self, access_service, ownership, course, wallet):
        result = await access_service.check_access(course.id, wallet)

        assert result.has_access is True
        assert result.access_type is AccessType.OWNER
        assert result.expires_at is None

    @pytest.mark.asyncio
    async def test_no_access_for_stranger(self, access_service, ownership, course):
        result = await access_service.check_access(course.id, STRANGER_WALLET)

        assert result.has_access is False
        assert result.access_type is None

    @pytest.mark.asyncio
    async def test_check_never_creates_users(self, access_service, course, store):
        await access_service.check_access(course.id, STRANGER_WALLET)

        assert store.get_user_by_wallet(STRANGER_WALLET.lower()) is None

    @pytest.mark.asyncio
    async def test_temporary_until_expiry(
        self, access_service, delegation_service, ownership, course, clock
    ):
        expires_at = clock() + timedelta(days=3)
        await delegation_service.grant(ownership.id, FRIEND_WALLET, expires_at)

        live = await access_service.check_access(course.id, FRIEND_WALLET.upper())
        assert live.access_type is AccessType.TEMPORARY
        assert live.expires_at == expires_at

        clock.now = expires_at - timedelta(microseconds=1)
        assert (await access_service.check_access(course.id, FRIEND_WALLET)).has_access

        clock.now = expires_at
        assert not (await access_service.check_access(course.id, FRIEND_WALLET)).has_access

    @pytest.mark.asyncio
    async def test_revocation_is_immediate(
        self, access_service, delegation_service, ownership, course, clock
    ):
        grant = await delegation_service.grant(
            ownership.id, FRIEND_WALLET, clock() + timedelta(days=3)
        )
        await delegation_service.revoke(grant.id)

        result = await access_service.check_access(course.id, FRIEND_WALLET)

        assert result.has_access is False

    @pytest.mark.asyncio
    async def test_ownership_dominates_grant(
        self, access_service, delegation_service, ownership, course, store, clock
    ):
        """A wallet that owns the course and also holds a grant reports owner."""
        friend = store.insert_user(
            User(username="friend", wallet_address=FRIEND_WALLET.lower())
        )
        await delegation_service.grant(
            ownership.id, FRIEND_WALLET, clock() + timedelta(days=3)
        )
        store.insert_ownership(
            Ownership(course_id=course.id, owner_id=friend.id, token_id="nft-friend")
        )

        result = await access_service.check_access(course.id, FRIEND_WALLET)

        assert result.access_type is AccessType.OWNER

    @pytest.mark.asyncio
    async def test_grant_on_other_course_does_not_leak(
        self, access_service, delegation_service, ownership, store, creator, clock
    ):
        other = store.insert_course(Course(creator_id=creator.id, title="Other"))
        await delegation_service.grant(
            ownership.id, FRIEND_WALLET, clock() + timedelta(days=3)
        )

        result = await access_service.check_access(other.id, FRIEND_WALLET)

        assert result.has_access is False


class TestOwnerCache:
    """Only owner results go through Redis."""

    @pytest.fixture
    def redis(self):
        client = AsyncMock()
        client.get = AsyncMock(return_value=None)
        client.setex = AsyncMock()
        return client

    @pytest.fixture
    def cached_service(
        self, store, identity_service, ownership_service, delegation_service, clock, redis
    ):
        return AccessService(
            store,
            identity_service,
            ownership_service,
            delegation_service,
            clock,
            redis=redis,
            cache_ttl=60,
        )

    @pytest.mark.asyncio
    async def test_owner_result_is_cached(self, cached_service, redis, ownership, course):
        await cached_service.check_access(course.id, OWNER_WALLET.upper())

        redis.setex.assert_awaited_once_with(
            access_cache_key(course.id, OWNER_WALLET.lower()), 60, "1"
        )

    @pytest.mark.asyncio
    async def test_cache_hit_skips_storage(self, cached_service, redis, course, store):
        redis.get.return_value = "1"

        result = await cached_service.check_access(course.id, OWNER_WALLET)

        assert result.access_type is AccessType.OWNER
        redis.setex.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_temporary_result_is_not_cached(
        self, cached_service, redis, delegation_service, ownership, course, clock
    ):
        await delegation_service.grant(
            ownership.id, FRIEND_WALLET, clock() + timedelta(days=1)
        )

        result = await cached_service.check_access(course.id, FRIEND_WALLET)

        assert result.access_type is AccessType.TEMPORARY
        redis.setex.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_access_is_not_cached(self, cached_service, redis, course):
        await cached_service.check_access(course.id, STRANGER_WALLET)

        redis.setex.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cache_read_failure_falls_back_to_storage(
        self, cached_service, redis, ownership, course
    ):
        redis.get.side_effect = RedisConnectionError("down")

        result = await cached_service.check_access(course.id, OWNER_WALLET)

        assert result.has_access is True
        assert result.access_type is AccessType.OWNER

    @pytest.mark.asyncio
    async def test_cache_write_failure_keeps_result(
        self, cached_service, redis, ownership, course
    ):
        redis.setex.side_effect = RedisConnectionError("down")

        result = await cached_service.check_access(course.id, OWNER_WALLET)

        assert result.access_type is AccessType.OWNER
        redis.setex.assert_awaited_once()
