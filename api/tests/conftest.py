"""Shared fixtures.

Environment is set before any ``coursepass`` import so the cached settings
and the import-time logging setup see the test configuration.
"""

import os
import tempfile
from datetime import UTC, datetime, timedelta

import pytest


os.environ["ENVIRONMENT"] = "testing"
os.environ["STORAGE_BACKEND"] = "memory"
os.environ["REDIS_ENABLED"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["LOG_REQUESTS"] = "false"
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="coursepass-logs-"))

from fastapi.testclient import TestClient  # noqa: E402

from coursepass.access.service import AccessService  # noqa: E402
from coursepass.access_requests.service import AccessRequestService  # noqa: E402
from coursepass.core.database import MemoryStorage  # noqa: E402
from coursepass.courses.models import Course  # noqa: E402
from coursepass.courses.service import CourseService  # noqa: E402
from coursepass.delegation.service import DelegationService  # noqa: E402
from coursepass.identity.models import User  # noqa: E402
from coursepass.identity.service import IdentityService  # noqa: E402
from coursepass.ownership.models import Ownership  # noqa: E402
from coursepass.ownership.service import OwnershipService  # noqa: E402


START = datetime(2025, 1, 1, 12, 0, tzinfo=UTC)

OWNER_WALLET = "0xAbCdEf0000000000000000000000000000000001"
FRIEND_WALLET = "0x00000000000000000000000000000000000BeEf2"
STRANGER_WALLET = "0x9999999999999999999999999999999999999999"


class FrozenClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


# ==============================================================================
# Core fixtures
# ==============================================================================


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def store() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def identity_service(store, clock) -> IdentityService:
    return IdentityService(store, clock)


@pytest.fixture
def course_service(store, clock) -> CourseService:
    return CourseService(store, clock)


@pytest.fixture
def ownership_service(store, clock) -> OwnershipService:
    return OwnershipService(store, clock)


@pytest.fixture
def delegation_service(store, clock) -> DelegationService:
    return DelegationService(store, clock)


@pytest.fixture
def access_request_service(
    store, identity_service, ownership_service, delegation_service, clock
) -> AccessRequestService:
    return AccessRequestService(
        store, identity_service, ownership_service, delegation_service, clock
    )


@pytest.fixture
def access_service(
    store, identity_service, ownership_service, delegation_service, clock
) -> AccessService:
    return AccessService(
        store, identity_service, ownership_service, delegation_service, clock
    )


# ==============================================================================
# Data fixtures
# ==============================================================================


@pytest.fixture
def creator(store, clock) -> User:
    """Course creator without a wallet."""
    return store.insert_user(
        User(username="creator", is_creator=True, created_at=clock())
    )


@pytest.fixture
def course(store, creator, clock) -> Course:
    return store.insert_course(
        Course(creator_id=creator.id, title="Solidity 101", created_at=clock())
    )


@pytest.fixture
def owner(store, clock) -> User:
    """User holding OWNER_WALLET (stored normalized)."""
    return store.insert_user(
        User(username="owner", wallet_address=OWNER_WALLET.lower(), created_at=clock())
    )


@pytest.fixture
def ownership(store, course, owner, clock) -> Ownership:
    return store.insert_ownership(
        Ownership(
            course_id=course.id,
            owner_id=owner.id,
            token_id="token-1",
            tx_hash="0xfeed",
            minted_at=clock(),
        )
    )


# ==============================================================================
# HTTP
# ==============================================================================


@pytest.fixture
def app(store, clock):
    """Application wired to the test store and clock, without running lifespan."""
    from coursepass.main import create_app, init_services

    application = create_app()
    init_services(application, store, clock=clock)
    return application


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)
