"""Tests for the Cassandra backend's lightweight transaction handling.

The session is mocked; prepared statements are their CQL text so each
``execute`` call can be matched to the statement it ran.
"""

from datetime import timedelta
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from conftest import START
from coursepass.access_requests.models import AccessRequestStatus
from coursepass.core.database.cassandra_storage import (
    MAX_CAS_ATTEMPTS,
    CassandraStorage,
    StorageContentionError,
)
from coursepass.core.exceptions import CoursePassError, UniqueConstraintError
from coursepass.delegation.models import DelegatedAccess
from coursepass.identity.models import User


def _result(applied: bool = True, row=None) -> MagicMock:
    result = MagicMock()
    result.was_applied = applied
    result.one.return_value = row
    return result


@pytest.fixture
def session() -> MagicMock:
    mock = MagicMock()
    mock.prepare.side_effect = lambda cql: cql
    return mock


@pytest.fixture
def storage(session) -> CassandraStorage:
    return CassandraStorage(session, "coursepass_test")


def _grant(**kwargs) -> DelegatedAccess:
    values = {
        "ownership_id": 1,
        "recipient_address": "0xfriend",
        "expires_at": START + timedelta(days=1),
    }
    values.update(kwargs)
    return DelegatedAccess(**values)


class TestSequences:
    def test_first_id_initializes_sequence(self, storage, session):
        session.execute.side_effect = [_result(row=None), _result(applied=True)]

        assert storage._next_id("users") == 1
        assert session.execute.call_args_list[1].args[0] == storage._init_sequence

    def test_bumps_current_value(self, storage, session):
        session.execute.side_effect = [
            _result(row=SimpleNamespace(value=4)),
            _result(applied=True),
        ]

        assert storage._next_id("users") == 5
        assert session.execute.call_args_list[1].args == (
            storage._bump_sequence,
            [5, "users", 4],
        )

    def test_retries_lost_compare_and_set(self, storage, session):
        session.execute.side_effect = [
            _result(row=SimpleNamespace(value=4)),
            _result(applied=False),
            _result(row=SimpleNamespace(value=5)),
            _result(applied=True),
        ]

        assert storage._next_id("grants") == 6

    def test_gives_up_after_bounded_attempts(self, storage, session):
        session.execute.return_value = _result(
            applied=False, row=SimpleNamespace(value=1)
        )

        with pytest.raises(StorageContentionError) as exc_info:
            storage._next_id("grants")

        assert exc_info.value.code == "storage_contention"
        assert isinstance(exc_info.value, CoursePassError)
        assert session.execute.call_count == 2 * MAX_CAS_ATTEMPTS


class TestUsers:
    @pytest.fixture(autouse=True)
    def fixed_id(self, storage, monkeypatch):
        monkeypatch.setattr(storage, "_next_id", lambda name: 7)

    def test_username_claim_lost(self, storage, session):
        session.execute.return_value = _result(applied=False)

        with pytest.raises(UniqueConstraintError) as exc_info:
            storage.insert_user(User(username="alice"))

        assert exc_info.value.index == "users_by_username"

    def test_wallet_claim_lost_releases_username(self, storage, session):
        session.execute.side_effect = [
            _result(applied=True),
            _result(applied=False),
            _result(applied=True),
        ]

        with pytest.raises(UniqueConstraintError) as exc_info:
            storage.insert_user(User(username="alice", wallet_address="0xABC"))

        assert exc_info.value.index == "users_by_wallet"
        assert session.execute.call_args_list[1].args == (
            storage._claim_wallet,
            ["0xabc", 7],
        )
        assert session.execute.call_args_list[2].args == (
            storage._release_username,
            ["alice", 7],
        )

    def test_insert_writes_row_after_claims(self, storage, session):
        session.execute.return_value = _result(applied=True)

        user = storage.insert_user(User(username="alice", wallet_address="0xabc"))

        assert user.id == 7
        assert session.execute.call_args_list[-1].args[0] == storage._insert_user


class TestGrants:
    @pytest.fixture(autouse=True)
    def fixed_id(self, storage, monkeypatch):
        monkeypatch.setattr(storage, "_next_id", lambda name: 3)

    def test_live_slot_holder_conflicts(self, storage, session, monkeypatch):
        monkeypatch.setattr(storage, "get_grant", lambda grant_id: _grant(id=grant_id))
        session.execute.side_effect = [
            _result(),
            _result(applied=False, row=SimpleNamespace(grant_id=1)),
            _result(),
        ]

        with pytest.raises(UniqueConstraintError) as exc_info:
            storage.insert_grant(_grant(), conflicts=lambda g: g.is_active)

        assert exc_info.value.index == "grant_slots"
        assert session.execute.call_args_list[-1].args == (storage._delete_grant, [3])

    def test_stale_slot_holder_is_replaced(self, storage, session, monkeypatch):
        monkeypatch.setattr(
            storage, "get_grant", lambda grant_id: _grant(id=grant_id, is_active=False)
        )
        session.execute.side_effect = [
            _result(),
            _result(applied=False, row=SimpleNamespace(grant_id=1)),
            _result(applied=True),
            _result(),
            _result(),
        ]

        grant = storage.insert_grant(_grant(), conflicts=lambda g: g.is_active)

        assert grant.id == 3
        assert session.execute.call_args_list[2].args == (
            storage._replace_grant_slot,
            [3, 1, "0xfriend", 1],
        )

    def test_deactivate_unknown_grant(self, storage, session):
        session.execute.return_value = _result(row=None)

        assert storage.deactivate_grant(42) is None


class TestRequests:
    def test_lost_transition_returns_none(self, storage, session):
        session.execute.return_value = _result(applied=False)

        result = storage.transition_request(
            9, AccessRequestStatus.PENDING, AccessRequestStatus.APPROVED, START
        )

        assert result is None
        assert session.execute.call_args.args == (
            storage._transition_request,
            ["approved", START, 9, "pending"],
        )
