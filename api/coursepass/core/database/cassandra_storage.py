# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Cassandra storage backend.

Uniqueness is enforced with lightweight transactions instead of
read-then-write checks:
- ``INSERT ... IF NOT EXISTS`` on the lookup tables that act as unique
  indexes (wallet, username, course/owner pair)
- ``UPDATE ... IF col = ?`` for compare-and-set (id sequences, request
  status, the current grant of an ownership/recipient pair)

Integer ids come from the ``id_sequences`` table, advanced by
compare-and-set with a bounded number of attempts.
"""

from dataclasses import replace
from datetime import datetime
from typing import TYPE_CHECKING

from coursepass.access_requests.models import AccessRequest, AccessRequestStatus
from coursepass.core.exceptions import StorageContentionError, UniqueConstraintError
from coursepass.core.logging import get_logger
from coursepass.courses.models import Course
from coursepass.delegation.models import DelegatedAccess
from coursepass.identity.models import User
from coursepass.ownership.models import Ownership

from .base import GrantConflict, Storage


if TYPE_CHECKING:
    from cassandra.cluster import Session


logger = get_logger(__name__)

# Attempts before a compare-and-set loop gives up
MAX_CAS_ATTEMPTS = 16


ID_SEQUENCES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.id_sequences (
    name TEXT PRIMARY KEY,
    value BIGINT
)
"""

STORAGE_TABLES_CQL = [ID_SEQUENCES_TABLE_CQL]


class CassandraStorage(Storage):
    """Ledger persisted in Cassandra tables."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        ks = self.keyspace
        prepare = self.session.prepare

        # Sequences
        self._select_sequence = prepare(
            f"SELECT value FROM {ks}.id_sequences WHERE name = ?"
        )
        self._init_sequence = prepare(
            f"INSERT INTO {ks}.id_sequences (name, value) VALUES (?, 1) IF NOT EXISTS"
        )
        self._bump_sequence = prepare(
            f"UPDATE {ks}.id_sequences SET value = ? WHERE name = ? IF value = ?"
        )

        # Users
        self._insert_user = prepare(f"""
            INSERT INTO {ks}.users (id, username, wallet_address, is_creator, created_at)
            VALUES (?, ?, ?, ?, ?)
        """)
        self._get_user = prepare(f"SELECT * FROM {ks}.users WHERE id = ?")
        self._claim_username = prepare(f"""
            INSERT INTO {ks}.users_by_username (username, user_id)
            VALUES (?, ?) IF NOT EXISTS
        """)
        self._release_username = prepare(
            f"DELETE FROM {ks}.users_by_username WHERE username = ? IF user_id = ?"
        )
        self._get_username = prepare(
            f"SELECT user_id FROM {ks}.users_by_username WHERE username = ?"
        )
        self._claim_wallet = prepare(f"""
            INSERT INTO {ks}.users_by_wallet (wallet_address, user_id)
            VALUES (?, ?) IF NOT EXISTS
        """)
        self._release_wallet = prepare(
            f"DELETE FROM {ks}.users_by_wallet WHERE wallet_address = ? IF user_id = ?"
        )
        self._get_wallet = prepare(
            f"SELECT user_id FROM {ks}.users_by_wallet WHERE wallet_address = ?"
        )
        self._update_user_wallet = prepare(
            f"UPDATE {ks}.users SET wallet_address = ? WHERE id = ?"
        )

        # Courses
        self._insert_course = prepare(f"""
            INSERT INTO {ks}.courses (id, creator_id, title, is_published, created_at)
            VALUES (?, ?, ?, ?, ?)
        """)
        self._get_course = prepare(f"SELECT * FROM {ks}.courses WHERE id = ?")
        self._list_courses = prepare(f"SELECT * FROM {ks}.courses")
        self._update_course_published = prepare(
            f"UPDATE {ks}.courses SET is_published = ? WHERE id = ?"
        )

        # Ownerships
        self._claim_ownership = prepare(f"""
            INSERT INTO {ks}.ownerships_by_course_owner (course_id, owner_id, ownership_id)
            VALUES (?, ?, ?) IF NOT EXISTS
        """)
        self._insert_ownership = prepare(f"""
            INSERT INTO {ks}.ownerships
            (id, course_id, owner_id, token_id, tx_hash, minted_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """)
        self._insert_ownership_by_owner = prepare(f"""
            INSERT INTO {ks}.ownerships_by_owner
            (owner_id, id, course_id, token_id, tx_hash, minted_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """)
        self._insert_ownership_by_course = prepare(f"""
            INSERT INTO {ks}.ownerships_by_course
            (course_id, id, owner_id, token_id, tx_hash, minted_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """)
        self._get_ownership = prepare(f"SELECT * FROM {ks}.ownerships WHERE id = ?")
        self._get_ownership_id_by_key = prepare(f"""
            SELECT ownership_id FROM {ks}.ownerships_by_course_owner
            WHERE course_id = ? AND owner_id = ?
        """)
        self._list_ownerships_by_owner = prepare(
            f"SELECT * FROM {ks}.ownerships_by_owner WHERE owner_id = ?"
        )
        self._list_ownerships_by_course = prepare(
            f"SELECT * FROM {ks}.ownerships_by_course WHERE course_id = ?"
        )

        # Delegated access
        self._insert_grant = prepare(f"""
            INSERT INTO {ks}.delegated_access
            (id, ownership_id, recipient_address, expires_at, is_active, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """)
        self._delete_grant = prepare(f"DELETE FROM {ks}.delegated_access WHERE id = ?")
        self._get_grant = prepare(f"SELECT * FROM {ks}.delegated_access WHERE id = ?")
        self._deactivate_grant = prepare(
            f"UPDATE {ks}.delegated_access SET is_active = false WHERE id = ?"
        )
        self._claim_grant_slot = prepare(f"""
            INSERT INTO {ks}.grant_slots (ownership_id, recipient_address, grant_id)
            VALUES (?, ?, ?) IF NOT EXISTS
        """)
        self._replace_grant_slot = prepare(f"""
            UPDATE {ks}.grant_slots SET grant_id = ?
            WHERE ownership_id = ? AND recipient_address = ?
            IF grant_id = ?
        """)
        self._insert_grant_by_ownership = prepare(
            f"INSERT INTO {ks}.grants_by_ownership (ownership_id, grant_id) VALUES (?, ?)"
        )
        self._insert_grant_by_recipient = prepare(f"""
            INSERT INTO {ks}.grants_by_recipient (recipient_address, grant_id)
            VALUES (?, ?)
        """)
        self._list_grant_ids_by_ownership = prepare(
            f"SELECT grant_id FROM {ks}.grants_by_ownership WHERE ownership_id = ?"
        )
        self._list_grant_ids_by_recipient = prepare(
            f"SELECT grant_id FROM {ks}.grants_by_recipient WHERE recipient_address = ?"
        )

        # Access requests
        self._insert_request = prepare(f"""
            INSERT INTO {ks}.access_requests
            (id, course_id, requester_address, owner_address, requested_duration_days,
             message, status, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._insert_request_by_course = prepare(f"""
            INSERT INTO {ks}.access_requests_by_course (course_id, request_id)
            VALUES (?, ?)
        """)
        self._insert_request_by_requester = prepare(f"""
            INSERT INTO {ks}.access_requests_by_requester (requester_address, request_id)
            VALUES (?, ?)
        """)
        self._insert_request_by_owner = prepare(f"""
            INSERT INTO {ks}.access_requests_by_owner (owner_address, request_id)
            VALUES (?, ?)
        """)
        self._get_request = prepare(f"SELECT * FROM {ks}.access_requests WHERE id = ?")
        self._transition_request = prepare(f"""
            UPDATE {ks}.access_requests SET status = ?, updated_at = ?
            WHERE id = ?
            IF status = ?
        """)
        self._list_request_ids_by_course = prepare(
            f"SELECT request_id FROM {ks}.access_requests_by_course WHERE course_id = ?"
        )
        self._list_request_ids_by_requester = prepare(f"""
            SELECT request_id FROM {ks}.access_requests_by_requester
            WHERE requester_address = ?
        """)
        self._list_request_ids_by_owner = prepare(
            f"SELECT request_id FROM {ks}.access_requests_by_owner WHERE owner_address = ?"
        )

    # ==========================================================================
    # Sequences
    # ==========================================================================

    def _next_id(self, name: str) -> int:
        """Advance the named sequence by compare-and-set."""
        for _ in range(MAX_CAS_ATTEMPTS):
            row = self.session.execute(self._select_sequence, [name]).one()
            if row is None:
                if self.session.execute(self._init_sequence, [name]).was_applied:
                    return 1
                continue
            current = row.value
            result = self.session.execute(self._bump_sequence, [current + 1, name, current])
            if result.was_applied:
                return current + 1

        logger.error("id_sequence_contention", sequence=name)
        raise StorageContentionError(f"Could not allocate id from sequence {name}")

    # ==========================================================================
    # Users
    # ==========================================================================

    def insert_user(self, user: User) -> User:
        stored = replace(user, id=self._next_id("users"))

        if not self.session.execute(
            self._claim_username, [stored.username, stored.id]
        ).was_applied:
            raise UniqueConstraintError("users_by_username", stored.username)

        if stored.wallet_address:
            wallet_key = stored.wallet_address.lower()
            if not self.session.execute(
                self._claim_wallet, [wallet_key, stored.id]
            ).was_applied:
                self.session.execute(self._release_username, [stored.username, stored.id])
                raise UniqueConstraintError("users_by_wallet", wallet_key)

        self.session.execute(
            self._insert_user,
            [
                stored.id,
                stored.username,
                stored.wallet_address,
                stored.is_creator,
                stored.created_at,
            ],
        )
        return stored

    def get_user(self, user_id: int) -> User | None:
        row = self.session.execute(self._get_user, [user_id]).one()
        return User.from_row(row) if row else None

    def get_user_by_wallet(self, wallet_address: str) -> User | None:
        row = self.session.execute(self._get_wallet, [wallet_address.lower()]).one()
        return self.get_user(row.user_id) if row else None

    def get_user_by_username(self, username: str) -> User | None:
        row = self.session.execute(self._get_username, [username]).one()
        return self.get_user(row.user_id) if row else None

    def update_user_wallet(self, user_id: int, wallet_address: str) -> User | None:
        user = self.get_user(user_id)
        if user is None:
            return None

        new_key = wallet_address.lower()
        result = self.session.execute(self._claim_wallet, [new_key, user_id])
        if not result.was_applied and result.one().user_id != user_id:
            raise UniqueConstraintError("users_by_wallet", new_key)

        if user.wallet_address and user.wallet_address.lower() != new_key:
            self.session.execute(
                self._release_wallet, [user.wallet_address.lower(), user_id]
            )

        self.session.execute(self._update_user_wallet, [wallet_address, user_id])
        return replace(user, wallet_address=wallet_address)

    # ==========================================================================
    # Courses
    # ==========================================================================

    def insert_course(self, course: Course) -> Course:
        stored = replace(course, id=self._next_id("courses"))
        self.session.execute(
            self._insert_course,
            [
                stored.id,
                stored.creator_id,
                stored.title,
                stored.is_published,
                stored.created_at,
            ],
        )
        return stored

    def get_course(self, course_id: int) -> Course | None:
        row = self.session.execute(self._get_course, [course_id]).one()
        return Course.from_row(row) if row else None

    def set_course_published(self, course_id: int, is_published: bool) -> Course | None:
        course = self.get_course(course_id)
        if course is None:
            return None
        self.session.execute(self._update_course_published, [is_published, course_id])
        return replace(course, is_published=is_published)

    def list_courses(self) -> list[Course]:
        return [Course.from_row(row) for row in self.session.execute(self._list_courses)]

    # ==========================================================================
    # Ownerships
    # ==========================================================================

    def insert_ownership(self, ownership: Ownership) -> Ownership:
        stored = replace(ownership, id=self._next_id("ownerships"))

        if not self.session.execute(
            self._claim_ownership, [stored.course_id, stored.owner_id, stored.id]
        ).was_applied:
            raise UniqueConstraintError(
                "ownerships_by_course_owner", (stored.course_id, stored.owner_id)
            )

        self.session.execute(
            self._insert_ownership,
            [
                stored.id,
                stored.course_id,
                stored.owner_id,
                stored.token_id,
                stored.tx_hash,
                stored.minted_at,
            ],
        )
        self.session.execute(
            self._insert_ownership_by_owner,
            [
                stored.owner_id,
                stored.id,
                stored.course_id,
                stored.token_id,
                stored.tx_hash,
                stored.minted_at,
            ],
        )
        self.session.execute(
            self._insert_ownership_by_course,
            [
                stored.course_id,
                stored.id,
                stored.owner_id,
                stored.token_id,
                stored.tx_hash,
                stored.minted_at,
            ],
        )
        return stored

    def get_ownership(self, ownership_id: int) -> Ownership | None:
        row = self.session.execute(self._get_ownership, [ownership_id]).one()
        return Ownership.from_row(row) if row else None

    def get_ownership_by_course_and_owner(
        self, course_id: int, owner_id: int
    ) -> Ownership | None:
        row = self.session.execute(
            self._get_ownership_id_by_key, [course_id, owner_id]
        ).one()
        return self.get_ownership(row.ownership_id) if row else None

    def list_ownerships_by_owner(self, owner_id: int) -> list[Ownership]:
        rows = self.session.execute(self._list_ownerships_by_owner, [owner_id])
        return [Ownership.from_row(row) for row in rows]

    def list_ownerships_by_course(self, course_id: int) -> list[Ownership]:
        rows = self.session.execute(self._list_ownerships_by_course, [course_id])
        return [Ownership.from_row(row) for row in rows]

    # ==========================================================================
    # Delegated access
    # ==========================================================================

    def insert_grant(
        self, grant: DelegatedAccess, conflicts: GrantConflict
    ) -> DelegatedAccess:
        stored = replace(grant, id=self._next_id("grants"))
        key = [stored.ownership_id, stored.recipient_address]

        # The row is written before the slot is claimed so a competing caller
        # that reads the slot always finds the grant it points to
        self.session.execute(
            self._insert_grant,
            [
                stored.id,
                stored.ownership_id,
                stored.recipient_address,
                stored.expires_at,
                stored.is_active,
                stored.created_at,
            ],
        )

        for _ in range(MAX_CAS_ATTEMPTS):
            result = self.session.execute(self._claim_grant_slot, [*key, stored.id])
            if result.was_applied:
                break

            current_id = result.one().grant_id
            current = self.get_grant(current_id)
            if current is not None and conflicts(current):
                self.session.execute(self._delete_grant, [stored.id])
                raise UniqueConstraintError("grant_slots", tuple(key))

            if self.session.execute(
                self._replace_grant_slot, [stored.id, *key, current_id]
            ).was_applied:
                break
        else:
            self.session.execute(self._delete_grant, [stored.id])
            logger.error(
                "grant_slot_contention",
                ownership_id=stored.ownership_id,
                recipient_address=stored.recipient_address,
            )
            raise StorageContentionError("Could not claim grant slot")

        self.session.execute(
            self._insert_grant_by_ownership, [stored.ownership_id, stored.id]
        )
        self.session.execute(
            self._insert_grant_by_recipient, [stored.recipient_address, stored.id]
        )
        return stored

    def get_grant(self, grant_id: int) -> DelegatedAccess | None:
        row = self.session.execute(self._get_grant, [grant_id]).one()
        return DelegatedAccess.from_row(row) if row else None

    def deactivate_grant(self, grant_id: int) -> DelegatedAccess | None:
        grant = self.get_grant(grant_id)
        if grant is None:
            return None
        self.session.execute(self._deactivate_grant, [grant_id])
        return replace(grant, is_active=False)

    def _grants_for(self, rows) -> list[DelegatedAccess]:
        grants = []
        for row in rows:
            grant = self.get_grant(row.grant_id)
            if grant is not None:
                grants.append(grant)
        return grants

    def list_grants_by_ownership(self, ownership_id: int) -> list[DelegatedAccess]:
        return self._grants_for(
            self.session.execute(self._list_grant_ids_by_ownership, [ownership_id])
        )

    def list_grants_by_recipient(self, recipient_address: str) -> list[DelegatedAccess]:
        return self._grants_for(
            self.session.execute(self._list_grant_ids_by_recipient, [recipient_address])
        )

    # ==========================================================================
    # Access requests
    # ==========================================================================

    def insert_request(self, request: AccessRequest) -> AccessRequest:
        stored = replace(request, id=self._next_id("access_requests"))
        self.session.execute(
            self._insert_request,
            [
                stored.id,
                stored.course_id,
                stored.requester_address,
                stored.owner_address,
                stored.requested_duration_days,
                stored.message,
                stored.status.value,
                stored.created_at,
                stored.updated_at,
            ],
        )
        self.session.execute(self._insert_request_by_course, [stored.course_id, stored.id])
        self.session.execute(
            self._insert_request_by_requester, [stored.requester_address, stored.id]
        )
        self.session.execute(
            self._insert_request_by_owner, [stored.owner_address, stored.id]
        )
        return stored

    def get_request(self, request_id: int) -> AccessRequest | None:
        row = self.session.execute(self._get_request, [request_id]).one()
        return AccessRequest.from_row(row) if row else None

    def transition_request(
        self,
        request_id: int,
        expected: AccessRequestStatus,
        new_status: AccessRequestStatus,
        updated_at: datetime,
    ) -> AccessRequest | None:
        result = self.session.execute(
            self._transition_request,
            [new_status.value, updated_at, request_id, expected.value],
        )
        if not result.was_applied:
            return None
        return self.get_request(request_id)

    def _requests_for(self, rows) -> list[AccessRequest]:
        requests = []
        for row in rows:
            request = self.get_request(row.request_id)
            if request is not None:
                requests.append(request)
        return requests

    def list_requests_by_course(self, course_id: int) -> list[AccessRequest]:
        return self._requests_for(
            self.session.execute(self._list_request_ids_by_course, [course_id])
        )

    def list_requests_by_requester(self, requester_address: str) -> list[AccessRequest]:
        return self._requests_for(
            self.session.execute(self._list_request_ids_by_requester, [requester_address])
        )

    def list_requests_by_owner(self, owner_address: str) -> list[AccessRequest]:
        return self._requests_for(
            self.session.execute(self._list_request_ids_by_owner, [owner_address])
        )
