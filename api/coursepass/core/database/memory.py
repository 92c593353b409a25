"""In-process storage backend.

Every aggregate lives in a dict keyed by id, guarded by its own lock, with
secondary indexes for the unique keys so duplicate checks never scan.
Lock order is fixed (ownerships before grants) wherever both are held.
"""

import threading
from collections import defaultdict
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime
from itertools import count

from coursepass.access_requests.models import AccessRequest, AccessRequestStatus
from coursepass.core.exceptions import UniqueConstraintError
from coursepass.courses.models import Course
from coursepass.delegation.models import DelegatedAccess
from coursepass.identity.models import User
from coursepass.ownership.models import Ownership

from .base import GrantConflict, Storage


class MemoryStorage(Storage):
    """Indexed in-memory ledger, safe for concurrent callers in one process."""

    def __init__(self) -> None:
        self._user_lock = threading.RLock()
        self._course_lock = threading.RLock()
        self._ownership_lock = threading.RLock()
        self._grant_lock = threading.RLock()
        self._request_lock = threading.RLock()

        self._user_ids = count(1)
        self._course_ids = count(1)
        self._ownership_ids = count(1)
        self._grant_ids = count(1)
        self._request_ids = count(1)

        self._users: dict[int, User] = {}
        self._users_by_wallet: dict[str, int] = {}
        self._users_by_username: dict[str, int] = {}

        self._courses: dict[int, Course] = {}

        self._ownerships: dict[int, Ownership] = {}
        self._ownership_by_key: dict[tuple[int, int], int] = {}
        self._ownerships_by_owner: defaultdict[int, list[int]] = defaultdict(list)
        self._ownerships_by_course: defaultdict[int, list[int]] = defaultdict(list)

        self._grants: dict[int, DelegatedAccess] = {}
        self._grants_by_key: defaultdict[tuple[int, str], list[int]] = defaultdict(list)
        self._grants_by_ownership: defaultdict[int, list[int]] = defaultdict(list)
        self._grants_by_recipient: defaultdict[str, list[int]] = defaultdict(list)

        self._requests: dict[int, AccessRequest] = {}
        self._requests_by_course: defaultdict[int, list[int]] = defaultdict(list)
        self._requests_by_requester: defaultdict[str, list[int]] = defaultdict(list)
        self._requests_by_owner: defaultdict[str, list[int]] = defaultdict(list)

    @contextmanager
    def snapshot(self) -> Iterator[None]:
        with self._ownership_lock, self._grant_lock:
            yield

    # ==========================================================================
    # Users
    # ==========================================================================

    def insert_user(self, user: User) -> User:
        with self._user_lock:
            if user.username in self._users_by_username:
                raise UniqueConstraintError("users_by_username", user.username)
            wallet_key = user.wallet_address.lower() if user.wallet_address else None
            if wallet_key is not None and wallet_key in self._users_by_wallet:
                raise UniqueConstraintError("users_by_wallet", wallet_key)

            stored = replace(user, id=next(self._user_ids))
            self._users[stored.id] = stored
            self._users_by_username[stored.username] = stored.id
            if wallet_key is not None:
                self._users_by_wallet[wallet_key] = stored.id
            return stored

    def get_user(self, user_id: int) -> User | None:
        return self._users.get(user_id)

    def get_user_by_wallet(self, wallet_address: str) -> User | None:
        with self._user_lock:
            user_id = self._users_by_wallet.get(wallet_address.lower())
            return self._users.get(user_id) if user_id is not None else None

    def get_user_by_username(self, username: str) -> User | None:
        with self._user_lock:
            user_id = self._users_by_username.get(username)
            return self._users.get(user_id) if user_id is not None else None

    def update_user_wallet(self, user_id: int, wallet_address: str) -> User | None:
        with self._user_lock:
            user = self._users.get(user_id)
            if user is None:
                return None
            new_key = wallet_address.lower()
            holder = self._users_by_wallet.get(new_key)
            if holder is not None and holder != user_id:
                raise UniqueConstraintError("users_by_wallet", new_key)
            if user.wallet_address:
                self._users_by_wallet.pop(user.wallet_address.lower(), None)
            updated = replace(user, wallet_address=wallet_address)
            self._users[user_id] = updated
            self._users_by_wallet[new_key] = user_id
            return updated

    # ==========================================================================
    # Courses
    # ==========================================================================

    def insert_course(self, course: Course) -> Course:
        with self._course_lock:
            stored = replace(course, id=next(self._course_ids))
            self._courses[stored.id] = stored
            return stored

    def get_course(self, course_id: int) -> Course | None:
        return self._courses.get(course_id)

    def set_course_published(self, course_id: int, is_published: bool) -> Course | None:
        with self._course_lock:
            course = self._courses.get(course_id)
            if course is None:
                return None
            updated = replace(course, is_published=is_published)
            self._courses[course_id] = updated
            return updated

    def list_courses(self) -> list[Course]:
        with self._course_lock:
            return list(self._courses.values())

    # ==========================================================================
    # Ownerships
    # ==========================================================================

    def insert_ownership(self, ownership: Ownership) -> Ownership:
        key = (ownership.course_id, ownership.owner_id)
        with self._ownership_lock:
            if key in self._ownership_by_key:
                raise UniqueConstraintError("ownerships_by_course_owner", key)
            stored = replace(ownership, id=next(self._ownership_ids))
            self._ownerships[stored.id] = stored
            self._ownership_by_key[key] = stored.id
            self._ownerships_by_owner[stored.owner_id].append(stored.id)
            self._ownerships_by_course[stored.course_id].append(stored.id)
            return stored

    def get_ownership(self, ownership_id: int) -> Ownership | None:
        return self._ownerships.get(ownership_id)

    def get_ownership_by_course_and_owner(
        self, course_id: int, owner_id: int
    ) -> Ownership | None:
        with self._ownership_lock:
            ownership_id = self._ownership_by_key.get((course_id, owner_id))
            return self._ownerships.get(ownership_id) if ownership_id else None

    def list_ownerships_by_owner(self, owner_id: int) -> list[Ownership]:
        with self._ownership_lock:
            return [self._ownerships[i] for i in self._ownerships_by_owner.get(owner_id, [])]

    def list_ownerships_by_course(self, course_id: int) -> list[Ownership]:
        with self._ownership_lock:
            return [
                self._ownerships[i] for i in self._ownerships_by_course.get(course_id, [])
            ]

    # ==========================================================================
    # Delegated access
    # ==========================================================================

    def insert_grant(
        self, grant: DelegatedAccess, conflicts: GrantConflict
    ) -> DelegatedAccess:
        key = (grant.ownership_id, grant.recipient_address)
        with self._grant_lock:
            for grant_id in self._grants_by_key.get(key, []):
                if conflicts(self._grants[grant_id]):
                    raise UniqueConstraintError("grant_slots", key)
            stored = replace(grant, id=next(self._grant_ids))
            self._grants[stored.id] = stored
            self._grants_by_key[key].append(stored.id)
            self._grants_by_ownership[stored.ownership_id].append(stored.id)
            self._grants_by_recipient[stored.recipient_address].append(stored.id)
            return stored

    def get_grant(self, grant_id: int) -> DelegatedAccess | None:
        return self._grants.get(grant_id)

    def deactivate_grant(self, grant_id: int) -> DelegatedAccess | None:
        with self._grant_lock:
            grant = self._grants.get(grant_id)
            if grant is None:
                return None
            updated = replace(grant, is_active=False)
            self._grants[grant_id] = updated
            return updated

    def list_grants_by_ownership(self, ownership_id: int) -> list[DelegatedAccess]:
        with self._grant_lock:
            return [self._grants[i] for i in self._grants_by_ownership.get(ownership_id, [])]

    def list_grants_by_recipient(self, recipient_address: str) -> list[DelegatedAccess]:
        with self._grant_lock:
            return [
                self._grants[i]
                for i in self._grants_by_recipient.get(recipient_address, [])
            ]

    # ==========================================================================
    # Access requests
    # ==========================================================================

    def insert_request(self, request: AccessRequest) -> AccessRequest:
        with self._request_lock:
            stored = replace(request, id=next(self._request_ids))
            self._requests[stored.id] = stored
            self._requests_by_course[stored.course_id].append(stored.id)
            self._requests_by_requester[stored.requester_address].append(stored.id)
            self._requests_by_owner[stored.owner_address].append(stored.id)
            return stored

    def get_request(self, request_id: int) -> AccessRequest | None:
        return self._requests.get(request_id)

    def transition_request(
        self,
        request_id: int,
        expected: AccessRequestStatus,
        new_status: AccessRequestStatus,
        updated_at: datetime,
    ) -> AccessRequest | None:
        with self._request_lock:
            request = self._requests.get(request_id)
            if request is None or request.status != expected:
                return None
            updated = replace(request, status=new_status, updated_at=updated_at)
            self._requests[request_id] = updated
            return updated

    def list_requests_by_course(self, course_id: int) -> list[AccessRequest]:
        with self._request_lock:
            return [self._requests[i] for i in self._requests_by_course.get(course_id, [])]

    def list_requests_by_requester(self, requester_address: str) -> list[AccessRequest]:
        with self._request_lock:
            return [
                self._requests[i]
                for i in self._requests_by_requester.get(requester_address, [])
            ]

    def list_requests_by_owner(self, owner_address: str) -> list[AccessRequest]:
        with self._request_lock:
            return [
                self._requests[i] for i in self._requests_by_owner.get(owner_address, [])
            ]
