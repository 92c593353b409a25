"""Storage contract shared by the in-memory and Cassandra backends.

Services receive a ``Storage`` instance explicitly; there is no module-level
storage singleton. Backends assign integer ids on insert and enforce the
uniqueness rules of the ledger themselves, raising ``UniqueConstraintError``
when a write would break one:

- users: normalized wallet address, username
- ownerships: (course_id, owner_id)
- delegated access: at most one grant per (ownership_id, recipient_address)
  for which the caller-supplied ``conflicts`` predicate holds
"""

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime

from coursepass.access_requests.models import AccessRequest, AccessRequestStatus
from coursepass.courses.models import Course
from coursepass.delegation.models import DelegatedAccess
from coursepass.identity.models import User
from coursepass.ownership.models import Ownership


GrantConflict = Callable[[DelegatedAccess], bool]


class Storage(ABC):
    """Persistence handle for users, courses, ownerships, grants and requests."""

    @contextmanager
    def snapshot(self) -> Iterator[None]:
        """Hold a consistent view of ownerships and grants.

        Reads issued inside the block never observe a half-applied
        ownership or grant mutation. Backends without multi-row isolation
        keep the default no-op.
        """
        yield

    # ==========================================================================
    # Users
    # ==========================================================================

    @abstractmethod
    def insert_user(self, user: User) -> User:
        """Insert a user and return it with its id."""

    @abstractmethod
    def get_user(self, user_id: int) -> User | None: ...

    @abstractmethod
    def get_user_by_wallet(self, wallet_address: str) -> User | None:
        """Look up by normalized wallet address."""

    @abstractmethod
    def get_user_by_username(self, username: str) -> User | None: ...

    @abstractmethod
    def update_user_wallet(self, user_id: int, wallet_address: str) -> User | None:
        """Rewrite the stored form of a user's wallet address."""

    # ==========================================================================
    # Courses
    # ==========================================================================

    @abstractmethod
    def insert_course(self, course: Course) -> Course: ...

    @abstractmethod
    def get_course(self, course_id: int) -> Course | None: ...

    @abstractmethod
    def set_course_published(self, course_id: int, is_published: bool) -> Course | None: ...

    @abstractmethod
    def list_courses(self) -> list[Course]: ...

    # ==========================================================================
    # Ownerships
    # ==========================================================================

    @abstractmethod
    def insert_ownership(self, ownership: Ownership) -> Ownership:
        """Insert unless (course_id, owner_id) is already held."""

    @abstractmethod
    def get_ownership(self, ownership_id: int) -> Ownership | None: ...

    @abstractmethod
    def get_ownership_by_course_and_owner(
        self, course_id: int, owner_id: int
    ) -> Ownership | None: ...

    @abstractmethod
    def list_ownerships_by_owner(self, owner_id: int) -> list[Ownership]: ...

    @abstractmethod
    def list_ownerships_by_course(self, course_id: int) -> list[Ownership]: ...

    # ==========================================================================
    # Delegated access
    # ==========================================================================

    @abstractmethod
    def insert_grant(
        self, grant: DelegatedAccess, conflicts: GrantConflict
    ) -> DelegatedAccess:
        """Insert unless an existing grant for the same key ``conflicts``.

        The check and the insert are atomic with respect to other inserts
        for the same (ownership_id, recipient_address).
        """

    @abstractmethod
    def get_grant(self, grant_id: int) -> DelegatedAccess | None: ...

    @abstractmethod
    def deactivate_grant(self, grant_id: int) -> DelegatedAccess | None:
        """Set ``is_active`` to False; None if the grant does not exist."""

    @abstractmethod
    def list_grants_by_ownership(self, ownership_id: int) -> list[DelegatedAccess]: ...

    @abstractmethod
    def list_grants_by_recipient(self, recipient_address: str) -> list[DelegatedAccess]: ...

    # ==========================================================================
    # Access requests
    # ==========================================================================

    @abstractmethod
    def insert_request(self, request: AccessRequest) -> AccessRequest: ...

    @abstractmethod
    def get_request(self, request_id: int) -> AccessRequest | None: ...

    @abstractmethod
    def transition_request(
        self,
        request_id: int,
        expected: AccessRequestStatus,
        new_status: AccessRequestStatus,
        updated_at: datetime,
    ) -> AccessRequest | None:
        """Compare-and-set the status.

        Returns the updated request, or None when the request is missing or
        its current status is not ``expected``.
        """

    @abstractmethod
    def list_requests_by_course(self, course_id: int) -> list[AccessRequest]: ...

    @abstractmethod
    def list_requests_by_requester(self, requester_address: str) -> list[AccessRequest]: ...

    @abstractmethod
    def list_requests_by_owner(self, owner_address: str) -> list[AccessRequest]: ...
