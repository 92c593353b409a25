"""Ownership ledger service.

Records course NFT mints. The ledger is append-only: an ownership is never
updated or deleted, which is what lets access checks cache owner results.
"""

from typing import TYPE_CHECKING

from coursepass.core.clock import Clock, utc_now
from coursepass.core.exceptions import (
    CourseNotFoundError,
    CoursePassError,
    UniqueConstraintError,
)
from coursepass.core.logging import get_logger

from .models import Attestation, Ownership
from .schemas import OwnedCourseListResponse, OwnedCourseResponse


if TYPE_CHECKING:
    from coursepass.core.database import Storage


logger = get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class DuplicateOwnershipError(CoursePassError):
    """User already owns the course."""

    def __init__(self, course_id: int, owner_id: int):
        super().__init__(
            f"User {owner_id} already owns course {course_id}",
            "duplicate_ownership",
        )


class OwnershipNotFoundError(CoursePassError):
    """Ownership record does not exist."""

    def __init__(self, ownership_id: int):
        super().__init__(f"Ownership {ownership_id} not found", "ownership_not_found")


class OwnerNotFoundError(CoursePassError):
    """No user behind the given owner id or owner wallet."""

    def __init__(self, owner: int | str):
        super().__init__(f"Owner {owner} not found", "owner_not_found")


# ==============================================================================
# Ownership Service
# ==============================================================================


class OwnershipService:
    """Service for minting and looking up course ownerships."""

    def __init__(self, store: "Storage", clock: Clock = utc_now):
        self.store = store
        self.clock = clock

    async def mint(
        self,
        course_id: int,
        owner_id: int,
        attestation: Attestation,
    ) -> Ownership:
        """Record that ``owner_id`` minted the NFT for ``course_id``.

        The attestation is stored as-is for audit.

        Args:
            course_id: Course being minted
            owner_id: User receiving the ownership
            attestation: Token id and optional transaction hash

        Returns:
            The new ownership

        Raises:
            CourseNotFoundError: If the course does not exist
            OwnerNotFoundError: If the owner user does not exist
            DuplicateOwnershipError: If the user already owns the course
        """
        if self.store.get_course(course_id) is None:
            raise CourseNotFoundError(course_id)
        if self.store.get_user(owner_id) is None:
            raise OwnerNotFoundError(owner_id)

        try:
            ownership = self.store.insert_ownership(
                Ownership(
                    course_id=course_id,
                    owner_id=owner_id,
                    token_id=attestation.token_id,
                    tx_hash=attestation.tx_hash,
                    minted_at=self.clock(),
                )
            )
        except UniqueConstraintError as e:
            logger.info(
                "ownership_mint_duplicate", course_id=course_id, owner_id=owner_id
            )
            raise DuplicateOwnershipError(course_id, owner_id) from e

        logger.info(
            "ownership_minted",
            ownership_id=ownership.id,
            course_id=course_id,
            owner_id=owner_id,
            token_id=attestation.token_id,
        )
        return ownership

    def find_by_course_and_owner(
        self, course_id: int, owner_id: int
    ) -> Ownership | None:
        return self.store.get_ownership_by_course_and_owner(course_id, owner_id)

    def get_ownership(self, ownership_id: int) -> Ownership | None:
        return self.store.get_ownership(ownership_id)

    def list_by_course(self, course_id: int) -> list[Ownership]:
        return self.store.list_ownerships_by_course(course_id)

    async def list_by_owner(self, owner_id: int) -> OwnedCourseListResponse:
        """Courses a user owns, newest mint first."""
        ownerships = sorted(
            self.store.list_ownerships_by_owner(owner_id),
            key=lambda o: (o.minted_at, o.id),
            reverse=True,
        )

        items = []
        for ownership in ownerships:
            course = self.store.get_course(ownership.course_id)
            if course is None:
                logger.warning(
                    "ownership_course_missing",
                    ownership_id=ownership.id,
                    course_id=ownership.course_id,
                )
                continue
            items.append(OwnedCourseResponse.from_ownership(ownership, course))

        return OwnedCourseListResponse(items=items, total=len(items))
