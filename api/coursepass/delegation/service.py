"""Delegation engine.

Owners share a course with another wallet until a deadline. Liveness of a
grant is never stored: it is recomputed with ``is_effectively_active`` on
every read, so an expired grant needs no cleanup.
"""

from collections.abc import Iterable
from datetime import datetime
from typing import TYPE_CHECKING

from coursepass.core.clock import Clock, ensure_utc_aware, utc_now
from coursepass.core.exceptions import CoursePassError, UniqueConstraintError
from coursepass.core.logging import get_logger
from coursepass.identity.service import normalize_wallet_address
from coursepass.ownership.service import OwnershipNotFoundError

from .models import DelegatedAccess, is_effectively_active
from .schemas import (
    GrantListResponse,
    GrantResponse,
    SharedCourseListResponse,
    SharedCourseResponse,
)


if TYPE_CHECKING:
    from coursepass.core.database import Storage


logger = get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class DuplicateActiveGrantError(CoursePassError):
    """A live grant already exists for this ownership and recipient."""

    def __init__(self, ownership_id: int, recipient_address: str):
        super().__init__(
            f"Active temporary access already exists for {recipient_address} "
            f"on ownership {ownership_id}",
            "duplicate_active_grant",
        )


class GrantNotFoundError(CoursePassError):
    """Grant does not exist."""

    def __init__(self, grant_id: int):
        super().__init__(f"Temporary access {grant_id} not found", "grant_not_found")


class InvalidExpiryError(CoursePassError):
    """Expiry is not in the future."""

    def __init__(self, expires_at: datetime):
        super().__init__(
            f"Expiry {expires_at.isoformat()} must be in the future", "invalid_expiry"
        )


# ==============================================================================
# Delegation Service
# ==============================================================================


class DelegationService:
    """Service for granting and revoking temporary access."""

    def __init__(self, store: "Storage", clock: Clock = utc_now):
        self.store = store
        self.clock = clock

    async def grant(
        self,
        ownership_id: int,
        recipient_address: str,
        expires_at: datetime,
    ) -> DelegatedAccess:
        """Share an owned course with a wallet until ``expires_at``.

        Args:
            ownership_id: Ownership the access derives from
            recipient_address: Wallet receiving access (any case)
            expires_at: Deadline; naive values are taken as UTC

        Returns:
            The new grant

        Raises:
            OwnershipNotFoundError: If the ownership does not exist
            InvalidExpiryError: If ``expires_at`` is not after now
            DuplicateActiveGrantError: If a live grant exists for the recipient
        """
        recipient = normalize_wallet_address(recipient_address)
        expires_at = ensure_utc_aware(expires_at)

        if self.store.get_ownership(ownership_id) is None:
            raise OwnershipNotFoundError(ownership_id)

        now = self.clock()
        if expires_at <= now:
            raise InvalidExpiryError(expires_at)

        try:
            grant = self.store.insert_grant(
                DelegatedAccess(
                    ownership_id=ownership_id,
                    recipient_address=recipient,
                    expires_at=expires_at,
                    created_at=now,
                ),
                conflicts=lambda existing: is_effectively_active(existing, now),
            )
        except UniqueConstraintError as e:
            raise DuplicateActiveGrantError(ownership_id, recipient) from e

        logger.info(
            "access_granted",
            grant_id=grant.id,
            ownership_id=ownership_id,
            recipient=recipient,
            expires_at=expires_at.isoformat(),
        )
        return grant

    async def revoke(self, grant_id: int) -> bool:
        """Deactivate a grant. Revoking an inactive grant is a no-op.

        Raises:
            GrantNotFoundError: If the grant does not exist
        """
        grant = self.store.deactivate_grant(grant_id)
        if grant is None:
            raise GrantNotFoundError(grant_id)

        logger.info(
            "access_revoked",
            grant_id=grant_id,
            ownership_id=grant.ownership_id,
            recipient=grant.recipient_address,
        )
        return True

    def find_live_grant(
        self,
        ownership_ids: Iterable[int],
        recipient_address: str,
        now: datetime,
    ) -> DelegatedAccess | None:
        """Live grant to ``recipient_address`` on any of ``ownership_ids``.

        ``recipient_address`` must already be normalized. When several are
        live, the one expiring last wins.
        """
        wanted = set(ownership_ids)
        if not wanted:
            return None

        live = [
            g
            for g in self.store.list_grants_by_recipient(recipient_address)
            if g.ownership_id in wanted and is_effectively_active(g, now)
        ]
        return max(live, key=lambda g: g.expires_at, default=None)

    async def list_active_for_wallet(
        self, recipient_address: str
    ) -> SharedCourseListResponse:
        """Courses currently shared with a wallet, soonest expiry first."""
        recipient = normalize_wallet_address(recipient_address)
        now = self.clock()

        items = []
        for grant in self.store.list_grants_by_recipient(recipient):
            if not is_effectively_active(grant, now):
                continue
            ownership = self.store.get_ownership(grant.ownership_id)
            course = self.store.get_course(ownership.course_id) if ownership else None
            if course is None:
                continue
            items.append(SharedCourseResponse.from_grant(grant, course))

        items.sort(key=lambda i: (i.expires_at, i.share_id))
        return SharedCourseListResponse(items=items, total=len(items))

    async def list_by_ownership(self, ownership_id: int) -> GrantListResponse:
        """Every grant issued from one ownership, newest first.

        Raises:
            OwnershipNotFoundError: If the ownership does not exist
        """
        if self.store.get_ownership(ownership_id) is None:
            raise OwnershipNotFoundError(ownership_id)

        now = self.clock()
        grants = sorted(
            self.store.list_grants_by_ownership(ownership_id),
            key=lambda g: (g.created_at, g.id),
            reverse=True,
        )
        items = [GrantResponse.from_grant(g, now) for g in grants]
        return GrantListResponse(
            items=items,
            total=len(items),
            live_count=sum(1 for i in items if i.is_live),
        )
