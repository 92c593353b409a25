"""Access query facade.

Answers "may this wallet view this course?" from the ownership ledger and
the delegation engine. Access hierarchy:
1. Ownership held by the wallet's user: owner access
2. Live grant to the wallet on any ownership of the course: temporary access
3. Otherwise no access
"""

from datetime import datetime
from typing import TYPE_CHECKING

from coursepass.core.clock import Clock, utc_now
from coursepass.core.logging import get_logger
from coursepass.core.redis import access_cache_key
from coursepass.identity.service import normalize_wallet_address

from .schemas import AccessType, CheckAccessResponse


if TYPE_CHECKING:
    from redis.asyncio import Redis

    from coursepass.core.database import Storage
    from coursepass.delegation.service import DelegationService
    from coursepass.identity.service import IdentityService
    from coursepass.ownership.service import OwnershipService


logger = get_logger(__name__)

OWNER_ACCESS = CheckAccessResponse(has_access=True, access_type=AccessType.OWNER)


class AccessService:
    """Service for course access checks."""

    def __init__(
        self,
        store: "Storage",
        identity: "IdentityService",
        ownership: "OwnershipService",
        delegation: "DelegationService",
        clock: Clock = utc_now,
        redis: "Redis | None" = None,
        cache_ttl: int = 300,
    ):
        self.store = store
        self.identity = identity
        self.ownership = ownership
        self.delegation = delegation
        self.clock = clock
        self.redis = redis
        self.cache_ttl = cache_ttl

    async def check_access(
        self, course_id: int, wallet_address: str
    ) -> CheckAccessResponse:
        """Check a wallet's access to a course.

        Only owner results are cached: ownerships are never deleted, while
        a grant can be revoked or expire at any moment.

        Args:
            course_id: Course to check
            wallet_address: Wallet in any case

        Returns:
            CheckAccessResponse with access details
        """
        wallet = normalize_wallet_address(wallet_address)

        cache_key = access_cache_key(course_id, wallet)
        if self.redis:
            try:
                if await self.redis.get(cache_key) == "1":
                    return OWNER_ACCESS
            except Exception:
                logger.exception("access_cache_error", operation="get")

        with self.store.snapshot():
            result = self._evaluate(course_id, wallet, self.clock())

        if self.redis and result.access_type is AccessType.OWNER:
            try:
                await self.redis.setex(cache_key, self.cache_ttl, "1")
            except Exception:
                logger.exception("access_cache_error", operation="setex")

        logger.debug(
            "access_checked",
            course_id=course_id,
            wallet=wallet,
            has_access=result.has_access,
            access_type=result.access_type.value if result.access_type else None,
        )
        return result

    def _evaluate(
        self, course_id: int, wallet: str, now: datetime
    ) -> CheckAccessResponse:
        user = self.identity.find_by_wallet(wallet)
        if user is not None and self.ownership.find_by_course_and_owner(
            course_id, user.id
        ):
            return OWNER_ACCESS

        ownership_ids = [o.id for o in self.ownership.list_by_course(course_id)]
        grant = self.delegation.find_live_grant(ownership_ids, wallet, now)
        if grant is not None:
            return CheckAccessResponse(
                has_access=True,
                access_type=AccessType.TEMPORARY,
                expires_at=grant.expires_at,
            )

        return CheckAccessResponse(has_access=False)
