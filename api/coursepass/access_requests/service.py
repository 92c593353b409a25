"""Access request workflow.

A wallet asks a course owner for temporary access. Approval moves the
request to APPROVED first and then tries to issue a grant through the
delegation engine; a failed grant never rolls the status back and is
reported in ``StatusUpdateResult`` instead.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from coursepass.core.clock import Clock, utc_now
from coursepass.core.exceptions import CourseNotFoundError, CoursePassError
from coursepass.core.logging import get_logger
from coursepass.delegation.models import DelegatedAccess
from coursepass.identity.service import normalize_wallet_address
from coursepass.ownership.service import OwnerNotFoundError

from .models import (
    MAX_DURATION_DAYS,
    MIN_DURATION_DAYS,
    AccessRequest,
    AccessRequestStatus,
)
from .schemas import AccessRequestListResponse, AccessRequestWithCourseResponse


if TYPE_CHECKING:
    from coursepass.core.database import Storage
    from coursepass.delegation.service import DelegationService
    from coursepass.identity.service import IdentityService
    from coursepass.ownership.service import OwnershipService


logger = get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class InvalidDurationError(CoursePassError):
    """Requested duration outside the allowed range."""

    def __init__(self, duration_days: int):
        super().__init__(
            f"Duration must be between {MIN_DURATION_DAYS} and {MAX_DURATION_DAYS} "
            f"days, got {duration_days}",
            "invalid_duration",
        )


class SelfRequestError(CoursePassError):
    """Requester and owner are the same wallet."""

    def __init__(self):
        super().__init__("Cannot request access from yourself", "self_request")


class RequestNotFoundError(CoursePassError):
    """Access request does not exist."""

    def __init__(self, request_id: int):
        super().__init__(f"Access request {request_id} not found", "request_not_found")


class InvalidTransitionError(CoursePassError):
    """Status change not allowed from the current state."""

    def __init__(
        self, current: AccessRequestStatus, target: AccessRequestStatus | str
    ):
        target_name = (
            target.value if isinstance(target, AccessRequestStatus) else target
        )
        super().__init__(
            f"Cannot move access request from {current.value} to {target_name}",
            "invalid_transition",
        )


class OwnershipMissingError(CoursePassError):
    """Owner named in a request does not own the course."""

    def __init__(self, course_id: int, owner_address: str):
        super().__init__(
            f"{owner_address} does not own course {course_id}", "ownership_missing"
        )


# ==============================================================================
# Results
# ==============================================================================


@dataclass(frozen=True)
class StatusUpdateResult:
    """Outcome of ``AccessRequestService.set_status``."""

    request: AccessRequest
    access_granted: bool | None = None
    grant: DelegatedAccess | None = None
    expires_at: datetime | None = None
    grant_error: CoursePassError | None = None


# ==============================================================================
# Access Request Service
# ==============================================================================


class AccessRequestService:
    """Service for the request/approval workflow."""

    def __init__(
        self,
        store: "Storage",
        identity: "IdentityService",
        ownership: "OwnershipService",
        delegation: "DelegationService",
        clock: Clock = utc_now,
    ):
        self.store = store
        self.identity = identity
        self.ownership = ownership
        self.delegation = delegation
        self.clock = clock

    async def submit(
        self,
        course_id: int,
        requester_address: str,
        owner_address: str,
        duration_days: int,
        message: str | None = None,
    ) -> AccessRequest:
        """Create a pending request.

        Raises:
            InvalidDurationError: If ``duration_days`` is outside 1..90
            SelfRequestError: If requester and owner are the same wallet
            CourseNotFoundError: If the course does not exist
        """
        requester = normalize_wallet_address(requester_address)
        owner = normalize_wallet_address(owner_address)

        if not MIN_DURATION_DAYS <= duration_days <= MAX_DURATION_DAYS:
            raise InvalidDurationError(duration_days)
        if requester == owner:
            raise SelfRequestError()
        if self.store.get_course(course_id) is None:
            raise CourseNotFoundError(course_id)

        now = self.clock()
        request = self.store.insert_request(
            AccessRequest(
                course_id=course_id,
                requester_address=requester,
                owner_address=owner,
                requested_duration_days=duration_days,
                message=message,
                created_at=now,
                updated_at=now,
            )
        )

        logger.info(
            "access_request_submitted",
            request_id=request.id,
            course_id=course_id,
            requester=requester,
            owner=owner,
            duration_days=duration_days,
        )
        return request

    async def set_status(
        self,
        request_id: int,
        new_status: AccessRequestStatus | str,
    ) -> StatusUpdateResult:
        """Approve or reject a pending request.

        On approval a grant of ``requested_duration_days`` is issued to the
        requester. Grant failures are returned in the result, not raised.

        Raises:
            RequestNotFoundError: If the request does not exist
            InvalidTransitionError: If the request is not pending or the
                target is not a known terminal status
        """
        request = self.store.get_request(request_id)
        if request is None:
            raise RequestNotFoundError(request_id)

        try:
            target = AccessRequestStatus(new_status)
        except ValueError:
            raise InvalidTransitionError(request.status, str(new_status)) from None
        if not target.is_terminal or request.status is not AccessRequestStatus.PENDING:
            raise InvalidTransitionError(request.status, target)

        updated = self.store.transition_request(
            request_id, AccessRequestStatus.PENDING, target, self.clock()
        )
        if updated is None:
            # Lost the race to another decision
            current = self.store.get_request(request_id)
            if current is None:
                raise RequestNotFoundError(request_id)
            raise InvalidTransitionError(current.status, target)

        logger.info(
            "access_request_status_changed",
            request_id=request_id,
            status=target.value,
        )

        if target is AccessRequestStatus.REJECTED:
            return StatusUpdateResult(request=updated)

        try:
            grant = await self._grant_for(updated)
        except CoursePassError as e:
            logger.warning(
                "approval_grant_failed",
                request_id=request_id,
                error_code=e.code,
                error=e.message,
            )
            return StatusUpdateResult(
                request=updated, access_granted=False, grant_error=e
            )

        return StatusUpdateResult(
            request=updated,
            access_granted=True,
            grant=grant,
            expires_at=grant.expires_at,
        )

    async def _grant_for(self, request: AccessRequest) -> DelegatedAccess:
        owner = self.identity.find_by_wallet(request.owner_address)
        if owner is None:
            raise OwnerNotFoundError(request.owner_address)

        ownership = self.ownership.find_by_course_and_owner(request.course_id, owner.id)
        if ownership is None:
            raise OwnershipMissingError(request.course_id, request.owner_address)

        expires_at = self.clock() + timedelta(days=request.requested_duration_days)
        return await self.delegation.grant(
            ownership_id=ownership.id,
            recipient_address=request.requester_address,
            expires_at=expires_at,
        )

    def get_request(self, request_id: int) -> AccessRequest | None:
        return self.store.get_request(request_id)

    # ==========================================================================
    # Listing
    # ==========================================================================

    async def list_by_course(self, course_id: int) -> AccessRequestListResponse:
        return self._build_list(self.store.list_requests_by_course(course_id))

    async def list_by_requester(self, requester_address: str) -> AccessRequestListResponse:
        requester = normalize_wallet_address(requester_address)
        return self._build_list(self.store.list_requests_by_requester(requester))

    async def list_by_owner(self, owner_address: str) -> AccessRequestListResponse:
        owner = normalize_wallet_address(owner_address)
        return self._build_list(self.store.list_requests_by_owner(owner))

    def _build_list(self, requests: list[AccessRequest]) -> AccessRequestListResponse:
        ordered = sorted(requests, key=lambda r: (r.created_at, r.id), reverse=True)

        courses = {}
        items = []
        for request in ordered:
            if request.course_id not in courses:
                courses[request.course_id] = self.store.get_course(request.course_id)
            course = courses[request.course_id]
            if course is None:
                continue
            items.append(AccessRequestWithCourseResponse.from_request(request, course))

        return AccessRequestListResponse(
            items=items,
            total=len(items),
            pending_count=sum(
                1 for i in items if i.status is AccessRequestStatus.PENDING
            ),
        )
