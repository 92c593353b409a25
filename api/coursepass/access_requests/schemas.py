"""Pydantic schemas for access requests.

Request/Response models for:
- Submitting a request to a course owner
- Approving or rejecting a request
- Listing requests by course, requester or owner
"""

from datetime import datetime
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from coursepass.courses.models import Course

from .models import AccessRequest, AccessRequestStatus


if TYPE_CHECKING:
    from .service import StatusUpdateResult


# ==============================================================================
# Response Schemas
# ==============================================================================


class AccessRequestResponse(BaseModel):
    """Response schema for a single access request."""

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="Request ID")
    course_id: int
    requester_address: str
    owner_address: str
    requested_duration_days: int
    message: str | None = None
    status: AccessRequestStatus
    created_at: datetime
    updated_at: datetime


class RequestCourseSummary(BaseModel):
    """Course fields embedded in request listings."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    creator_id: int


class AccessRequestWithCourseResponse(AccessRequestResponse):
    """An access request joined with its course."""

    course: RequestCourseSummary

    @classmethod
    def from_request(
        cls, request: AccessRequest, course: Course
    ) -> "AccessRequestWithCourseResponse":
        return cls(
            id=request.id,
            course_id=request.course_id,
            requester_address=request.requester_address,
            owner_address=request.owner_address,
            requested_duration_days=request.requested_duration_days,
            message=request.message,
            status=request.status,
            created_at=request.created_at,
            updated_at=request.updated_at,
            course=RequestCourseSummary.model_validate(course),
        )


class AccessRequestListResponse(BaseModel):
    """Response schema for listing access requests."""

    items: list[AccessRequestWithCourseResponse]
    total: int
    pending_count: int = 0


class GrantErrorDetail(BaseModel):
    code: str
    message: str


class StatusUpdateResponse(AccessRequestResponse):
    """Updated request plus the outcome of issuing access on approval.

    ``access_granted`` is None for rejections. On approval it is False when
    the status changed but no grant could be issued; ``grant_error`` then
    says why.
    """

    access_granted: bool | None = None
    grant_id: int | None = None
    expires_at: datetime | None = None
    grant_error: GrantErrorDetail | None = None

    @classmethod
    def from_result(cls, result: "StatusUpdateResult") -> "StatusUpdateResponse":
        request = result.request
        return cls(
            id=request.id,
            course_id=request.course_id,
            requester_address=request.requester_address,
            owner_address=request.owner_address,
            requested_duration_days=request.requested_duration_days,
            message=request.message,
            status=request.status,
            created_at=request.created_at,
            updated_at=request.updated_at,
            access_granted=result.access_granted,
            grant_id=result.grant.id if result.grant else None,
            expires_at=result.expires_at,
            grant_error=(
                GrantErrorDetail(**result.grant_error.to_dict())
                if result.grant_error
                else None
            ),
        )


# ==============================================================================
# Request Schemas
# ==============================================================================


class SubmitAccessRequest(BaseModel):
    """Ask a course owner for temporary access."""

    course_id: int = Field(..., description="Course to request access to")
    requester_address: str = Field(..., min_length=1, max_length=128)
    owner_address: str = Field(..., min_length=1, max_length=128)
    requested_duration_days: int = Field(..., description="Days of access, 1 to 90")
    message: str | None = Field(None, max_length=1000)


class UpdateStatusRequest(BaseModel):
    status: AccessRequestStatus
