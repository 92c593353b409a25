"""Pydantic schemas for delegated access."""

from datetime import datetime

from pydantic import BaseModel, Field

from coursepass.courses.models import Course

from .models import DelegatedAccess, is_effectively_active


# ==============================================================================
# Response Schemas
# ==============================================================================


class GrantResponse(BaseModel):
    """Response schema for a single grant."""

    id: int
    ownership_id: int
    recipient_address: str
    expires_at: datetime
    is_active: bool = Field(..., description="False once revoked")
    created_at: datetime
    is_live: bool = Field(..., description="Whether the grant authorizes access now")

    @classmethod
    def from_grant(cls, grant: DelegatedAccess, now: datetime) -> "GrantResponse":
        return cls(
            id=grant.id,
            ownership_id=grant.ownership_id,
            recipient_address=grant.recipient_address,
            expires_at=grant.expires_at,
            is_active=grant.is_active,
            created_at=grant.created_at,
            is_live=is_effectively_active(grant, now),
        )


class GrantListResponse(BaseModel):
    """Response schema for the grants of one ownership."""

    items: list[GrantResponse]
    total: int
    live_count: int


class SharedCourseResponse(BaseModel):
    """A course shared with the caller, with the grant that shares it."""

    share_id: int = Field(..., description="Grant ID")
    course_id: int
    title: str
    creator_id: int
    expires_at: datetime

    @classmethod
    def from_grant(cls, grant: DelegatedAccess, course: Course) -> "SharedCourseResponse":
        return cls(
            share_id=grant.id,
            course_id=course.id,
            title=course.title,
            creator_id=course.creator_id,
            expires_at=grant.expires_at,
        )


class SharedCourseListResponse(BaseModel):
    items: list[SharedCourseResponse]
    total: int


class RevokeResponse(BaseModel):
    grant_id: int
    revoked: bool
    message: str = "Temporary access revoked"


# ==============================================================================
# Request Schemas
# ==============================================================================


class ShareAccessRequest(BaseModel):
    """Request to share an owned course with another wallet."""

    ownership_id: int = Field(..., description="Ownership to share from")
    recipient_address: str = Field(..., min_length=1, max_length=128)
    expires_at: datetime = Field(..., description="When access ends (UTC if naive)")
