"""Pydantic schemas for course ownership.

Request/Response models for:
- Minting an ownership
- Listing the courses a user owns
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from coursepass.courses.models import Course

from .models import Ownership


# ==============================================================================
# Response Schemas
# ==============================================================================


class OwnershipResponse(BaseModel):
    """Response schema for a single ownership."""

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="Ownership ID")
    course_id: int
    owner_id: int
    token_id: str
    tx_hash: str | None = None
    minted_at: datetime


class OwnedCourseResponse(BaseModel):
    """An ownership joined with its course."""

    ownership_id: int
    course_id: int
    title: str
    creator_id: int
    token_id: str
    tx_hash: str | None = None
    minted_at: datetime

    @classmethod
    def from_ownership(
        cls, ownership: Ownership, course: Course
    ) -> "OwnedCourseResponse":
        return cls(
            ownership_id=ownership.id,
            course_id=course.id,
            title=course.title,
            creator_id=course.creator_id,
            token_id=ownership.token_id,
            tx_hash=ownership.tx_hash,
            minted_at=ownership.minted_at,
        )


class OwnedCourseListResponse(BaseModel):
    """Response schema for listing owned courses."""

    items: list[OwnedCourseResponse]
    total: int


# ==============================================================================
# Request Schemas
# ==============================================================================


class MintRequest(BaseModel):
    """Record a mint reported by the wallet layer."""

    course_id: int = Field(..., description="Course being minted")
    owner_id: int = Field(..., description="User receiving the NFT")
    token_id: str = Field(..., min_length=1, max_length=128)
    tx_hash: str | None = Field(None, max_length=128)
