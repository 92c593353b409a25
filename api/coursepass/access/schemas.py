"""Pydantic schemas for access checks."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class AccessType(str, Enum):
    """Why a wallet may view a course."""

    OWNER = "owner"  # Wallet's user holds an ownership
    TEMPORARY = "temporary"  # Live grant on some ownership of the course


class CheckAccessRequest(BaseModel):
    course_id: int = Field(..., description="Course to check")
    wallet_address: str = Field(..., min_length=1, max_length=128)


class CheckAccessResponse(BaseModel):
    """Response for checking course access."""

    has_access: bool = Field(..., description="Whether the wallet may view the course")
    access_type: AccessType | None = Field(
        None, description="How access is held (if has_access=True)"
    )
    expires_at: datetime | None = Field(
        None, description="When temporary access ends"
    )
