"""Pydantic schemas for courses."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class CourseResponse(BaseModel):
    """Response schema for a course."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    creator_id: int
    title: str
    is_published: bool
    created_at: datetime


class CreateCourseRequest(BaseModel):
    """Request to register a course."""

    creator_id: int = Field(..., description="Creator's user id")
    title: str = Field(..., min_length=1, max_length=200)


class CourseListResponse(BaseModel):
    """Response schema for listing courses."""

    items: list[CourseResponse]
    total: int


class PublishCourseRequest(BaseModel):
    """Toggle the listing state of a course."""

    is_published: bool = True
