"""Dependency injection for the ownership module."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from coursepass.core.exceptions import BusinessHTTPException, CoursePassError

from .service import OwnershipService


async def get_ownership_service(request: Request) -> OwnershipService:
    """Get ownership service from app state."""
    service = getattr(request.app.state, "ownership_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Ownership service not available",
        )
    return service


OwnershipServiceDep = Annotated[OwnershipService, Depends(get_ownership_service)]


def handle_ownership_error(error: CoursePassError) -> HTTPException:
    """Convert ownership errors to HTTP exceptions."""
    status_map = {
        "storage_contention": status.HTTP_503_SERVICE_UNAVAILABLE,
        "course_not_found": status.HTTP_404_NOT_FOUND,
        "owner_not_found": status.HTTP_404_NOT_FOUND,
        "ownership_not_found": status.HTTP_404_NOT_FOUND,
        "duplicate_ownership": status.HTTP_409_CONFLICT,
    }
    return BusinessHTTPException(
        status_map.get(error.code, status.HTTP_400_BAD_REQUEST), error
    )
