"""Dependency injection for the access request module."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from coursepass.core.exceptions import BusinessHTTPException, CoursePassError

from .service import AccessRequestService


async def get_access_request_service(request: Request) -> AccessRequestService:
    """Get access request service from app state."""
    service = getattr(request.app.state, "access_request_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Access request service not available",
        )
    return service


AccessRequestServiceDep = Annotated[
    AccessRequestService, Depends(get_access_request_service)
]


def handle_access_request_error(error: CoursePassError) -> HTTPException:
    """Convert access request errors to HTTP exceptions."""
    status_map = {
        "storage_contention": status.HTTP_503_SERVICE_UNAVAILABLE,
        "request_not_found": status.HTTP_404_NOT_FOUND,
        "course_not_found": status.HTTP_404_NOT_FOUND,
        "invalid_transition": status.HTTP_409_CONFLICT,
        "invalid_duration": status.HTTP_400_BAD_REQUEST,
        "self_request": status.HTTP_400_BAD_REQUEST,
        "invalid_wallet_address": status.HTTP_400_BAD_REQUEST,
    }
    return BusinessHTTPException(
        status_map.get(error.code, status.HTTP_400_BAD_REQUEST), error
    )
