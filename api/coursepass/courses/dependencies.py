"""FastAPI dependencies for course routes."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from coursepass.core.exceptions import BusinessHTTPException, CoursePassError

from .service import CourseService


async def get_course_service(request: Request) -> CourseService:
    """Get course service from app state."""
    service = getattr(request.app.state, "course_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Course service not available",
        )
    return service


CourseServiceDep = Annotated[CourseService, Depends(get_course_service)]


def handle_course_error(error: CoursePassError) -> HTTPException:
    """Convert course errors to HTTP exceptions."""
    status_map = {
        "storage_contention": status.HTTP_503_SERVICE_UNAVAILABLE,
        "course_not_found": status.HTTP_404_NOT_FOUND,
        "user_not_found": status.HTTP_404_NOT_FOUND,
    }
    return BusinessHTTPException(
        status_map.get(error.code, status.HTTP_400_BAD_REQUEST), error
    )
