"""FastAPI dependencies for identity routes."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from coursepass.core.exceptions import BusinessHTTPException, CoursePassError

from .service import IdentityService


async def get_identity_service(request: Request) -> IdentityService:
    """Get identity service from app state."""
    service = getattr(request.app.state, "identity_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Identity service not available",
        )
    return service


IdentityServiceDep = Annotated[IdentityService, Depends(get_identity_service)]


def handle_identity_error(error: CoursePassError) -> HTTPException:
    """Convert identity errors to HTTP exceptions."""
    status_map = {
        "storage_contention": status.HTTP_503_SERVICE_UNAVAILABLE,
        "invalid_wallet_address": status.HTTP_400_BAD_REQUEST,
        "user_not_found": status.HTTP_404_NOT_FOUND,
        "username_taken": status.HTTP_409_CONFLICT,
        "wallet_taken": status.HTTP_409_CONFLICT,
    }
    return BusinessHTTPException(
        status_map.get(error.code, status.HTTP_400_BAD_REQUEST), error
    )
