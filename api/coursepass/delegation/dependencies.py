"""Dependency injection for the delegation module."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from coursepass.core.exceptions import BusinessHTTPException, CoursePassError

from .service import DelegationService


async def get_delegation_service(request: Request) -> DelegationService:
    """Get delegation service from app state."""
    service = getattr(request.app.state, "delegation_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Delegation service not available",
        )
    return service


DelegationServiceDep = Annotated[DelegationService, Depends(get_delegation_service)]


def handle_delegation_error(error: CoursePassError) -> HTTPException:
    """Convert delegation errors to HTTP exceptions."""
    status_map = {
        "storage_contention": status.HTTP_503_SERVICE_UNAVAILABLE,
        "ownership_not_found": status.HTTP_404_NOT_FOUND,
        "grant_not_found": status.HTTP_404_NOT_FOUND,
        "duplicate_active_grant": status.HTTP_409_CONFLICT,
        "invalid_expiry": status.HTTP_400_BAD_REQUEST,
        "invalid_wallet_address": status.HTTP_400_BAD_REQUEST,
    }
    return BusinessHTTPException(
        status_map.get(error.code, status.HTTP_400_BAD_REQUEST), error
    )
