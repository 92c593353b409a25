"""Dependency injection for access checks."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import AccessService


async def get_access_service(request: Request) -> AccessService:
    """Get access service from app state."""
    service = getattr(request.app.state, "access_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Access service not available",
        )
    return service


AccessServiceDep = Annotated[AccessService, Depends(get_access_service)]
