"""Access check endpoint."""

from fastapi import APIRouter, status

from coursepass.core.exceptions import (
    BusinessHTTPException,
    CoursePassError,
    StorageContentionError,
)

from .dependencies import AccessServiceDep
from .schemas import CheckAccessRequest, CheckAccessResponse


router = APIRouter(prefix="/v1/access", tags=["access"])


@router.post(
    "/check",
    response_model=CheckAccessResponse,
    summary="Check course access",
)
async def check_access(
    request: CheckAccessRequest,
    service: AccessServiceDep,
) -> CheckAccessResponse:
    """Whether a wallet may view a course, and how."""
    try:
        return await service.check_access(request.course_id, request.wallet_address)
    except StorageContentionError as e:
        raise BusinessHTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, e) from e
    except CoursePassError as e:
        raise BusinessHTTPException(status.HTTP_400_BAD_REQUEST, e) from e
