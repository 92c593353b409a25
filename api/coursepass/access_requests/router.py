"""Access request API router.

Endpoints:
- POST /v1/access-requests - Ask an owner for temporary access
- GET /v1/access-requests/course/{course_id} - Requests for a course
- GET /v1/access-requests/requester/{wallet_address} - Requests sent by a wallet
- GET /v1/access-requests/owner/{wallet_address} - Requests received by a wallet
- PATCH /v1/access-requests/{request_id}/status - Approve or reject
"""

from fastapi import APIRouter, status

from coursepass.core.exceptions import CoursePassError

from .dependencies import AccessRequestServiceDep, handle_access_request_error
from .schemas import (
    AccessRequestListResponse,
    AccessRequestResponse,
    StatusUpdateResponse,
    SubmitAccessRequest,
    UpdateStatusRequest,
)


router = APIRouter(prefix="/v1/access-requests", tags=["access-requests"])


@router.post(
    "",
    response_model=AccessRequestResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Request temporary access",
)
async def submit_request(
    request: SubmitAccessRequest,
    service: AccessRequestServiceDep,
) -> AccessRequestResponse:
    try:
        access_request = await service.submit(
            course_id=request.course_id,
            requester_address=request.requester_address,
            owner_address=request.owner_address,
            duration_days=request.requested_duration_days,
            message=request.message,
        )
    except CoursePassError as e:
        raise handle_access_request_error(e) from e
    return AccessRequestResponse.model_validate(access_request)


@router.get(
    "/course/{course_id}",
    response_model=AccessRequestListResponse,
    summary="List requests for a course",
)
async def list_for_course(
    course_id: int,
    service: AccessRequestServiceDep,
) -> AccessRequestListResponse:
    return await service.list_by_course(course_id)


@router.get(
    "/requester/{wallet_address}",
    response_model=AccessRequestListResponse,
    summary="List requests sent by a wallet",
)
async def list_sent(
    wallet_address: str,
    service: AccessRequestServiceDep,
) -> AccessRequestListResponse:
    try:
        return await service.list_by_requester(wallet_address)
    except CoursePassError as e:
        raise handle_access_request_error(e) from e


@router.get(
    "/owner/{wallet_address}",
    response_model=AccessRequestListResponse,
    summary="List requests received by a wallet",
)
async def list_received(
    wallet_address: str,
    service: AccessRequestServiceDep,
) -> AccessRequestListResponse:
    try:
        return await service.list_by_owner(wallet_address)
    except CoursePassError as e:
        raise handle_access_request_error(e) from e


@router.patch(
    "/{request_id}/status",
    response_model=StatusUpdateResponse,
    summary="Approve or reject a request",
)
async def update_status(
    request_id: int,
    request: UpdateStatusRequest,
    service: AccessRequestServiceDep,
) -> StatusUpdateResponse:
    """Decide a pending request.

    Approval always changes the status. If issuing the grant then fails,
    the response still succeeds with ``access_granted`` false and the
    reason in ``grant_error``.
    """
    try:
        result = await service.set_status(request_id, request.status)
    except CoursePassError as e:
        raise handle_access_request_error(e) from e
    return StatusUpdateResponse.from_result(result)
