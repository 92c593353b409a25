"""Ownership API router.

Endpoints:
- POST /v1/ownerships/mint - Record a course NFT mint
- GET /v1/ownerships/owned/{user_id} - Courses owned by a user
"""

from fastapi import APIRouter, status

from coursepass.core.exceptions import CoursePassError

from .dependencies import OwnershipServiceDep, handle_ownership_error
from .models import Attestation
from .schemas import MintRequest, OwnedCourseListResponse, OwnershipResponse


router = APIRouter(prefix="/v1/ownerships", tags=["ownerships"])


@router.post(
    "/mint",
    response_model=OwnershipResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record a mint",
)
async def mint(
    request: MintRequest,
    service: OwnershipServiceDep,
) -> OwnershipResponse:
    """Record that a user minted the NFT for a course.

    The token id and transaction hash are stored for audit only.
    """
    try:
        ownership = await service.mint(
            course_id=request.course_id,
            owner_id=request.owner_id,
            attestation=Attestation(token_id=request.token_id, tx_hash=request.tx_hash),
        )
    except CoursePassError as e:
        raise handle_ownership_error(e) from e
    return OwnershipResponse.model_validate(ownership)


@router.get(
    "/owned/{user_id}",
    response_model=OwnedCourseListResponse,
    summary="List owned courses",
)
async def list_owned(user_id: int, service: OwnershipServiceDep) -> OwnedCourseListResponse:
    return await service.list_by_owner(user_id)
