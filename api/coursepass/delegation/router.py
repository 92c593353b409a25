"""Delegated access API router.

Endpoints:
- POST /v1/access/share - Share an owned course with a wallet
- GET /v1/access/shared/{wallet_address} - Courses shared with a wallet
- GET /v1/access/ownerships/{ownership_id} - Grants issued from an ownership
- POST /v1/access/revoke/{grant_id} - Revoke a grant
"""

from fastapi import APIRouter, status

from coursepass.core.exceptions import CoursePassError

from .dependencies import DelegationServiceDep, handle_delegation_error
from .schemas import (
    GrantListResponse,
    GrantResponse,
    RevokeResponse,
    ShareAccessRequest,
    SharedCourseListResponse,
)


router = APIRouter(prefix="/v1/access", tags=["access"])


@router.post(
    "/share",
    response_model=GrantResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Share course access",
)
async def share_access(
    request: ShareAccessRequest,
    service: DelegationServiceDep,
) -> GrantResponse:
    try:
        grant = await service.grant(
            ownership_id=request.ownership_id,
            recipient_address=request.recipient_address,
            expires_at=request.expires_at,
        )
    except CoursePassError as e:
        raise handle_delegation_error(e) from e
    return GrantResponse.from_grant(grant, service.clock())


@router.get(
    "/shared/{wallet_address}",
    response_model=SharedCourseListResponse,
    summary="List courses shared with a wallet",
)
async def list_shared(
    wallet_address: str,
    service: DelegationServiceDep,
) -> SharedCourseListResponse:
    try:
        return await service.list_active_for_wallet(wallet_address)
    except CoursePassError as e:
        raise handle_delegation_error(e) from e


@router.get(
    "/ownerships/{ownership_id}",
    response_model=GrantListResponse,
    summary="List grants of an ownership",
)
async def list_ownership_grants(
    ownership_id: int,
    service: DelegationServiceDep,
) -> GrantListResponse:
    try:
        return await service.list_by_ownership(ownership_id)
    except CoursePassError as e:
        raise handle_delegation_error(e) from e


@router.post(
    "/revoke/{grant_id}",
    response_model=RevokeResponse,
    summary="Revoke shared access",
)
async def revoke_access(grant_id: int, service: DelegationServiceDep) -> RevokeResponse:
    """Revoke a grant. Revoking twice succeeds both times."""
    try:
        revoked = await service.revoke(grant_id)
    except CoursePassError as e:
        raise handle_delegation_error(e) from e
    return RevokeResponse(grant_id=grant_id, revoked=revoked)
