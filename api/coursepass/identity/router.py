"""HTTP endpoints for user identity.

Provides:
- POST /v1/users - Register a user
- POST /v1/users/connect-wallet - Resolve (or create) the user behind a wallet
- GET  /v1/users/{user_id} - Get a user
"""

from fastapi import APIRouter, status

from coursepass.core.context import set_wallet
from coursepass.core.exceptions import CoursePassError

from .dependencies import IdentityServiceDep, handle_identity_error
from .schemas import ConnectWalletRequest, RegisterUserRequest, UserResponse
from .service import UserNotFoundError


router = APIRouter(prefix="/v1/users", tags=["users"])


@router.post(
    "",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a user",
)
async def register_user(
    request: RegisterUserRequest,
    service: IdentityServiceDep,
) -> UserResponse:
    try:
        user = await service.register(
            username=request.username,
            wallet_address=request.wallet_address,
            is_creator=request.is_creator,
        )
    except CoursePassError as e:
        raise handle_identity_error(e) from e
    return UserResponse.from_user(user)


@router.post(
    "/connect-wallet",
    response_model=UserResponse,
    summary="Connect a wallet",
)
async def connect_wallet(
    request: ConnectWalletRequest,
    service: IdentityServiceDep,
) -> UserResponse:
    """Return the user for a wallet, creating one on first connection."""
    try:
        user = await service.resolve_or_create(request.wallet_address)
    except CoursePassError as e:
        raise handle_identity_error(e) from e
    set_wallet(user.wallet_address)
    return UserResponse.from_user(user)


@router.get("/{user_id}", response_model=UserResponse, summary="Get a user")
async def get_user(user_id: int, service: IdentityServiceDep) -> UserResponse:
    user = service.get_user(user_id)
    if user is None:
        raise handle_identity_error(UserNotFoundError(user_id))
    return UserResponse.from_user(user)
