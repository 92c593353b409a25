"""Access request workflow module."""

from .models import AccessRequest, AccessRequestStatus
from .service import (
    AccessRequestService,
    InvalidDurationError,
    InvalidTransitionError,
    OwnershipMissingError,
    RequestNotFoundError,
    SelfRequestError,
    StatusUpdateResult,
)


__all__ = [
    "AccessRequest",
    "AccessRequestService",
    "AccessRequestStatus",
    "InvalidDurationError",
    "InvalidTransitionError",
    "OwnershipMissingError",
    "RequestNotFoundError",
    "SelfRequestError",
    "StatusUpdateResult",
]
