"""User identity module.

Resolves wallet addresses to users, case-insensitively.
"""

from .models import User
from .service import (
    IdentityService,
    UsernameTakenError,
    UserNotFoundError,
    WalletAlreadyRegisteredError,
    normalize_wallet_address,
)


__all__ = [
    "IdentityService",
    "User",
    "UserNotFoundError",
    "UsernameTakenError",
    "WalletAlreadyRegisteredError",
    "normalize_wallet_address",
]
