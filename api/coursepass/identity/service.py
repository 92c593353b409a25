"""Identity service layer.

Maps wallet addresses to users. Wallet addresses are compared in
normalized form only (see ``normalize_wallet_address``), which is what
makes every downstream address comparison case-insensitive.
"""

import secrets
from typing import TYPE_CHECKING

from coursepass.core.clock import Clock, utc_now
from coursepass.core.exceptions import (
    CoursePassError,
    InvalidWalletAddressError,
    UniqueConstraintError,
)
from coursepass.core.logging import get_logger

from .models import User


if TYPE_CHECKING:
    from coursepass.core.database import Storage


logger = get_logger(__name__)

# Retries when a generated placeholder username is already taken
_PLACEHOLDER_ATTEMPTS = 5


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class UserNotFoundError(CoursePassError):
    """User does not exist."""

    def __init__(self, user_id: int):
        super().__init__(f"User {user_id} not found", "user_not_found")


class UsernameTakenError(CoursePassError):
    """Username already registered."""

    def __init__(self, username: str):
        super().__init__(f"Username '{username}' already exists", "username_taken")


class WalletAlreadyRegisteredError(CoursePassError):
    """Wallet address already linked to another user."""

    def __init__(self, wallet_address: str):
        super().__init__(
            f"Wallet {wallet_address} is already registered", "wallet_taken"
        )


# ==============================================================================
# Helpers
# ==============================================================================


def normalize_wallet_address(wallet_address: str | None) -> str:
    """Canonical form of a wallet address: trimmed and lowercase.

    Raises:
        InvalidWalletAddressError: If the address is missing or blank
    """
    if wallet_address is None or not wallet_address.strip():
        raise InvalidWalletAddressError()
    return wallet_address.strip().lower()


def placeholder_username() -> str:
    """Username for accounts created from a bare wallet connection."""
    return f"user_{secrets.token_hex(6)}"


# ==============================================================================
# Identity Service
# ==============================================================================


class IdentityService:
    """Service for resolving wallets to users."""

    def __init__(self, store: "Storage", clock: Clock = utc_now):
        self.store = store
        self.clock = clock

    def find_by_wallet(self, wallet_address: str) -> User | None:
        """Read-only lookup. Never creates a user."""
        return self.store.get_user_by_wallet(normalize_wallet_address(wallet_address))

    def get_user(self, user_id: int) -> User | None:
        return self.store.get_user(user_id)

    async def resolve_or_create(self, wallet_address: str) -> User:
        """Return the user behind a wallet, creating it on first connection.

        A stored address that differs from the normalized one only in case
        is rewritten to the normalized form.

        Args:
            wallet_address: Wallet address in any case

        Returns:
            The existing or newly created user
        """
        normalized = normalize_wallet_address(wallet_address)

        user = self.store.get_user_by_wallet(normalized)
        if user is None:
            user = self._create_for_wallet(normalized)

        if user.wallet_address != normalized:
            previous = user.wallet_address
            user = self.store.update_user_wallet(user.id, normalized) or user
            logger.info(
                "wallet_address_normalized",
                user_id=user.id,
                previous=previous,
                wallet_address=normalized,
            )

        return user

    def _create_for_wallet(self, normalized: str) -> User:
        for _ in range(_PLACEHOLDER_ATTEMPTS):
            try:
                user = self.store.insert_user(
                    User(
                        username=placeholder_username(),
                        wallet_address=normalized,
                        created_at=self.clock(),
                    )
                )
            except UniqueConstraintError as e:
                if e.index == "users_by_username":
                    continue
                # Another caller created the user for this wallet first
                existing = self.store.get_user_by_wallet(normalized)
                if existing is None:
                    raise
                return existing

            logger.info(
                "user_created_from_wallet", user_id=user.id, wallet_address=normalized
            )
            return user

        raise UsernameTakenError("user_*")

    async def register(
        self,
        username: str,
        wallet_address: str | None = None,
        is_creator: bool = False,
    ) -> User:
        """Register a user explicitly.

        Raises:
            UsernameTakenError: If the username exists
            WalletAlreadyRegisteredError: If the wallet belongs to another user
        """
        normalized = (
            normalize_wallet_address(wallet_address) if wallet_address else None
        )

        try:
            user = self.store.insert_user(
                User(
                    username=username,
                    wallet_address=normalized,
                    is_creator=is_creator,
                    created_at=self.clock(),
                )
            )
        except UniqueConstraintError as e:
            if e.index == "users_by_username":
                raise UsernameTakenError(username) from e
            raise WalletAlreadyRegisteredError(normalized or "") from e

        logger.info(
            "user_registered",
            user_id=user.id,
            username=username,
            is_creator=is_creator,
        )
        return user
