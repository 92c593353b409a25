"""Pydantic schemas for user identity."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .models import User


class UserResponse(BaseModel):
    """Response schema for a user."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    wallet_address: str | None = None
    is_creator: bool = False
    created_at: datetime

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls.model_validate(user)


class RegisterUserRequest(BaseModel):
    """Request to register a user."""

    username: str = Field(..., min_length=1, max_length=64)
    wallet_address: str | None = Field(None, description="Optional wallet address")
    is_creator: bool = False


class ConnectWalletRequest(BaseModel):
    """Request to connect a wallet (creates the user on first connection)."""

    wallet_address: str = Field(..., description="Wallet address, any case")
