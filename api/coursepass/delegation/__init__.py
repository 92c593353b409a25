"""Delegated (temporary) course access module."""

from .models import DelegatedAccess, is_effectively_active
from .service import (
    DelegationService,
    DuplicateActiveGrantError,
    GrantNotFoundError,
    InvalidExpiryError,
)


__all__ = [
    "DelegatedAccess",
    "DelegationService",
    "DuplicateActiveGrantError",
    "GrantNotFoundError",
    "InvalidExpiryError",
    "is_effectively_active",
]
