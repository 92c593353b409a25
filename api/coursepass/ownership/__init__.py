"""Course ownership ledger module."""

from .models import Attestation, Ownership
from .service import (
    DuplicateOwnershipError,
    OwnerNotFoundError,
    OwnershipNotFoundError,
    OwnershipService,
)


__all__ = [
    "Attestation",
    "DuplicateOwnershipError",
    "OwnerNotFoundError",
    "Ownership",
    "OwnershipNotFoundError",
    "OwnershipService",
]
