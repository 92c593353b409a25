"""Course access check module."""

from .schemas import AccessType, CheckAccessResponse
from .service import AccessService


__all__ = ["AccessService", "AccessType", "CheckAccessResponse"]
