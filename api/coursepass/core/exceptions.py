"""Base errors shared by every module.

Business-rule violations are raised as ``CoursePassError`` subclasses
defined next to the service that raises them. Each carries a stable
``code`` that routers map to an HTTP status.
"""

from fastapi import HTTPException


class CoursePassError(Exception):
    """Base business error."""

    def __init__(self, message: str, code: str = "coursepass_error"):
        self.message = message
        self.code = code
        super().__init__(message)

    def to_dict(self) -> dict[str, str]:
        """Structured form embedded in API responses."""
        return {"code": self.code, "message": self.message}


class InvalidWalletAddressError(CoursePassError):
    """Wallet address missing or blank."""

    def __init__(self, message: str = "Wallet address is required"):
        super().__init__(message, "invalid_wallet_address")


class CourseNotFoundError(CoursePassError):
    """Course does not exist."""

    def __init__(self, course_id: int):
        super().__init__(f"Course {course_id} not found", "course_not_found")


class StorageContentionError(CoursePassError):
    """A compare-and-set loop in the storage backend lost every attempt."""

    def __init__(self, message: str = "Storage is busy, retry the request"):
        super().__init__(message, "storage_contention")


class UniqueConstraintError(Exception):
    """A storage unique index rejected a write.

    Raised by storage backends only; services translate it into the
    matching business error.
    """

    def __init__(self, index: str, key: object):
        self.index = index
        self.key = key
        super().__init__(f"Unique constraint violated on {index}: {key!r}")


class BusinessHTTPException(HTTPException):
    """HTTP error raised by routers for a business error; keeps its code."""

    def __init__(self, status_code: int, error: CoursePassError):
        super().__init__(status_code=status_code, detail=error.message)
        self.code = error.code
