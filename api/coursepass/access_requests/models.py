"""Access request models and Cassandra schema.

Tracks requests from a wallet to a course owner for temporary access:
- PENDING: waiting for the owner's decision
- APPROVED: accepted; a delegated access grant is issued
- REJECTED: declined

APPROVED and REJECTED are terminal.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING

from coursepass.core.clock import ensure_utc_aware


if TYPE_CHECKING:
    from cassandra.cluster import Row


MIN_DURATION_DAYS = 1
MAX_DURATION_DAYS = 90


class AccessRequestStatus(str, Enum):
    """Lifecycle state of an access request."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self is not AccessRequestStatus.PENDING


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

ACCESS_REQUESTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.access_requests (
    id BIGINT PRIMARY KEY,
    course_id BIGINT,
    requester_address TEXT,
    owner_address TEXT,
    requested_duration_days INT,
    message TEXT,
    status TEXT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

ACCESS_REQUESTS_BY_COURSE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.access_requests_by_course (
    course_id BIGINT,
    request_id BIGINT,
    PRIMARY KEY ((course_id), request_id)
) WITH CLUSTERING ORDER BY (request_id DESC)
"""

ACCESS_REQUESTS_BY_REQUESTER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.access_requests_by_requester (
    requester_address TEXT,
    request_id BIGINT,
    PRIMARY KEY ((requester_address), request_id)
) WITH CLUSTERING ORDER BY (request_id DESC)
"""

ACCESS_REQUESTS_BY_OWNER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.access_requests_by_owner (
    owner_address TEXT,
    request_id BIGINT,
    PRIMARY KEY ((owner_address), request_id)
) WITH CLUSTERING ORDER BY (request_id DESC)
"""

ACCESS_REQUESTS_TABLES_CQL = [
    ACCESS_REQUESTS_TABLE_CQL,
    ACCESS_REQUESTS_BY_COURSE_TABLE_CQL,
    ACCESS_REQUESTS_BY_REQUESTER_TABLE_CQL,
    ACCESS_REQUESTS_BY_OWNER_TABLE_CQL,
]


# ==============================================================================
# Entity
# ==============================================================================


@dataclass(frozen=True)
class AccessRequest:
    """A wallet's request for temporary access to someone else's course."""

    course_id: int
    requester_address: str
    owner_address: str
    requested_duration_days: int
    message: str | None = None
    status: AccessRequestStatus = AccessRequestStatus.PENDING
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    id: int | None = None

    @classmethod
    def from_row(cls, row: "Row") -> "AccessRequest":
        """Create instance from Cassandra row."""
        return cls(
            id=row.id,
            course_id=row.course_id,
            requester_address=row.requester_address,
            owner_address=row.owner_address,
            requested_duration_days=row.requested_duration_days,
            message=row.message,
            status=AccessRequestStatus(row.status),
            created_at=ensure_utc_aware(row.created_at) or datetime.now(UTC),
            updated_at=ensure_utc_aware(row.updated_at) or datetime.now(UTC),
        )
