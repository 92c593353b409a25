"""Course ownership models and Cassandra schema.

An ownership is the permanent record created when a course NFT is minted
for a user. There is at most one per (course, owner) and it is never
updated or deleted.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from coursepass.core.clock import ensure_utc_aware


if TYPE_CHECKING:
    from cassandra.cluster import Row


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

OWNERSHIPS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.ownerships (
    id BIGINT PRIMARY KEY,
    course_id BIGINT,
    owner_id BIGINT,
    token_id TEXT,
    tx_hash TEXT,
    minted_at TIMESTAMP
)
"""

# Unique index on (course_id, owner_id), claimed with IF NOT EXISTS
OWNERSHIPS_BY_COURSE_OWNER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.ownerships_by_course_owner (
    course_id BIGINT,
    owner_id BIGINT,
    ownership_id BIGINT,
    PRIMARY KEY ((course_id, owner_id))
)
"""

# Ownerships are immutable, so the lookup tables carry full rows
OWNERSHIPS_BY_OWNER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.ownerships_by_owner (
    owner_id BIGINT,
    id BIGINT,
    course_id BIGINT,
    token_id TEXT,
    tx_hash TEXT,
    minted_at TIMESTAMP,
    PRIMARY KEY ((owner_id), id)
)
"""

OWNERSHIPS_BY_COURSE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.ownerships_by_course (
    course_id BIGINT,
    id BIGINT,
    owner_id BIGINT,
    token_id TEXT,
    tx_hash TEXT,
    minted_at TIMESTAMP,
    PRIMARY KEY ((course_id), id)
)
"""

OWNERSHIPS_TABLES_CQL = [
    OWNERSHIPS_TABLE_CQL,
    OWNERSHIPS_BY_COURSE_OWNER_TABLE_CQL,
    OWNERSHIPS_BY_OWNER_TABLE_CQL,
    OWNERSHIPS_BY_COURSE_TABLE_CQL,
]


# ==============================================================================
# Entities
# ==============================================================================


@dataclass(frozen=True)
class Attestation:
    """Proof of mint supplied by the wallet layer.

    Kept for audit only; nothing in this service verifies it on chain.
    """

    token_id: str
    tx_hash: str | None = None


@dataclass(frozen=True)
class Ownership:
    """Permanent access to a course held by one user."""

    course_id: int
    owner_id: int
    token_id: str
    tx_hash: str | None = None
    minted_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    id: int | None = None

    @classmethod
    def from_row(cls, row: "Row") -> "Ownership":
        """Create instance from Cassandra row."""
        return cls(
            id=row.id,
            course_id=row.course_id,
            owner_id=row.owner_id,
            token_id=row.token_id,
            tx_hash=row.tx_hash,
            minted_at=ensure_utc_aware(row.minted_at) or datetime.now(UTC),
        )

    @property
    def attestation(self) -> Attestation:
        return Attestation(token_id=self.token_id, tx_hash=self.tx_hash)
