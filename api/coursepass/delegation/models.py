"""Delegated (temporary) access models and Cassandra schema.

A grant lets a wallet view a course until ``expires_at``, on behalf of one
ownership. Grants are never deleted: revocation flips ``is_active`` to
False, and expiry is never written anywhere, it is evaluated whenever a
grant is read (see ``is_effectively_active``).
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

DELEGATED_ACCESS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.delegated_access (
    id BIGINT PRIMARY KEY,
    ownership_id BIGINT,
    recipient_address TEXT,
    expires_at TIMESTAMP,
    is_active BOOLEAN,
    created_at TIMESTAMP
)
"""

# Current grant per (ownership, recipient); replaced with IF grant_id = ?
GRANT_SLOTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.grant_slots (
    ownership_id BIGINT,
    recipient_address TEXT,
    grant_id BIGINT,
    PRIMARY KEY ((ownership_id, recipient_address))
)
"""

# is_active is mutable, so lookup tables only hold ids
GRANTS_BY_OWNERSHIP_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.grants_by_ownership (
    ownership_id BIGINT,
    grant_id BIGINT,
    PRIMARY KEY ((ownership_id), grant_id)
) WITH CLUSTERING ORDER BY (grant_id DESC)
"""

GRANTS_BY_RECIPIENT_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.grants_by_recipient (
    recipient_address TEXT,
    grant_id BIGINT,
    PRIMARY KEY ((recipient_address), grant_id)
) WITH CLUSTERING ORDER BY (grant_id DESC)
"""

DELEGATION_TABLES_CQL = [
    DELEGATED_ACCESS_TABLE_CQL,
    GRANT_SLOTS_TABLE_CQL,
    GRANTS_BY_OWNERSHIP_TABLE_CQL,
    GRANTS_BY_RECIPIENT_TABLE_CQL,
]


# ==============================================================================
# Entity
# ==============================================================================


@dataclass(frozen=True)
class DelegatedAccess:
    """Time-bounded access to a course derived from an ownership."""

    ownership_id: int
    recipient_address: str
    expires_at: datetime
    is_active: bool = True
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    id: int | None = None

    @classmethod
    def from_row(cls, row: "Row") -> "DelegatedAccess":
        """Create instance from Cassandra row."""
        return cls(
            id=row.id,
            ownership_id=row.ownership_id,
            recipient_address=row.recipient_address,
            expires_at=ensure_utc_aware(row.expires_at),
            is_active=bool(row.is_active),
            created_at=ensure_utc_aware(row.created_at) or datetime.now(UTC),
        )


def is_effectively_active(grant: DelegatedAccess, now: datetime) -> bool:
    """Whether ``grant`` authorizes access at ``now``.

    A grant expiring exactly at ``now`` is already expired.
    """
    return grant.is_active and grant.expires_at > now
