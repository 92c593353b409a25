"""User identity models and Cassandra schema.

A user is identified by its integer id; the wallet address is an optional,
unique, case-insensitive alias stored in normalized (lowercase) form.
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

USERS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.users (
    id BIGINT PRIMARY KEY,
    username TEXT,
    wallet_address TEXT,
    is_creator BOOLEAN,
    created_at TIMESTAMP
)
"""

# Unique index: one user per normalized wallet (claimed with IF NOT EXISTS)
USERS_BY_WALLET_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.users_by_wallet (
    wallet_address TEXT PRIMARY KEY,
    user_id BIGINT
)
"""

USERS_BY_USERNAME_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.users_by_username (
    username TEXT PRIMARY KEY,
    user_id BIGINT
)
"""

USERS_TABLES_CQL = [
    USERS_TABLE_CQL,
    USERS_BY_WALLET_TABLE_CQL,
    USERS_BY_USERNAME_TABLE_CQL,
]


# ==============================================================================
# Entity
# ==============================================================================


@dataclass(frozen=True)
class User:
    """Marketplace account, creator or learner."""

    username: str
    wallet_address: str | None = None
    is_creator: bool = False
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    id: int | None = None

    @classmethod
    def from_row(cls, row: "Row") -> "User":
        """Create instance from Cassandra row."""
        return cls(
            id=row.id,
            username=row.username,
            wallet_address=row.wallet_address,
            is_creator=bool(row.is_creator),
            created_at=ensure_utc_aware(row.created_at) or datetime.now(UTC),
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "username": self.username,
            "wallet_address": self.wallet_address,
            "is_creator": self.is_creator,
            "created_at": self.created_at.isoformat(),
        }
