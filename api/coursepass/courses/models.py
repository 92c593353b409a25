"""Course models and Cassandra schema.

Only the fields the access engine needs are modelled here: content,
pricing and media belong to the catalogue, not to access control.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from coursepass.core.clock import ensure_utc_aware


if TYPE_CHECKING:
    from cassandra.cluster import Row


COURSES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.courses (
    id BIGINT PRIMARY KEY,
    creator_id BIGINT,
    title TEXT,
    is_published BOOLEAN,
    created_at TIMESTAMP
)
"""

COURSES_TABLES_CQL = [COURSES_TABLE_CQL]


@dataclass(frozen=True)
class Course:
    """A course offered by a creator.

    ``is_published`` only controls listing; it has no effect on who may
    view the content.
    """

    creator_id: int
    title: str
    is_published: bool = False
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    id: int | None = None

    @classmethod
    def from_row(cls, row: "Row") -> "Course":
        """Create instance from Cassandra row."""
        return cls(
            id=row.id,
            creator_id=row.creator_id,
            title=row.title,
            is_published=bool(row.is_published),
            created_at=ensure_utc_aware(row.created_at) or datetime.now(UTC),
        )
