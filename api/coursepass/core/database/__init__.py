"""Storage backends for CoursePass.

The Cassandra connection helpers live in ``coursepass.core.database.cassandra``
and are imported lazily so the in-memory backend works without a driver
event loop.
"""

from coursepass.core.database.base import GrantConflict, Storage
from coursepass.core.database.cassandra_storage import CassandraStorage
from coursepass.core.database.memory import MemoryStorage


__all__ = [
    "CassandraStorage",
    "GrantConflict",
    "MemoryStorage",
    "Storage",
]
