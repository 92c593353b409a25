"""Cassandra database connection and management.

Provides:
- Connection pool management
- Session creation
- Keyspace and table initialization
"""

import structlog
from cassandra.auth import PlainTextAuthProvider
from cassandra.cluster import Cluster, Session
from cassandra.policies import DCAwareRoundRobinPolicy, TokenAwarePolicy

from coursepass.access_requests.models import ACCESS_REQUESTS_TABLES_CQL
from coursepass.config.settings import get_settings
from coursepass.courses.models import COURSES_TABLES_CQL
from coursepass.delegation.models import DELEGATION_TABLES_CQL
from coursepass.identity.models import USERS_TABLES_CQL
from coursepass.ownership.models import OWNERSHIPS_TABLES_CQL

from .cassandra_storage import STORAGE_TABLES_CQL


logger = structlog.get_logger(__name__)


# (log label, CQL templates) in creation order
SCHEMA = [
    ("storage", STORAGE_TABLES_CQL),
    ("users", USERS_TABLES_CQL),
    ("courses", COURSES_TABLES_CQL),
    ("ownerships", OWNERSHIPS_TABLES_CQL),
    ("delegation", DELEGATION_TABLES_CQL),
    ("access_requests", ACCESS_REQUESTS_TABLES_CQL),
]


class CassandraConnection:
    """Cassandra connection manager.

    Manages cluster connection and session lifecycle.
    """

    _cluster: Cluster | None = None
    _session: Session | None = None

    @classmethod
    def connect(cls) -> Session:
        """Establish connection to Cassandra cluster.

        Raises:
            ConnectionError: If connection fails
        """
        if cls._session is not None:
            return cls._session

        settings = get_settings()

        auth_provider = None
        if settings.cassandra_username and settings.cassandra_password:
            auth_provider = PlainTextAuthProvider(
                username=settings.cassandra_username,
                password=settings.cassandra_password,
            )

        cls._cluster = Cluster(
            contact_points=settings.cassandra_hosts,
            port=settings.cassandra_port,
            auth_provider=auth_provider,
            protocol_version=settings.cassandra_protocol_version,
            load_balancing_policy=TokenAwarePolicy(DCAwareRoundRobinPolicy()),
            connect_timeout=settings.cassandra_connect_timeout,
        )

        try:
            cls._session = cls._cluster.connect()
            logger.info(
                "cassandra_connected",
                hosts=settings.cassandra_hosts,
                port=settings.cassandra_port,
            )
        except Exception as e:
            logger.error("cassandra_connection_failed", error=str(e))
            raise ConnectionError(f"Failed to connect to Cassandra: {e}") from e

        return cls._session

    @classmethod
    def disconnect(cls) -> None:
        """Close connection to Cassandra."""
        if cls._session is not None:
            cls._session.shutdown()
            cls._session = None
            logger.info("cassandra_session_closed")

        if cls._cluster is not None:
            cls._cluster.shutdown()
            cls._cluster = None
            logger.info("cassandra_cluster_closed")


def init_keyspace(session: Session, keyspace: str) -> None:
    """Create keyspace if not exists."""
    settings = get_settings()

    if settings.is_production:
        replication = "'class': 'NetworkTopologyStrategy', 'datacenter1': 3"
    else:
        replication = "'class': 'SimpleStrategy', 'replication_factor': 1"

    session.execute(f"""
        CREATE KEYSPACE IF NOT EXISTS {keyspace}
        WITH replication = {{{replication}}}
        AND durable_writes = true
    """)
    logger.info("keyspace_created", keyspace=keyspace)


def init_tables(session: Session, keyspace: str) -> None:
    """Create every table used by the storage backend."""
    for label, statements in SCHEMA:
        for cql_template in statements:
            session.execute(cql_template.format(keyspace=keyspace))
        logger.info("tables_created", group=label, keyspace=keyspace)


def init_cassandra() -> Session:
    """Connect and make sure keyspace and tables exist."""
    settings = get_settings()

    session = CassandraConnection.connect()
    init_keyspace(session, settings.cassandra_keyspace)
    session.set_keyspace(settings.cassandra_keyspace)
    init_tables(session, settings.cassandra_keyspace)

    logger.info("cassandra_initialized", keyspace=settings.cassandra_keyspace)
    return session


def shutdown_cassandra() -> None:
    """Shutdown Cassandra connection."""
    CassandraConnection.disconnect()
