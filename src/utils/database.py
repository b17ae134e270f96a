"""PostgreSQL connection helper."""

import logging

import psycopg2
import psycopg2.extensions
from opentelemetry import trace

from .retry import retry_database_operation
from .tracing import trace_operation

logger = logging.getLogger(__name__)

CONNECT_TIMEOUT_SECONDS = 10


@retry_database_operation(max_retries=3, base_delay=1.0)
def connect_postgres(
    dsn: str,
    statement_timeout_ms: int = 60000,
    application_name: str = "sheet-sync",
) -> psycopg2.extensions.connection:
    """
    Open a transactional (non-autocommit) PostgreSQL connection.

    Args:
        dsn: libpq connection string or ``postgresql://`` URL
        statement_timeout_ms: Server-side statement timeout for the session
        application_name: Reported in ``pg_stat_activity``

    Returns:
        An open psycopg2 connection
    """
    with trace_operation("postgres_connect", kind=trace.SpanKind.CLIENT):
        conn = psycopg2.connect(
            dsn,
            connect_timeout=CONNECT_TIMEOUT_SECONDS,
            application_name=application_name,
            options=f"-c statement_timeout={int(statement_timeout_ms)}",
        )
    conn.set_session(autocommit=False)
    logger.debug(f"Connected to PostgreSQL (statement_timeout={statement_timeout_ms}ms)")
    return conn

