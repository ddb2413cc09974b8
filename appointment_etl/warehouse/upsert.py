"""
Idempotent bulk inserts of the dimension projections of a committed batch.

Each committed file writes the distinct status, type, location and
practitioner tuples for its client, one executemany per dimension, using
INSERT ... ON CONFLICT DO NOTHING so reprocessing a file is harmless.
"""

from typing import Iterable

import psycopg
from psycopg import OperationalError
from tenacity.wait import wait_base

from appointment_etl.core.errors import PersistenceError
from appointment_etl.core.models import AppointmentRecord
from appointment_etl.observability.logger import get_logger
from appointment_etl.utils.retry import build_retrying

from .connection import DatabaseConnectionPool

logger = get_logger(__name__)


def distinct_tuples(records: Iterable[AppointmentRecord], *fields: str) -> list[tuple[str, ...]]:
    """Distinct tuples of the given fields, in first-seen order."""
    seen: dict[tuple[str, ...], None] = {}
    for record in records:
        seen.setdefault(tuple(getattr(record, field) for field in fields), None)
    return list(seen)


class DimensionWriter:
    """
    Writes the four dimension projections for one client batch.
    """

    DIMENSIONS: dict[str, tuple[str, tuple[str, ...]]] = {
        "appointment_status": (
            """
            INSERT INTO appointment_status (client_key, status)
            VALUES (%s, %s)
            ON CONFLICT (client_key, status) DO NOTHING
            """,
            ("app_status",),
        ),
        "appointment_type": (
            """
            INSERT INTO appointment_type (client_key, app_type, app_type_desc)
            VALUES (%s, %s, %s)
            ON CONFLICT (client_key, app_type, app_type_desc) DO NOTHING
            """,
            ("app_type", "app_type_desc"),
        ),
        "practitioner": (
            """
            INSERT INTO practitioner (
                client_key, provider_id, provider_name, provider_first_name, provider_last_name
            )
            VALUES (%s, %s, %s, %s, %s)
            ON CONFLICT (client_key, provider_id, provider_name, provider_first_name, provider_last_name)
            DO NOTHING
            """,
            ("provider_id", "provider_name", "provider_first_name", "provider_last_name"),
        ),
        "location": (
            """
            INSERT INTO location (client_key, location_id, location_name)
            VALUES (%s, %s, %s)
            ON CONFLICT (client_key, location_id, location_name) DO NOTHING
            """,
            ("location_id", "location_name"),
        ),
    }

    def __init__(self, pool: DatabaseConnectionPool, retry_wait: wait_base | None = None):
        """
        Initialize dimension writer.

        Args:
            pool: Database connection pool
            retry_wait: Backoff between attempts on transient errors
        """
        self.pool = pool
        self._retrying = build_retrying("dimension_insert", (OperationalError,), wait=retry_wait)

    def write_dimensions(self, client_key: int, records: list[AppointmentRecord]) -> dict[str, int]:
        """
        Insert every dimension projection of a batch.

        Args:
            client_key: Client database key
            records: Committed records

        Returns:
            Distinct tuples submitted per dimension table

        Raises:
            PersistenceError: If a dimension insert still fails after retries
        """
        submitted: dict[str, int] = {}
        for table, (query, fields) in self.DIMENSIONS.items():
            rows = [(client_key, *values) for values in distinct_tuples(records, *fields)]
            try:
                self._retrying(self._insert_many, query, rows)
            except psycopg.Error as e:
                raise PersistenceError(f"Inserting {table} rows failed: {e}") from e
            submitted[table] = len(rows)

        logger.info("Dimension rows written", extra={"client_key": client_key, **submitted})
        return submitted

    def _insert_many(self, query: str, rows: list[tuple]) -> None:
        if not rows:
            return
        with self.pool.get_connection() as conn:
            with conn.cursor() as cur:
                cur.executemany(query, rows)
            conn.commit()
