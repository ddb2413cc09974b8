"""
Job store, file metadata, language whitelist and appointment status repositories.
"""

import psycopg
from psycopg import OperationalError
from tenacity.wait import wait_base

from appointment_etl.core.errors import PersistenceError
from appointment_etl.core.models import JobRecord, StoredFile
from appointment_etl.observability.logger import get_logger
from appointment_etl.utils.retry import build_retrying

from .connection import DatabaseConnectionPool

logger = get_logger(__name__)


class _RetryingRepository:
    """Shared write path: bounded retry, then PersistenceError."""

    operation = "db_write"

    def __init__(self, pool: DatabaseConnectionPool, retry_wait: wait_base | None = None):
        self.pool = pool
        self._retrying = build_retrying(self.operation, (OperationalError,), wait=retry_wait)

    def _execute(self, command: str, params: tuple, failure: str) -> int:
        try:
            return self._retrying(self.pool.execute_command, command, params)
        except psycopg.Error as e:
            raise PersistenceError(f"{failure}: {e}") from e


class JobRepository(_RetryingRepository):
    """
    Job store keyed by job id, holding the serialized job document.
    """

    operation = "job_save"

    def save(self, job: JobRecord) -> None:
        """
        Raises:
            PersistenceError: If the job cannot be stored
        """
        self._execute(
            """
            INSERT INTO job (job_id, client_key, status, document)
            VALUES (%s, %s, %s, %s::jsonb)
            """,
            (job.id, job.client_key, job.status.value, job.to_document()),
            f"Saving job {job.id} failed",
        )
        logger.info("Job saved", extra={"job_id": str(job.id), "status": job.status.value})

    def get_document(self, job_id) -> dict | None:
        rows = self.pool.execute_query("SELECT document FROM job WHERE job_id = %s", (job_id,))
        return rows[0]["document"] if rows else None


class FileMetadataRepository(_RetryingRepository):
    """
    Metadata rows for raw files written to the archive store.
    """

    operation = "file_metadata_save"
    NOTE_SUFFIX = " - reading"

    def save(self, client_key: int, file_name: str, stored: StoredFile) -> None:
        self._execute(
            """
            INSERT INTO file_metadata (client_key, file_name, file_size, url, blob_name, notes, mime_type)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            """,
            (
                client_key,
                file_name,
                stored.size,
                stored.url,
                stored.blob_name,
                f"{stored.notes}{self.NOTE_SUFFIX}",
                stored.mime_type,
            ),
            f"Saving file metadata for {file_name} failed",
        )


class LanguageRepository:
    """Reference language codes used as the validation whitelist."""

    def __init__(self, pool: DatabaseConnectionPool):
        self.pool = pool

    def fetch_whitelist(self) -> frozenset[str]:
        """
        Raises:
            PersistenceError: If the reference table cannot be read
        """
        try:
            rows = self.pool.execute_query("SELECT language_code FROM language")
        except psycopg.Error as e:
            raise PersistenceError(f"Loading the language whitelist failed: {e}") from e
        return frozenset(row["language_code"].strip().upper() for row in rows if row["language_code"])


class AppointmentStatusRepository(_RetryingRepository):
    """
    Marks previously loaded appointments as Scheduled.
    """

    operation = "status_sync"
    SCHEDULED = "Scheduled"

    def sync_scheduled(self, client_key: int, appointment_ids: list[str]) -> int:
        """
        One UPDATE for every appointment id of a file.

        Returns:
            Number of appointment rows updated
        """
        if not appointment_ids:
            return 0
        updated = self._execute(
            """
            UPDATE appointment
            SET status = %s, updated_at = NOW()
            WHERE client_key = %s AND app_id = ANY(%s)
            """,
            (self.SCHEDULED, client_key, list(appointment_ids)),
            f"Status sync for client {client_key} failed",
        )
        logger.info(
            "Appointment statuses synced",
            extra={"client_key": client_key, "requested": len(appointment_ids), "updated": updated}
        )
        return updated
