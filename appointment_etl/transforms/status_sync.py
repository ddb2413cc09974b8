"""
Transform strategy for feeds that resend the full schedule on every file.

Every appointment in such a file is live, so the status is forced to
Scheduled and, once per file, appointments already loaded for the client
with the same identifiers are synced back to Scheduled.
"""

from typing import Protocol, Sequence

from appointment_etl.core.models import AppointmentRecord
from appointment_etl.core.normalizers import date_normalize, language_normalize, phone_normalize
from appointment_etl.observability.logger import get_logger

from .base_strategy import TransformStrategy

logger = get_logger(__name__)

SCHEDULED_STATUS = "Scheduled"


class AppointmentStatusSync(Protocol):
    """Downstream call that resets loaded appointments to Scheduled."""

    def sync_scheduled(self, client_key: int, appointment_ids: Sequence[str]) -> int:
        ...


class StatusSyncStrategy(TransformStrategy):
    """
    Client layout that resends its whole schedule.

    - app_notes <- app_type_desc
    - app_status forced to Scheduled
    - app_time kept as exported (trimmed)
    - provider name split into first/last
    - one batched status sync per file, keyed by the distinct appointment ids
    """

    name = "status_sync"

    def __init__(self, status_sync: AppointmentStatusSync, client_key: int):
        self.status_sync = status_sync
        self.client_key = client_key

    def normalize_record(self, record: AppointmentRecord, date_format: str) -> None:
        record.app_notes = record.app_type_desc
        record.app_status = SCHEDULED_STATUS
        record.date_of_birth = date_normalize(record.date_of_birth, date_format)
        record.app_date = date_normalize(record.app_date, date_format)
        record.app_time = record.app_time.strip()
        record.patient_primary_phone = phone_normalize(
            record.patient_primary_phone, record.patient_secondary_phone
        )
        self.split_provider_name(record)
        record.language = language_normalize(record.language)

    def after_normalize(self, records: list[AppointmentRecord]) -> None:
        appointment_ids = list(dict.fromkeys(record.app_id for record in records if record.app_id))
        if not appointment_ids:
            return
        updated = self.status_sync.sync_scheduled(self.client_key, appointment_ids)
        logger.info(
            "Synced appointment statuses",
            extra={"client_key": self.client_key, "appointment_ids": len(appointment_ids), "updated": updated}
        )
