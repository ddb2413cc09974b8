"""
Job creation for file imports and reminder scheduling requests.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Protocol
from uuid import UUID

from appointment_etl.batch.writers import CanonicalBatchStager
from appointment_etl.core.models import (
    AppointmentRecord,
    ClientProfile,
    JobRecord,
    JobStatus,
    JobType,
    ReminderPatient,
    count_languages,
)
from appointment_etl.observability.logger import get_logger

logger = get_logger(__name__)

IMPORT_DESCRIPTION = "Appointment Import"


class JobStore(Protocol):
    def save(self, job: JobRecord) -> None:
        ...


class JobNotifier(Protocol):
    def notify(self, job_id: UUID, client_id: str) -> bool:
        ...


def rejected_description(errors: list[str]) -> str:
    return f"Error in file: {','.join(errors)}"


def read_failure_description(message: str) -> str:
    return f"Error in reading file: {message}"


def processing_failure_description(message: str) -> str:
    return f"Error in processing file: {message}"


class JobService:
    """
    Creates, stores and (where due) announces jobs.

    Import jobs stage the canonical batch to the client's staging bucket and
    record where it went; Scheduled import jobs and reminder jobs are
    announced to the downstream scheduler.
    """

    def __init__(
        self,
        job_store: JobStore,
        notifier: JobNotifier,
        s3_client: Any,
        schedule_delay_minutes: int = 15,
    ):
        """
        Initialize job service.

        Args:
            job_store: Persists job documents
            notifier: Scheduler webhook
            s3_client: Boto3 S3 client used for batch staging
            schedule_delay_minutes: Offset of DateTimeScheduled on Scheduled import jobs
        """
        self.job_store = job_store
        self.notifier = notifier
        self.s3_client = s3_client
        self.schedule_delay = timedelta(minutes=schedule_delay_minutes)

    def create_import_job(
        self,
        profile: ClientProfile,
        stem: str,
        extension: str,
        records: list[AppointmentRecord] | None,
        status: JobStatus,
        description: str = IMPORT_DESCRIPTION,
    ) -> JobRecord:
        """
        Create an AppointmentImport job for one file.

        Args:
            profile: Client the file belongs to
            stem: Source file name without extension
            extension: Source file extension including the dot
            records: Post-validation records, or None when the file never parsed
            status: Scheduled for committed files, Failed otherwise
            description: Job description

        Returns:
            The stored job

        Raises:
            PersistenceError: If staging or storing the job fails
        """
        file_id = None
        if records is not None:
            stager = CanonicalBatchStager(self.s3_client, profile.settings.staging_bucket)
            file_id = stager.stage(stem, extension, records).blob_name
        records = records or []

        now = datetime.now(timezone.utc)
        counts = count_languages(record.language for record in records)
        job = JobRecord(
            client_key=profile.client_key,
            job_type=JobType.APPOINTMENT_IMPORT,
            status=status,
            description=description,
            date_time_created=now,
            date_time_scheduled=now + self.schedule_delay if status == JobStatus.SCHEDULED else None,
            protocol_id=profile.settings.protocol_id,
            file_path=profile.settings.staging_bucket,
            file_id=file_id,
            total_count=len(records),
            english_count=counts.english,
            spanish_count=counts.spanish,
            other_lang_count=counts.other,
        )
        self.job_store.save(job)
        logger.info(
            "Import job created",
            extra={"client_id": profile.client_id, "job_id": str(job.id), "status": status.value,
                   "total_count": job.total_count}
        )

        if status == JobStatus.SCHEDULED:
            self.notifier.notify(job.id, profile.client_id)
        return job

    def create_failed_job(
        self,
        profile: ClientProfile,
        stem: str,
        extension: str,
        description: str,
        records: list[AppointmentRecord] | None = None,
    ) -> JobRecord:
        return self.create_import_job(profile, stem, extension, records, JobStatus.FAILED, description)

    def create_reminder_job(
        self,
        protocol_rule_id: int,
        protocol_name: str,
        patients: list[ReminderPatient],
        profile: ClientProfile,
    ) -> JobRecord:
        """
        Create an AutoSearchJob scheduling reminders for a set of patients.

        Args:
            protocol_rule_id: Reminder protocol rule
            protocol_name: Protocol name used in the description
            patients: Patients to remind
            profile: Client requesting the reminders

        Returns:
            The stored job
        """
        counts = count_languages(patient.language for patient in patients)
        job = JobRecord(
            client_key=profile.client_key,
            job_type=JobType.AUTO_SEARCH,
            status=JobStatus.IMPORTING,
            description=f"Appointment Reminder for {protocol_name}",
            protocol_rule_id=protocol_rule_id,
            patient_ids=[patient.patient_id for patient in patients],
            total_count=len(patients),
            english_count=counts.english,
            spanish_count=counts.spanish,
            other_lang_count=counts.other,
        )
        self.job_store.save(job)
        logger.info(
            "Reminder job created",
            extra={"client_id": profile.client_id, "job_id": str(job.id), "total_count": job.total_count}
        )
        self.notifier.notify(job.id, profile.client_id)
        return job
