"""
JobRecord model representing the persisted outcome of one import or scheduling request.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Iterable
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class JobStatus(str, Enum):
    """Job lifecycle states as read by the downstream scheduler."""

    SCHEDULED = "Scheduled"
    FAILED = "Failed"
    IMPORTING = "Importing"


class JobType(str, Enum):
    APPOINTMENT_IMPORT = "AppointmentImport"
    AUTO_SEARCH = "AutoSearchJob"


class LanguageCounts(BaseModel):
    english: int = 0
    spanish: int = 0
    other: int = 0


def count_languages(languages: Iterable[str]) -> LanguageCounts:
    """
    Bucket language codes into English / Spanish / Other.

    Empty codes count as English; matching is case-insensitive.
    """
    counts = LanguageCounts()
    for language in languages:
        code = (language or "").strip().lower()
        if not code or code == "eng":
            counts.english += 1
        elif code == "spa":
            counts.spanish += 1
        else:
            counts.other += 1
    return counts


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobRecord(BaseModel):
    """
    Outcome record of one extract-transform pass or one scheduling request.

    Serialized with PascalCase keys, the document shape the downstream
    scheduler reads. Frozen: a job is never mutated after creation.

    Attributes:
        id: Generated job identifier, also the job store key
        client_key: Client database key
        job_type: AppointmentImport or AutoSearchJob
        status: Scheduled, Failed or Importing
        description: Free text; failed jobs carry the error summary here
        date_time_created / date_time_scheduled: UTC timestamps
        protocol_id / protocol_rule_id: Reminder protocol references
        file_path / file_id: Staging bucket and object name of the canonical batch
        total_count / english_count / spanish_count / other_lang_count: Record counts
        patient_ids: Patients targeted by a reminder job
    """

    id: UUID = Field(default_factory=uuid4, alias="Id")
    client_key: int | None = Field(None, alias="ClientId")
    job_type: JobType = Field(JobType.APPOINTMENT_IMPORT, alias="JobType")
    status: JobStatus = Field(..., alias="Status")
    description: str = Field("", alias="Description")
    date_time_created: datetime = Field(default_factory=_utcnow, alias="DateTimeCreated")
    date_time_scheduled: datetime | None = Field(None, alias="DateTimeScheduled")
    protocol_id: int | None = Field(None, alias="ProtocolId")
    protocol_rule_id: int | None = Field(None, alias="ProtocolRuleId")
    file_path: str | None = Field(None, alias="FilePath")
    file_id: str | None = Field(None, alias="FileId")
    total_count: int = Field(0, ge=0, alias="TotalCount")
    english_count: int = Field(0, ge=0, alias="EnglishCount")
    spanish_count: int = Field(0, ge=0, alias="SpanishCount")
    other_lang_count: int = Field(0, ge=0, alias="OtherLangCount")
    patient_ids: list[str] = Field(default_factory=list, alias="PatientIds")

    class Config:
        frozen = True
        populate_by_name = True
        use_enum_values = False

    def to_document(self) -> str:
        """Serialize to the JSON document stored in the job store."""
        return self.model_dump_json(by_alias=True)


class ReminderPatient(BaseModel):
    """Patient targeted by a reminder scheduling request."""

    patient_id: str = Field(..., min_length=1, alias="PatientId")
    language: str = Field("", alias="Language")

    class Config:
        populate_by_name = True
