"""
Core data models for the appointment ETL pipeline.

All models use Pydantic for runtime validation and type safety.
"""

from .appointment_record import (
    CANONICAL_HEADERS,
    HEADER_FIELD_MAP,
    AppointmentRecord,
    normalize_header,
)
from .client_profile import (
    BlobSourceConfig,
    ClientProfile,
    ClientSettings,
    LocalSourceConfig,
    SftpSourceConfig,
)
from .file_outcome import FileOutcome, PollCycleSummary
from .job_record import (
    JobRecord,
    JobStatus,
    JobType,
    LanguageCounts,
    ReminderPatient,
    count_languages,
)
from .source_file import ArchiveResult, SourceFileHandle, split_file_name
from .stored_file import StoredFile
from .validation_report import ValidationReport

__all__ = [
    "AppointmentRecord",
    "CANONICAL_HEADERS",
    "HEADER_FIELD_MAP",
    "normalize_header",
    "ClientProfile",
    "ClientSettings",
    "SftpSourceConfig",
    "BlobSourceConfig",
    "LocalSourceConfig",
    "SourceFileHandle",
    "ArchiveResult",
    "split_file_name",
    "StoredFile",
    "ValidationReport",
    "JobRecord",
    "JobStatus",
    "JobType",
    "LanguageCounts",
    "ReminderPatient",
    "count_languages",
    "FileOutcome",
    "PollCycleSummary",
]
