"""
Transform strategy contract and the generic client layout.

A strategy rewrites canonical fields for one client's conventions and then
hands the batch to the validation battery. Strategies hold no per-call state:
the language whitelist is passed into every transform() call, so a fresh
instance per file is enough to process files concurrently.
"""

from abc import ABC, abstractmethod
from typing import Iterable

from appointment_etl.core.models import AppointmentRecord, ValidationReport
from appointment_etl.core.normalizers import (
    date_normalize,
    language_normalize,
    phone_normalize,
    split_full_name,
    time_normalize,
)
from appointment_etl.core.rules import AppointmentValidator


class TransformStrategy(ABC):
    """
    Abstract base class for client transform strategies.

    Subclasses implement normalize_record(); transform() runs it over the batch,
    gives after_normalize() a chance to act on the whole batch, then validates.
    A strategy never drops records itself; only the validator removes records.
    """

    name: str = "base"

    def transform(
        self,
        records: list[AppointmentRecord],
        date_format: str,
        language_whitelist: Iterable[str],
    ) -> ValidationReport:
        """
        Normalize and validate a batch in place.

        Args:
            records: Parsed batch; records may be rewritten and filtered
            date_format: Client date format (strftime or legacy token pattern)
            language_whitelist: Accepted language codes

        Returns:
            ValidationReport from the validation battery

        Raises:
            DateFormatError: If a date or time value does not match date_format
        """
        for record in records:
            self.normalize_record(record, date_format)

        self.after_normalize(records)

        return AppointmentValidator(language_whitelist).validate(records)

    @abstractmethod
    def normalize_record(self, record: AppointmentRecord, date_format: str) -> None:
        """Rewrite one record's fields in place."""
        pass

    def after_normalize(self, records: list[AppointmentRecord]) -> None:
        """Batch-level hook run once after every record is normalized."""
        pass

    @staticmethod
    def split_provider_name(record: AppointmentRecord) -> None:
        record.provider_first_name, record.provider_last_name = split_full_name(record.provider_name)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name})"


class GenericStrategy(TransformStrategy):
    """
    Default layout: dates, appointment time, phone and language only.

    The appointment time is derived from the appointment date column, which
    carries the full date-time stamp in the generic layout.
    """

    name = "generic"

    def normalize_record(self, record: AppointmentRecord, date_format: str) -> None:
        record.date_of_birth = date_normalize(record.date_of_birth, date_format)
        record.app_time = time_normalize(record.app_date, date_format)
        record.app_date = date_normalize(record.app_date, date_format)
        record.patient_primary_phone = phone_normalize(
            record.patient_primary_phone, record.patient_secondary_phone
        )
        record.language = language_normalize(record.language)
