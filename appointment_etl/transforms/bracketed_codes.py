"""
Transform strategy for feeds that embed codes in brackets.

These exports put the code inside the description ("Follow Up [FU]",
"Jane Smith [123]"), carry the patient name as "Last, First" in the first-name
column, and flag cancellations and confirmations in two custom columns.
"""

from appointment_etl.core.models import AppointmentRecord
from appointment_etl.core.normalizers import (
    date_normalize,
    language_normalize,
    phone_normalize,
    split_bracketed,
    split_last_first,
)

from .base_strategy import TransformStrategy

CANCELED_STATUS = "Canceled"
CONFIRMED_STATUS = "Confirmed"


class BracketedCodeStrategy(TransformStrategy):
    """
    Client layout with bracketed codes.

    - custom1 set -> status Canceled, else custom2 set -> Confirmed, else unchanged
    - app_type "Description [code]" -> app_type_desc + app_type code
    - provider_name "Name [id]" -> provider_name + provider_id, then first/last split
    - first_name "Last, First" -> last_name + first_name
    - app_time is kept as exported
    """

    name = "bracketed_codes"

    def normalize_record(self, record: AppointmentRecord, date_format: str) -> None:
        record.date_of_birth = date_normalize(record.date_of_birth, date_format)
        record.app_date = date_normalize(record.app_date, date_format)
        record.language = language_normalize(record.language)
        record.app_status = self.derive_status(record)

        description, code = split_bracketed(record.app_type)
        record.app_type_desc = description
        if code is not None:
            record.app_type = code

        provider_name, provider_id = split_bracketed(record.provider_name)
        # Without a bracket the whole name doubles as the id
        record.provider_id = provider_id if provider_id is not None else record.provider_name
        record.provider_name = provider_name
        self.split_provider_name(record)

        names = split_last_first(record.first_name)
        if names is not None:
            record.last_name, record.first_name = names

        record.patient_primary_phone = phone_normalize(
            record.patient_primary_phone, record.patient_secondary_phone
        )

    @staticmethod
    def derive_status(record: AppointmentRecord) -> str:
        if record.custom1:
            return CANCELED_STATUS
        if record.custom2:
            return CONFIRMED_STATUS
        return record.app_status
