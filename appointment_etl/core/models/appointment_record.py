"""
AppointmentRecord model representing one appointment in the canonical schema.
"""

import re

from pydantic import BaseModel, Field


class AppointmentRecord(BaseModel):
    """
    One appointment row normalized into the canonical schema.

    Every client layout maps into these fields. Field aliases are the canonical
    file headers; incoming headers are matched against them case-insensitively
    with whitespace removed (see `normalize_header`). Optional fields default to
    an empty string so transforms never deal with None.

    Attributes:
        app_id: Appointment identifier
        first_name / last_name: Patient name
        date_of_birth: Patient birth date (MMDDYYYY after transform)
        app_date / app_time: Appointment date (MMDDYYYY) and time (h:mmAM/PM)
        app_type / app_type_desc: Appointment type code and description
        app_status: Appointment status
        app_notes: Free-text notes
        language: Patient language code (at most 3 characters after transform)
        provider_*: Practitioner id, display name and split first/last name
        patient_primary_phone / patient_secondary_phone: Phone numbers
        patient_identifier: Patient identifier within the client system
        location_id / location_name: Appointment location
        custom1 / custom2: Client-specific extension fields
    """

    app_id: str = Field("", alias="AppId")
    first_name: str = Field("", alias="FirstName")
    last_name: str = Field("", alias="LastName")
    date_of_birth: str = Field("", alias="DateofBirth")
    app_date: str = Field("", alias="AppDate")
    app_time: str = Field("", alias="AppTime")
    app_type: str = Field("", alias="AppType")
    app_type_desc: str = Field("", alias="AppTypeDesc")
    app_status: str = Field("", alias="AppStatus")
    app_notes: str = Field("", alias="AppNotes")
    language: str = Field("", alias="Language")
    provider_id: str = Field("", alias="ProviderId")
    provider_name: str = Field("", alias="ProviderName")
    provider_first_name: str = Field("", alias="ProviderFirstName")
    provider_last_name: str = Field("", alias="ProviderLastName")
    patient_primary_phone: str = Field("", alias="PatientPrimaryPhone")
    patient_secondary_phone: str = Field("", alias="PatientSecondaryPhone")
    patient_identifier: str = Field("", alias="PatientIdentifier")
    location_id: str = Field("", alias="LocationId")
    location_name: str = Field("", alias="LocationName")
    custom1: str = Field("", alias="Custom1")
    custom2: str = Field("", alias="Custom2")

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "AppId": "A-10023",
                "FirstName": "John",
                "LastName": "Doe",
                "DateofBirth": "04151980",
                "AppDate": "06012024",
                "AppTime": "9:30AM",
                "AppType": "NP",
                "AppTypeDesc": "New Patient",
                "AppStatus": "Scheduled",
                "Language": "ENG",
                "ProviderId": "123",
                "ProviderName": "Jane Smith",
                "PatientPrimaryPhone": "5551234567",
                "PatientIdentifier": "MRN0042",
                "LocationId": "L1",
                "LocationName": "Main Clinic"
            }
        }

    def to_row(self) -> dict[str, str]:
        """Return the record keyed by canonical header, in schema order."""
        return self.model_dump(by_alias=True)


def normalize_header(header: str) -> str:
    """Lower-case a header and drop all whitespace, for tolerant matching."""
    return re.sub(r"\s", "", header.lower())


CANONICAL_HEADERS: list[str] = [field.alias for field in AppointmentRecord.model_fields.values()]

# normalized header -> model field name
HEADER_FIELD_MAP: dict[str, str] = {
    normalize_header(field.alias): name
    for name, field in AppointmentRecord.model_fields.items()
}
