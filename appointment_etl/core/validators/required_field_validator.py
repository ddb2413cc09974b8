"""
RequiredFieldValidator - ensures a field is not blank.
"""

from appointment_etl.core.models import AppointmentRecord

from .base_validator import BaseValidator, ValidationError


class RequiredFieldValidator(BaseValidator):
    """
    Validates that a field holds something other than whitespace.
    """

    def validate(self, value: str, record: AppointmentRecord) -> None:
        if value.strip() == "":
            raise ValidationError(
                rule_name="required_field",
                field_name=self.field_name,
                message="Field value is empty"
            )

    @property
    def rule_type(self) -> str:
        return "required_field"
