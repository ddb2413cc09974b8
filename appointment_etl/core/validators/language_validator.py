"""
LanguageWhitelistValidator - checks language codes against the reference list.
"""

from typing import Any

from appointment_etl.core.models import AppointmentRecord

from .base_validator import BaseValidator, ValidationError


class LanguageWhitelistValidator(BaseValidator):
    """
    Validates that a non-empty language code is in the whitelist (case-insensitive).

    Parameters:
    - whitelist: Iterable of accepted language codes

    An empty code is always accepted; the job counts it as English.
    """

    def __init__(self, field_name: str, parameters: dict[str, Any] | None = None):
        super().__init__(field_name, parameters)
        whitelist = self.parameters.get("whitelist")
        if whitelist is None:
            raise ValueError("LanguageWhitelistValidator requires 'whitelist' parameter")
        self.whitelist = frozenset(code.strip().lower() for code in whitelist)

    def validate(self, value: str, record: AppointmentRecord) -> None:
        if value == "":
            return
        if value.lower() not in self.whitelist:
            raise ValidationError(
                rule_name="language_whitelist",
                field_name=self.field_name,
                message=f"Language '{value}' is not a known language code"
            )

    @property
    def rule_type(self) -> str:
        return "language_whitelist"
