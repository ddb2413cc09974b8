"""
RegexValidator - validates that a field matches a pattern in full.
"""

import re
from re import Pattern
from typing import Any

from appointment_etl.core.models import AppointmentRecord

from .base_validator import BaseValidator, ValidationError


class RegexValidator(BaseValidator):
    """
    Validates that a field value matches a regular expression over its whole length.

    Parameters:
    - pattern: Regular expression (string or compiled Pattern)
    - skip_empty: Treat an empty value as valid (default False)
    """

    def __init__(self, field_name: str, parameters: dict[str, Any] | None = None):
        super().__init__(field_name, parameters)

        pattern = self.parameters.get("pattern")
        if not pattern:
            raise ValueError("RegexValidator requires 'pattern' parameter")

        try:
            if isinstance(pattern, str):
                self.pattern: Pattern = re.compile(pattern)
            elif isinstance(pattern, Pattern):
                self.pattern = pattern
            else:
                raise ValueError(f"Pattern must be string or compiled Pattern, got {type(pattern)}")
        except re.error as e:
            raise ValueError(f"Invalid regex pattern: {e}")

        self.skip_empty = bool(self.parameters.get("skip_empty", False))

    def validate(self, value: str, record: AppointmentRecord) -> None:
        if self.skip_empty and value == "":
            return

        if not self.pattern.fullmatch(value):
            raise ValidationError(
                rule_name="regex",
                field_name=self.field_name,
                message=f"Value '{value}' does not match pattern '{self.pattern.pattern}'"
            )

    @property
    def rule_type(self) -> str:
        return "regex"
