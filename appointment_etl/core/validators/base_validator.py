"""
Base validator interface for appointment field rules.

All validators inherit from BaseValidator and implement validate(). A validator
checks one field of one AppointmentRecord and raises ValidationError on failure;
counting and removal across a batch belong to the rule engine.
"""

from abc import ABC, abstractmethod
from typing import Any

from appointment_etl.core.models import AppointmentRecord


class ValidationError(Exception):
    """Raised when a validation rule fails for one record."""

    def __init__(self, rule_name: str, field_name: str, message: str):
        self.rule_name = rule_name
        self.field_name = field_name
        self.message = message
        super().__init__(f"[{rule_name}] {field_name}: {message}")


class BaseValidator(ABC):
    """
    Abstract base class for all field validators.
    """

    def __init__(self, field_name: str, parameters: dict[str, Any] | None = None):
        """
        Initialize validator.

        Args:
            field_name: AppointmentRecord attribute to validate
            parameters: Rule-specific parameters (e.g., pattern for regex)
        """
        if field_name not in AppointmentRecord.model_fields:
            raise ValueError(f"Unknown appointment field: {field_name}")
        self.field_name = field_name
        self.parameters = parameters or {}

    def value_of(self, record: AppointmentRecord) -> str:
        return getattr(record, self.field_name)

    def is_valid(self, record: AppointmentRecord) -> bool:
        """Return False instead of raising, for filtering."""
        try:
            self.validate(self.value_of(record), record)
        except ValidationError:
            return False
        return True

    @abstractmethod
    def validate(self, value: str, record: AppointmentRecord) -> None:
        """
        Validate a value against this rule.

        Args:
            value: The field value to validate
            record: The entire record (for context-dependent validation)

        Raises:
            ValidationError: If validation fails
        """
        pass

    @property
    @abstractmethod
    def rule_type(self) -> str:
        """Return the rule type identifier."""
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(field={self.field_name}, params={self.parameters})"
