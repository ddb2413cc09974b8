"""
Field validator implementations.

Provides validators for required fields, full-match patterns and the
language whitelist.
"""

from .base_validator import BaseValidator, ValidationError
from .language_validator import LanguageWhitelistValidator
from .regex_validator import RegexValidator
from .required_field_validator import RequiredFieldValidator

__all__ = [
    "BaseValidator",
    "ValidationError",
    "RequiredFieldValidator",
    "RegexValidator",
    "LanguageWhitelistValidator",
]
