"""
Rule engine applying the appointment validation battery to a batch.

The battery is fixed and ordered. Each rule is either a counting rule (the
offending records stay in the batch) or a filtering rule (the offending records
are removed from the working set). Shape rules count on the batch as it stood
before any filtering; the language rule runs on what the phone rule left.
Every rule that matches at least one record contributes one message to the
report; an empty report accepts the batch.
"""

from dataclasses import dataclass
from typing import Iterable, Literal

from appointment_etl.core.models import AppointmentRecord, ValidationReport
from appointment_etl.core.normalizers import language_normalize
from appointment_etl.core.validators import (
    BaseValidator,
    LanguageWhitelistValidator,
    RegexValidator,
    RequiredFieldValidator,
)
from appointment_etl.observability.logger import get_logger

logger = get_logger(__name__)

BIRTHDATE_PATTERN = r"(0[1-9]|1[0-2])(0[1-9]|1\d|2\d|3[0-1])(19|20)\d{2}"
PHONE_PATTERN = r"\d{10}"


@dataclass(frozen=True)
class BatchRule:
    """
    One entry of the validation battery.

    Attributes:
        rule_name: Stable identifier used for metrics and report counts
        validator: Field validator deciding per record
        action: "count" keeps offending records, "remove" filters them out
        message: Report template; receives {count} and {details}
    """

    rule_name: str
    validator: BaseValidator
    action: Literal["count", "remove"]
    message: str

    def offenders(self, records: Iterable[AppointmentRecord]) -> list[AppointmentRecord]:
        return [record for record in records if not self.validator.is_valid(record)]


class AppointmentValidator:
    """
    Runs the fixed validation battery over an appointment batch.

    The language whitelist is given at construction and never changes
    afterwards, so one instance can be shared read-only by every file of a
    poll cycle.

    Order:
        1. birth date shape (count; empty birth dates are not checked)
        2. primary phone is exactly 10 digits (remove)
        3. patient identifier present (count)
        4. location identifier present (count)
        5. language re-truncated to three characters
        6. language in whitelist (remove)
    """

    def __init__(self, language_whitelist: Iterable[str]):
        self.language_whitelist = frozenset(code.strip().lower() for code in language_whitelist)

        self.shape_rules: list[BatchRule] = [
            BatchRule(
                rule_name="birthdate_format",
                validator=RegexValidator("date_of_birth", {"pattern": BIRTHDATE_PATTERN, "skip_empty": True}),
                action="count",
                message="There are records with incorrect birthdate (Count: {count}). "
                        "Make sure Birthdate is with mmddyyyy",
            ),
            BatchRule(
                rule_name="phone_format",
                validator=RegexValidator("patient_primary_phone", {"pattern": PHONE_PATTERN}),
                action="remove",
                message="There are records with incorrect phone no (Count: {count}). "
                        "Make sure phone no is with 10 digits without +1",
            ),
            BatchRule(
                rule_name="patient_identifier_required",
                validator=RequiredFieldValidator("patient_identifier"),
                action="count",
                message="There are records without Patient Identifier (Count: {count}), "
                        "Please make sure all patients have Identifier",
            ),
            BatchRule(
                rule_name="location_required",
                validator=RequiredFieldValidator("location_id"),
                action="count",
                message="There are records without Location Information (Count: {count}), "
                        "Please make sure all patients have Location",
            ),
        ]
        self.language_rule = BatchRule(
            rule_name="language_whitelist",
            validator=LanguageWhitelistValidator("language", {"whitelist": self.language_whitelist}),
            action="remove",
            message="There are records with unknown language codes (Count: {count}): {details}. "
                    "Make sure language is one of the supported codes",
        )

    @property
    def rule_names(self) -> list[str]:
        return [rule.rule_name for rule in self.shape_rules] + [self.language_rule.rule_name]

    def validate(self, records: list[AppointmentRecord]) -> ValidationReport:
        """
        Validate and filter a batch in place.

        Args:
            records: Working set; offending records of filtering rules are removed from it

        Returns:
            ValidationReport with one message per triggered rule
        """
        starting_count = len(records)
        errors: list[str] = []
        rule_counts: dict[str, int] = {}

        # Counts are measured on the pre-filter set
        snapshot = list(records)
        offenders_by_rule = {rule.rule_name: rule.offenders(snapshot) for rule in self.shape_rules}

        for rule in self.shape_rules:
            offenders = offenders_by_rule[rule.rule_name]
            rule_counts[rule.rule_name] = len(offenders)
            if offenders:
                errors.append(rule.message.format(count=len(offenders), details=""))
            if rule.action == "remove" and offenders:
                self._remove(records, offenders)

        for record in records:
            record.language = language_normalize(record.language)

        language_offenders = self.language_rule.offenders(records)
        rule_counts[self.language_rule.rule_name] = len(language_offenders)
        if language_offenders:
            unknown = sorted({record.language.upper() for record in language_offenders})
            errors.append(
                self.language_rule.message.format(count=len(language_offenders), details=", ".join(unknown))
            )
            # Re-evaluate membership on the whole working set
            records[:] = [record for record in records if self.language_rule.validator.is_valid(record)]

        removed = starting_count - len(records)
        if errors:
            logger.info(
                "Validation rejected batch",
                extra={"rule_counts": rule_counts, "removed_count": removed}
            )

        return ValidationReport(errors=errors, rule_counts=rule_counts, removed_count=removed)

    @staticmethod
    def _remove(records: list[AppointmentRecord], offenders: list[AppointmentRecord]) -> None:
        offending_ids = {id(record) for record in offenders}
        records[:] = [record for record in records if id(record) not in offending_ids]

    def get_rule_summary(self) -> dict[str, str]:
        """Rule name -> action, in battery order."""
        summary = {rule.rule_name: rule.action for rule in self.shape_rules}
        summary[self.language_rule.rule_name] = self.language_rule.action
        return summary
