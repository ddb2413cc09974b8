"""
ValidationReport model representing the outcome of the validation battery (ephemeral).
"""

from pydantic import BaseModel, Field


class ValidationReport(BaseModel):
    """
    Outcome of running the validation battery over one batch.

    An empty `errors` list means the batch is accepted. Filtering is recorded
    separately in `removed_count`, since records are removed from the working
    set whatever the verdict.

    Attributes:
        errors: Human-readable summaries, one per triggered rule, in rule order
        rule_counts: Affected record count keyed by rule name (zero counts kept)
        removed_count: Records removed from the working set
    """

    errors: list[str] = Field(default_factory=list)
    rule_counts: dict[str, int] = Field(default_factory=dict)
    removed_count: int = Field(0, ge=0)

    @property
    def accepted(self) -> bool:
        return not self.errors

    def description(self) -> str:
        """Errors joined the way failed job descriptions expect them."""
        return ",".join(self.errors)
