"""
FileOutcome and PollCycleSummary models: explicit results of a poll cycle (ephemeral).
"""

from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

from .source_file import ArchiveResult


class FileOutcome(BaseModel):
    """
    Result of running one file through the pipeline.

    Attributes:
        file_name: Source file name
        state: committed (accepted and loaded), rejected (validation errors),
               failed (parse error or any other failure),
               skipped (no records; archived without a job)
        failed_stage: Where a failed file stopped (read, parse or process)
        job_id: Job created for the file, if job creation succeeded
        archive: Result of archiving the source file
        errors: Validation summaries or the failure message
        parsed_count: Records produced by the parser
        loaded_count: Records left after validation filtering
    """

    file_name: str
    state: Literal["committed", "rejected", "failed", "skipped"]
    failed_stage: Literal["read", "parse", "process"] | None = None
    job_id: UUID | None = None
    archive: ArchiveResult | None = None
    errors: list[str] = Field(default_factory=list)
    parsed_count: int = 0
    loaded_count: int = 0


class PollCycleSummary(BaseModel):
    """
    Result of one poll cycle for one client.

    Attributes:
        client_id: Client polled
        outcomes: One entry per file touched, in listing order
        aborted: True when the source or the reference data could not be reached;
                 no further file was touched
        abort_reason: Connection error text when aborted
        cancelled: True when cancellation stopped the cycle at a file boundary
    """

    client_id: str
    outcomes: list[FileOutcome] = Field(default_factory=list)
    aborted: bool = False
    abort_reason: str | None = None
    cancelled: bool = False

    def count(self, state: str) -> int:
        return sum(1 for outcome in self.outcomes if outcome.state == state)
