"""
SourceFileHandle and ArchiveResult models for files discovered at a source.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


def split_file_name(name: str) -> tuple[str, str]:
    """Split a file name into stem and final extension (with the dot)."""
    if "." not in name:
        return name, ""
    stem, extension = name.rsplit(".", 1)
    return stem, "." + extension


class SourceFileHandle(BaseModel):
    """
    A pending file discovered by a SourceReader during one poll cycle.

    The handle is consumed exactly once by the pipeline and archived after
    processing whatever the outcome.

    Attributes:
        name: File (or object) name without directory
        full_path: Absolute path on the SFTP server / local disk, or object key
        size: Size in bytes when the listing reports it
        last_modified: Modification time when the listing reports it
        archive_action: "rename" for directory sources, "copy_then_delete" for blob containers
    """

    name: str = Field(..., min_length=1)
    full_path: str = Field(..., min_length=1)
    size: int | None = None
    last_modified: datetime | None = None
    archive_action: Literal["rename", "copy_then_delete"]

    @property
    def stem(self) -> str:
        """File name without its final extension."""
        return split_file_name(self.name)[0]

    @property
    def extension(self) -> str:
        """Final extension including the dot, or an empty string."""
        return split_file_name(self.name)[1]


class ArchiveResult(BaseModel):
    """
    Outcome of archiving one source file.

    "partial" is only reachable for copy_then_delete sources: the copy landed
    in the archive container but the delete from the source failed, so the
    file now exists in both places and will be listed again next cycle.

    Attributes:
        state: archived, partial, failed or skipped
        location: Archive path or key, when a copy/rename succeeded
        error: Error text for partial and failed states
    """

    state: Literal["archived", "partial", "failed", "skipped"]
    location: str | None = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.state == "archived"
