"""
Source reader contract and the local directory source.

A source lists the files waiting to be processed, hands out their bytes,
and archives each file once the pipeline is done with it. The connection is
held for one poll cycle through session(), which releases it on every exit path.
"""

import os
from abc import ABC, abstractmethod
from contextlib import closing, contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO, Iterator

from appointment_etl.core.errors import SourceConnectionError, TransientIOError
from appointment_etl.core.models import ArchiveResult, LocalSourceConfig, SourceFileHandle
from appointment_etl.observability.logger import get_logger

logger = get_logger(__name__)

ARCHIVE_TIMESTAMP_FORMAT = "%m-%d-%Y-%H-%M-%S"


def archive_name(file_name: str, now: datetime | None = None) -> str:
    """Archive name for a processed file: <UTC timestamp>_<original name>."""
    stamp = (now or datetime.now(timezone.utc)).strftime(ARCHIVE_TIMESTAMP_FORMAT)
    return f"{stamp}_{file_name}"


class SourceReader(ABC):
    """
    Abstract base class for file sources.
    """

    source_type: str = "base"

    @contextmanager
    def session(self) -> Iterator["SourceReader"]:
        """
        Hold the source connection for one poll cycle.

        Raises:
            SourceConnectionError: If the source cannot be reached
        """
        self.connect()
        try:
            yield self
        finally:
            self.close()

    @abstractmethod
    def connect(self) -> None:
        """Open the connection. Raises SourceConnectionError on failure."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Release the connection; safe to call when not connected."""
        pass

    @abstractmethod
    def list_pending(self) -> Iterator[SourceFileHandle]:
        """
        Lazily list the files waiting at the source.

        Each call starts a fresh listing; nothing is remembered across cycles.

        Raises:
            SourceConnectionError: If the listing itself fails
        """
        pass

    @abstractmethod
    def open_read(self, handle: SourceFileHandle) -> BinaryIO:
        """Open a binary stream over the file contents."""
        pass

    @abstractmethod
    def archive(self, handle: SourceFileHandle) -> ArchiveResult:
        """
        Move a processed file out of the pending location.

        Never raises for I/O failures; they come back as a failed or partial result.
        """
        pass

    def read_bytes(self, handle: SourceFileHandle) -> bytes:
        with closing(self.open_read(handle)) as stream:
            return stream.read()

    def _archive_failed(self, handle: SourceFileHandle, error: Exception, state: str = "failed",
                        location: str | None = None) -> ArchiveResult:
        failure = TransientIOError(f"Archiving {handle.full_path} failed: {error}")
        logger.error(
            str(failure),
            extra={"file_name": handle.name, "archive_state": state, "source_type": self.source_type}
        )
        return ArchiveResult(state=state, location=location, error=str(error))


class LocalDirectorySource(SourceReader):
    """
    Files in a local directory, archived by an atomic rename into the archive directory.
    """

    source_type = "local"

    def __init__(self, config: LocalSourceConfig):
        self.directory = Path(config.directory)
        self.archive_directory = Path(config.archive_directory)
        if not self.archive_directory.is_absolute():
            self.archive_directory = self.directory / self.archive_directory

    def connect(self) -> None:
        if not self.directory.is_dir():
            raise SourceConnectionError(f"Source directory does not exist: {self.directory}")

    def close(self) -> None:
        pass

    def list_pending(self) -> Iterator[SourceFileHandle]:
        try:
            entries = sorted(os.scandir(self.directory), key=lambda entry: entry.name)
        except OSError as e:
            raise SourceConnectionError(f"Cannot list {self.directory}: {e}") from e

        for entry in entries:
            if not entry.is_file():
                continue
            stat = entry.stat()
            yield SourceFileHandle(
                name=entry.name,
                full_path=entry.path,
                size=stat.st_size,
                last_modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
                archive_action="rename",
            )

    def open_read(self, handle: SourceFileHandle) -> BinaryIO:
        return open(handle.full_path, "rb")

    def archive(self, handle: SourceFileHandle) -> ArchiveResult:
        target = self.archive_directory / archive_name(handle.name)
        try:
            self.archive_directory.mkdir(parents=True, exist_ok=True)
            os.replace(handle.full_path, target)
        except OSError as e:
            return self._archive_failed(handle, e)

        logger.info("Archived file", extra={"file_name": handle.name, "archive_location": str(target)})
        return ArchiveResult(state="archived", location=str(target))
