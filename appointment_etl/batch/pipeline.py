"""
Poll-cycle orchestration for one client feed.

Per file: read -> parse -> transform & validate -> commit or reject -> archive.
Every file ends in exactly one FileOutcome; a failure inside one file never
stops the rest of the listing.
"""

import threading
import time
from typing import Iterable, Protocol

from appointment_etl.batch.readers import RecordParser, SourceReader
from appointment_etl.batch.writers import ArchiveStore
from appointment_etl.core.config import PipelineSettings
from appointment_etl.core.errors import ParseError, PersistenceError, SourceConnectionError, TransientIOError
from appointment_etl.core.models import (
    AppointmentRecord,
    ArchiveResult,
    ClientProfile,
    FileOutcome,
    JobStatus,
    PollCycleSummary,
    SourceFileHandle,
    StoredFile,
    split_file_name,
)
from appointment_etl.jobs import (
    JobService,
    processing_failure_description,
    read_failure_description,
    rejected_description,
)
from appointment_etl.observability.logger import FileContextAdapter, get_logger, log_operation
from appointment_etl.observability.metrics import (
    archive_results_total,
    increment_counter,
    observe_histogram,
    poll_cycle_duration_seconds,
    poll_cycles_aborted_total,
    record_file_outcome,
    record_rule_hits,
    records_processed_total,
)
from appointment_etl.transforms import StrategyRegistry

logger = get_logger(__name__)


class DimensionSink(Protocol):
    def write_dimensions(self, client_key: int, records: list[AppointmentRecord]) -> dict[str, int]:
        ...


class FileMetadataSink(Protocol):
    def save(self, client_key: int, file_name: str, stored: StoredFile) -> None:
        ...


class LanguageSource(Protocol):
    def fetch_whitelist(self) -> Iterable[str]:
        ...


class PipelineOrchestrator:
    """
    Runs poll cycles for one client profile.

    Flow per file:
    1. Read the raw bytes from the source
    2. Parse them into canonical records
    3. Transform with the client's strategy, which validates and filters
    4. Committed: write dimension rows, create a Scheduled job
       Rejected: create a Failed job describing the rule violations
    5. Store the raw bytes in the archive store and record file metadata
    6. Archive the file at the source
    """

    def __init__(
        self,
        profile: ClientProfile,
        source: SourceReader,
        registry: StrategyRegistry,
        dimension_writer: DimensionSink,
        job_service: JobService,
        archive_store: ArchiveStore,
        file_metadata: FileMetadataSink,
        languages: LanguageSource,
        settings: PipelineSettings | None = None,
        parser: RecordParser | None = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            profile: Client feed being processed
            source: Source reader for the profile's source configuration
            registry: Transform strategy registry
            dimension_writer: Dimension persistence for committed batches
            job_service: Job creation and scheduler notification
            archive_store: Raw file archive store
            file_metadata: File metadata repository
            languages: Language whitelist provider, read once per poll cycle
            settings: Process-wide settings
            parser: Record parser (defaults to the canonical field map)
        """
        self.profile = profile
        self.source = source
        self.registry = registry
        self.dimension_writer = dimension_writer
        self.job_service = job_service
        self.archive_store = archive_store
        self.file_metadata = file_metadata
        self.languages = languages
        self.settings = settings or PipelineSettings()
        self.parser = parser or RecordParser()

    @property
    def archive_on_parse_failure(self) -> bool:
        if self.profile.archive_on_parse_failure is not None:
            return self.profile.archive_on_parse_failure
        return self.settings.archive_on_parse_failure

    def run_poll_cycle(self, cancel_event: threading.Event | None = None) -> PollCycleSummary:
        """
        Process every pending file once.

        Cancellation is honoured between files only; a file that has started
        always runs to its outcome.

        Args:
            cancel_event: Set to stop the cycle at the next file boundary

        Returns:
            PollCycleSummary with one outcome per file touched
        """
        client_id = self.profile.client_id
        summary = PollCycleSummary(client_id=client_id)
        started = time.monotonic()

        try:
            with log_operation("Poll cycle", logger=logger, client_id=client_id):
                with self.source.session():
                    whitelist = frozenset(self.languages.fetch_whitelist())
                    for handle in self.source.list_pending():
                        if cancel_event is not None and cancel_event.is_set():
                            summary.cancelled = True
                            logger.info("Poll cycle cancelled", extra={"client_id": client_id})
                            break
                        summary.outcomes.append(self.process_file(handle, whitelist))
        except (SourceConnectionError, PersistenceError) as e:
            summary.aborted = True
            summary.abort_reason = str(e)
            increment_counter(poll_cycles_aborted_total, 1, client_id=client_id)
            logger.error(
                "Poll cycle aborted",
                extra={"client_id": client_id, "error_message": str(e), "files_touched": len(summary.outcomes)}
            )

        observe_histogram(poll_cycle_duration_seconds, time.monotonic() - started, client_id=client_id)
        logger.info(
            "Poll cycle summary",
            extra={
                "client_id": client_id,
                "files": len(summary.outcomes),
                "committed": summary.count("committed"),
                "rejected": summary.count("rejected"),
                "failed": summary.count("failed"),
                "skipped": summary.count("skipped"),
                "aborted": summary.aborted,
                "cancelled": summary.cancelled,
            }
        )
        return summary

    def process_file(self, handle: SourceFileHandle, whitelist: Iterable[str]) -> FileOutcome:
        """
        Run one pending file through the pipeline and archive it at the source.

        Args:
            handle: File discovered in the current listing
            whitelist: Accepted language codes

        Returns:
            FileOutcome including the source archive result
        """
        log = FileContextAdapter(logger, {"client_id": self.profile.client_id, "file_name": handle.name})

        try:
            payload = self.source.read_bytes(handle)
        except Exception as e:
            log.error(f"Error reading file: {e}", exc_info=True)
            outcome = self._fail(handle.name, "read", read_failure_description(str(e)))
        else:
            outcome = self.process_payload(handle.name, payload, whitelist)

        if outcome.failed_stage in ("read", "parse") and not self.archive_on_parse_failure:
            archive = ArchiveResult(state="skipped")
            log.warning("Unreadable file left at the source")
        else:
            archive = self.source.archive(handle)

        increment_counter(archive_results_total, 1, client_id=self.profile.client_id, state=archive.state)
        return outcome.model_copy(update={"archive": archive})

    def process_payload(self, file_name: str, payload: bytes, whitelist: Iterable[str]) -> FileOutcome:
        """
        Run raw file bytes through parse, transform, commit or reject.

        Source archival is left to the caller, so this also serves ad-hoc
        loads of local files.

        Args:
            file_name: Original file name
            payload: Raw file bytes
            whitelist: Accepted language codes

        Returns:
            FileOutcome without an archive result
        """
        log = FileContextAdapter(logger, {"client_id": self.profile.client_id, "file_name": file_name})
        started = time.monotonic()
        outcome = self._run_stages(file_name, payload, frozenset(whitelist), log)
        record_file_outcome(
            self.profile.client_id,
            outcome.state,
            outcome.parsed_count,
            outcome.parsed_count - outcome.loaded_count if outcome.state in ("committed", "rejected") else 0,
            time.monotonic() - started,
        )
        log.info(
            "File processed",
            extra={
                "outcome": outcome.state,
                "job_id": str(outcome.job_id) if outcome.job_id else None,
                "parsed_count": outcome.parsed_count,
                "loaded_count": outcome.loaded_count,
            }
        )
        return outcome

    def _run_stages(
        self,
        file_name: str,
        payload: bytes,
        whitelist: frozenset[str],
        log: FileContextAdapter,
    ) -> FileOutcome:
        stem, extension = split_file_name(file_name)

        try:
            parsed = self.parser.parse(payload, file_name)
        except ParseError as e:
            log.error(f"Error in reading file: {e.message}")
            return self._fail(file_name, "parse", read_failure_description(e.message))

        if parsed.skipped_rows:
            increment_counter(
                records_processed_total, parsed.skipped_rows,
                client_id=self.profile.client_id, status="skipped_row"
            )

        records = parsed.records
        parsed_count = len(records)
        if not records:
            log.info("File holds no records; nothing to import")
            return FileOutcome(file_name=file_name, state="skipped")

        try:
            strategy = self.registry.create(self.profile.client_id, self.profile.client_key)
            report = strategy.transform(records, self.profile.date_format, whitelist)
            record_rule_hits(self.profile.client_id, report.rule_counts)

            if report.accepted:
                self.dimension_writer.write_dimensions(self.profile.client_key, records)
                job = self.job_service.create_import_job(
                    self.profile, stem, extension, records, JobStatus.SCHEDULED
                )
                state = "committed"
            else:
                job = self.job_service.create_failed_job(
                    self.profile, stem, extension, rejected_description(report.errors), records=records
                )
                state = "rejected"
        except Exception as e:
            log.error(f"Error in processing file: {e}", exc_info=True)
            return self._fail(
                file_name, "process", processing_failure_description(str(e)), parsed_count=parsed_count
            )

        self._store_raw_file(file_name, stem, extension, payload, log)
        return FileOutcome(
            file_name=file_name,
            state=state,
            job_id=job.id,
            errors=report.errors,
            parsed_count=parsed_count,
            loaded_count=len(records),
        )

    def _store_raw_file(
        self,
        file_name: str,
        stem: str,
        extension: str,
        payload: bytes,
        log: FileContextAdapter,
    ) -> None:
        try:
            stored = self.archive_store.save(file_name, stem, extension, payload)
            self.file_metadata.save(self.profile.client_key, file_name, stored)
        except (TransientIOError, PersistenceError) as e:
            log.error(f"Error in creating file records: {e}")

    def _fail(self, file_name: str, stage: str, description: str, parsed_count: int = 0) -> FileOutcome:
        """Create the Failed job for a file that could not be processed."""
        stem, extension = split_file_name(file_name)
        job_id = None
        try:
            job_id = self.job_service.create_failed_job(self.profile, stem, extension, description).id
        except Exception as e:
            logger.error(
                f"Could not record failed job: {e}",
                extra={"client_id": self.profile.client_id, "file_name": file_name},
                exc_info=True,
            )
        return FileOutcome(
            file_name=file_name,
            state="failed",
            failed_stage=stage,
            job_id=job_id,
            errors=[description],
            parsed_count=parsed_count,
        )
