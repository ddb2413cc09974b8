"""
Unit tests for PipelineOrchestrator.

Runs real poll cycles over a temporary local inbox; persistence, object
storage and the scheduler are mocks.
"""

import threading
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from appointment_etl.batch.pipeline import PipelineOrchestrator
from appointment_etl.batch.readers import LocalDirectorySource
from appointment_etl.batch.writers import ArchiveStore
from appointment_etl.core.config import PipelineSettings
from appointment_etl.core.errors import PersistenceError
from appointment_etl.core.models import JobStatus
from appointment_etl.jobs import JobService
from appointment_etl.transforms import StrategyRegistry

HEADER = "AppId,FirstName,LastName,DateofBirth,AppDate,Language,PatientPrimaryPhone,PatientIdentifier,LocationId,LocationName,ProviderName\n"


def appointment_file(*rows: str) -> str:
    return HEADER + "".join(row + "\n" for row in rows)


GOOD_ROW = "A-{n},John,Doe,04/15/1980,06/01/2024,eng,555-123-4567,MRN{n},L1,Main Clinic,Jane Smith"
BAD_PHONE_ROW = "A-9,Ana,Ruiz,04/15/1980,06/01/2024,spa,555-12,MRN9,L1,Main Clinic,Jane Smith"


class StaticLanguages:
    def __init__(self, codes=("ENG", "SPA"), error: Exception | None = None):
        self.codes = codes
        self.error = error
        self.calls = 0

    def fetch_whitelist(self):
        self.calls += 1
        if self.error:
            raise self.error
        return self.codes


class Harness:
    """Orchestrator plus every mocked collaborator."""

    def __init__(self, profile, settings=None, source=None, languages=None):
        self.profile = profile
        self.inbox = profile.source.directory
        self.job_store = MagicMock()
        self.notifier = MagicMock()
        self.staging_s3 = MagicMock()
        self.archive_s3 = MagicMock()
        self.dimension_writer = MagicMock()
        self.file_metadata = MagicMock()
        self.languages = languages or StaticLanguages()
        self.source = source or LocalDirectorySource(profile.source)
        self.orchestrator = PipelineOrchestrator(
            profile=profile,
            source=self.source,
            registry=StrategyRegistry(),
            dimension_writer=self.dimension_writer,
            job_service=JobService(self.job_store, self.notifier, self.staging_s3),
            archive_store=ArchiveStore(self.archive_s3, profile.settings.archive_bucket),
            file_metadata=self.file_metadata,
            languages=self.languages,
            settings=settings or PipelineSettings(),
        )

    def saved_jobs(self):
        return [c.args[0] for c in self.job_store.save.call_args_list]


@pytest.fixture
def inbox(local_profile, tmp_path):
    return tmp_path / "inbox"


@pytest.fixture
def harness(local_profile):
    return Harness(local_profile)


class TestCommittedFile:
    """Tests for a file that passes validation"""

    def test_clean_file_is_committed(self, harness, inbox):
        (inbox / "appts.csv").write_text(appointment_file(GOOD_ROW.format(n=1), GOOD_ROW.format(n=2)))

        summary = harness.orchestrator.run_poll_cycle()

        outcome = summary.outcomes[0]
        assert outcome.state == "committed"
        assert outcome.parsed_count == outcome.loaded_count == 2
        assert outcome.errors == []
        assert outcome.archive.state == "archived"

        client_key, records = harness.dimension_writer.write_dimensions.call_args.args
        assert client_key == 1
        assert [r.app_id for r in records] == ["A-1", "A-2"]
        assert records[0].patient_primary_phone == "5551234567"

        (job,) = harness.saved_jobs()
        assert job.status == JobStatus.SCHEDULED
        assert job.id == outcome.job_id
        harness.notifier.notify.assert_called_once_with(job.id, "local-test")

        harness.staging_s3.put_object.assert_called_once()
        harness.archive_s3.put_object.assert_called_once()
        assert harness.archive_s3.put_object.call_args.kwargs["Bucket"] == "archive"
        harness.file_metadata.save.assert_called_once()
        assert not (inbox / "appts.csv").exists()

    def test_raw_archive_failure_does_not_fail_file(self, harness, inbox):
        harness.archive_s3.put_object.side_effect = ClientError(
            {"Error": {"Code": "500", "Message": "boom"}}, "PutObject"
        )
        (inbox / "appts.csv").write_text(appointment_file(GOOD_ROW.format(n=1)))

        summary = harness.orchestrator.run_poll_cycle()

        assert summary.outcomes[0].state == "committed"
        harness.file_metadata.save.assert_not_called()


class TestRejectedFile:
    """Tests for a file that fails validation"""

    def test_bad_phone_rejects_whole_file(self, harness, inbox):
        (inbox / "appts.csv").write_text(appointment_file(GOOD_ROW.format(n=1), BAD_PHONE_ROW))

        summary = harness.orchestrator.run_poll_cycle()

        outcome = summary.outcomes[0]
        assert outcome.state == "rejected"
        assert outcome.parsed_count == 2
        assert outcome.loaded_count == 1
        assert "incorrect phone no (Count: 1)" in outcome.errors[0]
        assert outcome.archive.state == "archived"

        harness.dimension_writer.write_dimensions.assert_not_called()
        harness.notifier.notify.assert_not_called()
        (job,) = harness.saved_jobs()
        assert job.status == JobStatus.FAILED
        assert job.description.startswith("Error in file: There are records with incorrect phone no")
        assert job.total_count == 1
        harness.file_metadata.save.assert_called_once()


class TestFailedFile:
    """Tests for files that cannot be processed"""

    def test_unparsable_file_failed_and_archived(self, harness, inbox):
        (inbox / "empty.csv").write_text("")

        summary = harness.orchestrator.run_poll_cycle()

        outcome = summary.outcomes[0]
        assert outcome.state == "failed"
        assert outcome.failed_stage == "parse"
        assert outcome.errors == ["Error in reading file: file is empty"]
        assert outcome.archive.state == "archived"
        (job,) = harness.saved_jobs()
        assert job.status == JobStatus.FAILED
        assert job.file_id is None
        harness.staging_s3.put_object.assert_not_called()
        harness.file_metadata.save.assert_not_called()

    def test_unparsable_file_left_in_place_when_configured(self, local_profile, inbox):
        profile = local_profile.model_copy(update={"archive_on_parse_failure": False})
        harness = Harness(profile)
        (inbox / "empty.csv").write_text("")

        summary = harness.orchestrator.run_poll_cycle()

        assert summary.outcomes[0].archive.state == "skipped"
        assert (inbox / "empty.csv").exists()

    def test_process_wide_setting_used_when_profile_silent(self, local_profile):
        harness = Harness(local_profile, settings=PipelineSettings(archive_on_parse_failure=False))

        assert harness.orchestrator.archive_on_parse_failure is False

    def test_read_failure(self, local_profile, inbox):
        class UnreadableSource(LocalDirectorySource):
            def open_read(self, handle):
                raise PermissionError("permission denied")

        harness = Harness(local_profile, source=UnreadableSource(local_profile.source))
        (inbox / "appts.csv").write_text(appointment_file(GOOD_ROW.format(n=1)))

        outcome = harness.orchestrator.run_poll_cycle().outcomes[0]

        assert outcome.state == "failed"
        assert outcome.failed_stage == "read"
        assert outcome.errors == ["Error in reading file: permission denied"]
        assert outcome.archive.state == "archived"

    def test_bad_date_is_processing_failure(self, harness, inbox):
        (inbox / "appts.csv").write_text(appointment_file(GOOD_ROW.format(n=1).replace("06/01/2024", "June 1")))

        outcome = harness.orchestrator.run_poll_cycle().outcomes[0]

        assert outcome.state == "failed"
        assert outcome.failed_stage == "process"
        assert outcome.parsed_count == 1
        assert outcome.errors[0].startswith("Error in processing file:")
        assert outcome.archive.state == "archived"

    def test_dimension_failure_fails_only_that_file(self, harness, inbox):
        harness.dimension_writer.write_dimensions.side_effect = [PersistenceError("db down"), {}]
        (inbox / "a.csv").write_text(appointment_file(GOOD_ROW.format(n=1)))
        (inbox / "b.csv").write_text(appointment_file(GOOD_ROW.format(n=2)))

        summary = harness.orchestrator.run_poll_cycle()

        assert [o.state for o in summary.outcomes] == ["failed", "committed"]
        assert summary.outcomes[0].errors == ["Error in processing file: db down"]
        assert [job.status for job in harness.saved_jobs()] == [JobStatus.FAILED, JobStatus.SCHEDULED]
        assert not summary.aborted

    def test_failed_job_store_still_yields_outcome(self, harness, inbox):
        harness.job_store.save.side_effect = PersistenceError("job store down")
        (inbox / "empty.csv").write_text("")

        outcome = harness.orchestrator.run_poll_cycle().outcomes[0]

        assert outcome.state == "failed"
        assert outcome.job_id is None


class TestSkippedFile:
    """Tests for files without records"""

    def test_header_only_file_skipped_and_archived(self, harness, inbox):
        (inbox / "appts.csv").write_text(HEADER)

        outcome = harness.orchestrator.run_poll_cycle().outcomes[0]

        assert outcome.state == "skipped"
        assert outcome.job_id is None
        assert outcome.archive.state == "archived"
        harness.job_store.save.assert_not_called()


class TestPollCycle:
    """Tests for cycle-level behaviour"""

    def test_files_processed_in_listing_order(self, harness, inbox):
        for name in ("c.csv", "a.csv", "b.csv"):
            (inbox / name).write_text(appointment_file(GOOD_ROW.format(n=1)))

        summary = harness.orchestrator.run_poll_cycle()

        assert [o.file_name for o in summary.outcomes] == ["a.csv", "b.csv", "c.csv"]
        assert summary.count("committed") == 3
        assert harness.languages.calls == 1

    def test_empty_inbox(self, harness):
        summary = harness.orchestrator.run_poll_cycle()

        assert summary.outcomes == []
        assert not summary.aborted

    def test_cancellation_stops_before_next_file(self, harness, inbox):
        (inbox / "a.csv").write_text(appointment_file(GOOD_ROW.format(n=1)))
        cancel = threading.Event()
        cancel.set()

        summary = harness.orchestrator.run_poll_cycle(cancel)

        assert summary.cancelled
        assert summary.outcomes == []
        assert (inbox / "a.csv").exists()

    def test_missing_source_aborts_cycle(self, local_profile, tmp_path):
        source_config = local_profile.source.model_copy(update={"directory": str(tmp_path / "absent")})
        profile = local_profile.model_copy(update={"source": source_config})

        summary = Harness(profile).orchestrator.run_poll_cycle()

        assert summary.aborted
        assert "does not exist" in summary.abort_reason
        assert summary.outcomes == []

    def test_unreachable_reference_data_aborts_cycle(self, local_profile, inbox):
        harness = Harness(local_profile, languages=StaticLanguages(error=PersistenceError("db down")))
        (inbox / "a.csv").write_text(appointment_file(GOOD_ROW.format(n=1)))

        summary = harness.orchestrator.run_poll_cycle()

        assert summary.aborted
        assert summary.outcomes == []
        assert (inbox / "a.csv").exists()


class TestProcessPayload:
    """Tests for processing bytes without a source"""

    def test_payload_processed_without_archiving(self, harness):
        payload = appointment_file(GOOD_ROW.format(n=1)).encode("utf-8")

        outcome = harness.orchestrator.process_payload("adhoc.csv", payload, ["ENG"])

        assert outcome.state == "committed"
        assert outcome.archive is None
