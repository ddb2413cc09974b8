"""
Unit tests for core data models.
"""

import json
from uuid import UUID

import pytest
from pydantic import ValidationError

from appointment_etl.core.models import (
    CANONICAL_HEADERS,
    ArchiveResult,
    FileOutcome,
    JobRecord,
    JobStatus,
    JobType,
    PollCycleSummary,
    SourceFileHandle,
    ValidationReport,
    count_languages,
    normalize_header,
    split_file_name,
)


class TestAppointmentRecord:
    """Tests for the canonical record shape"""

    def test_canonical_header_order(self):
        assert CANONICAL_HEADERS[:3] == ["AppId", "FirstName", "LastName"]
        assert CANONICAL_HEADERS[-2:] == ["Custom1", "Custom2"]
        assert len(CANONICAL_HEADERS) == 22

    def test_normalize_header(self):
        assert normalize_header(" Date of Birth ") == "dateofbirth"
        assert normalize_header("PATIENT\tID") == "patientid"


class TestJobRecord:
    """Tests for JobRecord"""

    def test_document_uses_pascal_case(self):
        job = JobRecord(client_key=7, status=JobStatus.SCHEDULED, total_count=4, english_count=4)

        document = json.loads(job.to_document())

        assert document["ClientId"] == 7
        assert document["Status"] == "Scheduled"
        assert document["JobType"] == "AppointmentImport"
        assert document["TotalCount"] == 4
        assert UUID(document["Id"]) == job.id

    def test_job_is_frozen(self):
        job = JobRecord(status=JobStatus.FAILED)

        with pytest.raises(ValidationError):
            job.status = JobStatus.SCHEDULED

    def test_negative_counts_rejected(self):
        with pytest.raises(ValidationError):
            JobRecord(status=JobStatus.FAILED, total_count=-1)

    def test_reminder_job_type(self):
        job = JobRecord(status=JobStatus.IMPORTING, job_type=JobType.AUTO_SEARCH, patient_ids=["P1"])
        assert json.loads(job.to_document())["PatientIds"] == ["P1"]


class TestCountLanguages:
    """Tests for language bucketing"""

    def test_empty_counts_as_english(self):
        counts = count_languages(["", "ENG", "eng", "Spa", "vie"])

        assert (counts.english, counts.spanish, counts.other) == (3, 1, 1)


class TestSourceFileHandle:
    """Tests for source file handles"""

    def test_stem_and_extension(self):
        handle = SourceFileHandle(name="appts.2024.csv", full_path="/in/appts.2024.csv", archive_action="rename")

        assert handle.stem == "appts.2024"
        assert handle.extension == ".csv"

    def test_name_without_extension(self):
        assert split_file_name("README") == ("README", "")

    def test_unknown_archive_action_rejected(self):
        with pytest.raises(ValidationError):
            SourceFileHandle(name="a.csv", full_path="a.csv", archive_action="move")


class TestOutcomes:
    """Tests for archive results, reports and cycle summaries"""

    def test_archive_succeeded_only_when_archived(self):
        assert ArchiveResult(state="archived").succeeded
        assert not ArchiveResult(state="partial", error="delete failed").succeeded

    def test_report_description_joins_errors(self):
        report = ValidationReport(errors=["first", "second"])

        assert not report.accepted
        assert report.description() == "first,second"

    def test_summary_counts_by_state(self):
        summary = PollCycleSummary(
            client_id="c",
            outcomes=[
                FileOutcome(file_name="a.csv", state="committed"),
                FileOutcome(file_name="b.csv", state="failed", failed_stage="parse"),
                FileOutcome(file_name="c.csv", state="committed"),
            ],
        )

        assert summary.count("committed") == 2
        assert summary.count("failed") == 1
        assert summary.count("rejected") == 0
