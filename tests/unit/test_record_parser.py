"""
Unit tests for RecordParser.
"""

import pytest

from appointment_etl.batch.readers import RecordParser
from appointment_etl.core.errors import ParseError


class TestRecordParser:
    """Tests for tabular parsing of appointment files"""

    def test_headers_match_loosely(self):
        payload = (
            b"app id,First Name,LASTNAME,Language\r\n"
            b"A-1,John,Doe,eng\r\n"
            b"A-2,Ana,Ruiz,spa\r\n"
        )

        batch = RecordParser().parse(payload, "appts.csv")

        assert [r.app_id for r in batch.records] == ["A-1", "A-2"]
        assert batch.records[0].first_name == "John"
        assert batch.records[1].language == "spa"
        assert batch.skipped_rows == 0
        assert batch.delimiter == ","

    def test_missing_fields_default_to_empty(self):
        batch = RecordParser().parse(b"AppId,FirstName\nA-1,John\n")

        record = batch.records[0]
        assert record.location_id == ""
        assert record.custom2 == ""

    def test_unmapped_columns_ignored(self):
        batch = RecordParser().parse(b"AppId,VendorColumn\nA-1,whatever\n")

        assert batch.ignored_headers == ["VendorColumn"]
        assert batch.records[0].app_id == "A-1"

    def test_pipe_delimiter_detected(self):
        payload = b"AppId|FirstName|LastName\nA-1|John|Doe\nA-2|Ana|Ruiz\n"

        batch = RecordParser().parse(payload)

        assert batch.delimiter == "|"
        assert batch.records[1].last_name == "Ruiz"

    def test_values_trimmed(self):
        batch = RecordParser().parse(b"AppId,FirstName\n  A-1 ,  John  \n")

        assert batch.records[0].app_id == "A-1"
        assert batch.records[0].first_name == "John"

    def test_blank_and_null_rows_skipped_silently(self):
        payload = b"AppId,FirstName\nA-1,John\n,\nnull,null\nA-2,Ana\n"

        batch = RecordParser().parse(payload)

        assert [r.app_id for r in batch.records] == ["A-1", "A-2"]
        assert batch.skipped_rows == 0

    def test_row_with_wrong_width_excluded(self):
        payload = b"AppId,FirstName,LastName\nA-1,John,Doe\nA-2,Ana,Ruiz,extra,cols\nA-3,Li,Wei\n"

        batch = RecordParser().parse(payload)

        assert [r.app_id for r in batch.records] == ["A-1", "A-3"]
        assert batch.skipped_rows == 1

    def test_trailing_delimiter_tolerated(self):
        batch = RecordParser().parse(b"AppId,FirstName\nA-1,John,\n")

        assert batch.records[0].first_name == "John"
        assert batch.skipped_rows == 0

    def test_utf8_bom_stripped(self):
        batch = RecordParser().parse("\ufeffAppId,FirstName\nA-1,José\n".encode("utf-8"))

        assert batch.records[0].app_id == "A-1"
        assert batch.records[0].first_name == "José"

    def test_empty_file_raises(self):
        with pytest.raises(ParseError, match="empty"):
            RecordParser().parse(b"   \n", "empty.csv")

    def test_undecodable_file_raises(self):
        with pytest.raises(ParseError) as exc_info:
            RecordParser().parse(b"\xff\xfe\x00garbage", "binary.csv")

        assert exc_info.value.file_name == "binary.csv"

    def test_no_recognised_columns_raises(self):
        with pytest.raises(ParseError, match="no recognised appointment columns"):
            RecordParser().parse(b"foo,bar\n1,2\n")

    def test_header_only_yields_no_records(self):
        batch = RecordParser().parse(b"AppId,FirstName\n")

        assert batch.records == []

    def test_quoted_values_keep_embedded_delimiters(self):
        payload = b'AppId,FirstName,LocationName\nA-1,"Doe, John","Main Clinic, 2nd floor"\n'

        batch = RecordParser().parse(payload)

        assert batch.delimiter == ","
        assert batch.records[0].first_name == "Doe, John"
        assert batch.records[0].location_name == "Main Clinic, 2nd floor"

    def test_semicolon_delimiter_detected(self):
        payload = b"AppId;FirstName;LastName\nA-1;John;Doe\nA-2;Ana;Ruiz\n"

        batch = RecordParser().parse(payload)

        assert batch.delimiter == ";"
        assert [r.last_name for r in batch.records] == ["Doe", "Ruiz"]

    def test_short_row_padded_with_empty_values(self):
        batch = RecordParser().parse(b"AppId,FirstName,LastName\nA-1,John\n")

        assert batch.records[0].first_name == "John"
        assert batch.records[0].last_name == ""
        assert batch.skipped_rows == 0

    def test_null_token_kept_inside_populated_row(self):
        batch = RecordParser().parse(b"AppId,AppNotes\nA-1,null\n")

        assert batch.records[0].app_notes == "null"

    def test_bad_row_first_after_header_excluded(self):
        payload = b"AppId,FirstName\nA-1,John,unexpected\nA-2,Ana\n"

        batch = RecordParser().parse(payload)

        assert [r.app_id for r in batch.records] == ["A-2"]
        assert batch.skipped_rows == 1
