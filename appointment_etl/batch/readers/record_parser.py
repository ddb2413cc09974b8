"""
Tabular parser turning raw file bytes into canonical appointment records.
"""

import csv
import io
from typing import NamedTuple

import pandas as pd

from appointment_etl.core.errors import ParseError
from appointment_etl.core.models import HEADER_FIELD_MAP, AppointmentRecord, normalize_header
from appointment_etl.observability.logger import get_logger

logger = get_logger(__name__)


class ParsedBatch(NamedTuple):
    """
    Records parsed from one file.

    Attributes:
        records: Canonical records in file order
        skipped_rows: Rows dropped because they could not be parsed structurally
        delimiter: Delimiter detected for the file
        ignored_headers: Source headers with no canonical field
    """

    records: list[AppointmentRecord]
    skipped_rows: int
    delimiter: str
    ignored_headers: list[str]


class RecordParser:
    """
    Reads delimited appointment files with tolerant header matching.

    - The delimiter is sniffed among comma, semicolon, tab and pipe
    - Headers match canonical fields case-insensitively, whitespace removed;
      unmapped vendor columns are ignored
    - Rows whose every field is blank or the token "null" are skipped
    - Values are trimmed; fields missing from the file default to ""
    - A row wider than the header is logged and excluded
    """

    DELIMITERS = ",;\t|"
    NULL_TOKEN = "null"
    SNIFF_SAMPLE_CHARS = 64 * 1024

    def __init__(
        self,
        field_map: dict[str, str] | None = None,
        encoding: str = "utf-8-sig",
    ):
        """
        Initialize record parser.

        Args:
            field_map: Normalized header -> AppointmentRecord field (defaults to the canonical map)
            encoding: Text encoding of incoming files
        """
        self.field_map = field_map or HEADER_FIELD_MAP
        self.encoding = encoding

    def parse(self, payload: bytes, file_name: str = "<stream>") -> ParsedBatch:
        """
        Parse one file.

        Args:
            payload: Raw file bytes
            file_name: Name used in log lines and errors

        Returns:
            ParsedBatch with the records in file order

        Raises:
            ParseError: If the file is not decodable, empty, or has no canonical columns
        """
        try:
            text = payload.decode(self.encoding)
        except UnicodeDecodeError as e:
            raise ParseError(file_name, f"file is not valid {self.encoding} text: {e}") from e

        if not text.strip():
            raise ParseError(file_name, "file is empty")

        delimiter = self.detect_delimiter(text)
        header = self._read_header(text, delimiter, file_name)

        column_fields: dict[int, str] = {}
        ignored_headers: list[str] = []
        for index, name in enumerate(header):
            field = self.field_map.get(normalize_header(name))
            if field is None or field in column_fields.values():
                ignored_headers.append(name)
                continue
            column_fields[index] = field

        if not column_fields:
            raise ParseError(file_name, "no recognised appointment columns in header")

        if ignored_headers:
            logger.debug(
                "Ignoring unmapped columns",
                extra={"file_name": file_name, "columns": ignored_headers}
            )

        skipped = []

        def handle_bad_line(row: list[str]) -> list[str] | None:
            # Trailing delimiters produce extra empty fields
            if all(value.strip() == "" for value in row[len(header):]):
                return row[:len(header)]
            skipped.append(row)
            logger.error(
                f"Error in record: expected {len(header)} fields, got {len(row)}",
                extra={"file_name": file_name, "row": row}
            )
            return None

        frame = self._read_frame(
            text,
            delimiter,
            file_name,
            header=None,
            names=list(range(len(header))),
            on_bad_lines=handle_bad_line,
        )
        # The header line is the first parsed row
        frame = frame.iloc[1:].fillna("")
        frame = frame.apply(lambda column: column.str.strip())
        frame = frame[~frame.isin(["", self.NULL_TOKEN]).all(axis=1)]

        records = [
            AppointmentRecord(**{field: row[index] for index, field in column_fields.items()})
            for row in frame.itertuples(index=False, name=None)
        ]

        logger.info(
            "Parsed file",
            extra={
                "file_name": file_name,
                "record_count": len(records),
                "skipped_rows": len(skipped),
                "delimiter": delimiter,
            }
        )
        return ParsedBatch(records, len(skipped), delimiter, ignored_headers)

    def detect_delimiter(self, text: str) -> str:
        """Sniff the delimiter, falling back to the most frequent candidate on the header line."""
        sample = text[:self.SNIFF_SAMPLE_CHARS]
        try:
            delimiter = csv.Sniffer().sniff(sample, delimiters=self.DELIMITERS).delimiter
            if delimiter in self.DELIMITERS:
                return delimiter
        except csv.Error:
            pass
        first_line = next((line for line in sample.splitlines() if line.strip()), "")
        counts = {candidate: first_line.count(candidate) for candidate in self.DELIMITERS}
        best = max(counts, key=counts.get)
        return best if counts[best] else ","

    def _read_header(self, text: str, delimiter: str, file_name: str) -> list[str]:
        first_row = self._read_frame(text, delimiter, file_name, header=None, nrows=1)
        if first_row.empty:
            raise ParseError(file_name, "no header row")
        return [value.strip() for value in first_row.iloc[0].fillna("")]

    @staticmethod
    def _read_frame(text: str, delimiter: str, file_name: str, **options) -> pd.DataFrame:
        try:
            return pd.read_csv(
                io.StringIO(text),
                sep=delimiter,
                engine="python",
                dtype=str,
                keep_default_na=False,
                skipinitialspace=True,
                skip_blank_lines=True,
                **options,
            )
        except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
            raise ParseError(file_name, f"file is not readable as delimited text: {e}") from e
