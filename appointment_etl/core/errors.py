"""
Error taxonomy for the appointment ETL pipeline.

Each class maps to one failure scope: a whole poll cycle
(SourceConnectionError), a single file (ParseError, PersistenceError),
or a side effect that is logged but never fails the file
(TransientIOError, DownstreamNotifyError).
"""


class AppointmentEtlError(Exception):
    """Base class for all pipeline errors."""


class SourceConnectionError(AppointmentEtlError):
    """Raised when a source (SFTP server or blob container) is unreachable.

    Aborts the current poll cycle only; the next cycle retries.
    """


class ParseError(AppointmentEtlError):
    """Raised when a file cannot be read as tabular data at all."""

    def __init__(self, file_name: str, message: str):
        self.file_name = file_name
        self.message = message
        super().__init__(f"{file_name}: {message}")


class DateFormatError(AppointmentEtlError, ValueError):
    """Raised when a date or time value does not parse against the client format."""

    def __init__(self, value: str, date_format: str):
        self.value = value
        self.date_format = date_format
        super().__init__(f"'{value}' does not match date format '{date_format}'")


class TransientIOError(AppointmentEtlError):
    """Raised when an archive move, copy or delete fails."""


class DownstreamNotifyError(AppointmentEtlError):
    """Raised when the scheduler webhook cannot be reached."""


class PersistenceError(AppointmentEtlError):
    """Raised when a dimension, job or metadata write fails after retries."""
