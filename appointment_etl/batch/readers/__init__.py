"""
Batch file sources and the record parser.
"""

from .blob_reader import BlobSourceReader
from .factory import build_source_reader
from .record_parser import ParsedBatch, RecordParser
from .sftp_reader import SftpSourceReader
from .source_reader import LocalDirectorySource, SourceReader, archive_name

__all__ = [
    "SourceReader",
    "LocalDirectorySource",
    "SftpSourceReader",
    "BlobSourceReader",
    "build_source_reader",
    "archive_name",
    "RecordParser",
    "ParsedBatch",
]
