"""
Batch file processing: sources, parsing and object-store writers.

The poll-cycle orchestrator lives in appointment_etl.batch.pipeline.
"""

from .readers import RecordParser, SourceReader, build_source_reader
from .writers import ArchiveStore, CanonicalBatchStager

__all__ = [
    "SourceReader",
    "build_source_reader",
    "RecordParser",
    "ArchiveStore",
    "CanonicalBatchStager",
]
