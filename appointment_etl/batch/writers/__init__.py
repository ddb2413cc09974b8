"""
Object-store writers for raw file archives and staged canonical batches.
"""

from .archive_store import ArchiveStore
from .batch_stager import CanonicalBatchStager, render_canonical_csv

__all__ = [
    "ArchiveStore",
    "CanonicalBatchStager",
    "render_canonical_csv",
]
