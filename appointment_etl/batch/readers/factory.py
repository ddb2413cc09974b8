"""
Builds the source reader matching a profile's source configuration.
"""

from appointment_etl.core.models import BlobSourceConfig, LocalSourceConfig, SftpSourceConfig

from .blob_reader import BlobSourceReader
from .sftp_reader import SftpSourceReader
from .source_reader import LocalDirectorySource, SourceReader


def build_source_reader(config) -> SourceReader:
    """
    Args:
        config: SftpSourceConfig, BlobSourceConfig or LocalSourceConfig

    Raises:
        TypeError: For any other configuration type
    """
    if isinstance(config, SftpSourceConfig):
        return SftpSourceReader(config)
    if isinstance(config, BlobSourceConfig):
        return BlobSourceReader(config)
    if isinstance(config, LocalSourceConfig):
        return LocalDirectorySource(config)
    raise TypeError(f"Unsupported source configuration: {type(config).__name__}")
