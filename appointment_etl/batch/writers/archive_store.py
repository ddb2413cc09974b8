"""
Archive store for the raw bytes of every processed file.
"""

import mimetypes
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from appointment_etl.batch.object_store import object_url, timestamped_name
from appointment_etl.core.errors import TransientIOError
from appointment_etl.core.models import StoredFile
from appointment_etl.observability.logger import get_logger

logger = get_logger(__name__)


class ArchiveStore:
    """
    Writes original file bytes to the client's archive bucket under a
    timestamp-qualified name.
    """

    def __init__(self, s3_client: Any, bucket: str):
        """
        Initialize archive store.

        Args:
            s3_client: Boto3 S3 client
            bucket: Archive bucket
        """
        self.s3_client = s3_client
        self.bucket = bucket

    def save(self, file_name: str, stem: str, extension: str, payload: bytes) -> StoredFile:
        """
        Store one raw file.

        Args:
            file_name: Original file name, recorded in the notes
            stem: File name without extension
            extension: Extension including the dot
            payload: Raw bytes as read from the source

        Returns:
            StoredFile describing the written object

        Raises:
            TransientIOError: If the upload fails
        """
        blob_name = timestamped_name(stem, extension)
        mime_type = mimetypes.guess_type(file_name)[0] or "application/octet-stream"
        try:
            self.s3_client.put_object(
                Bucket=self.bucket,
                Key=blob_name,
                Body=payload,
                ContentType=mime_type,
            )
        except (BotoCoreError, ClientError) as e:
            raise TransientIOError(f"Archiving {file_name} to {self.bucket} failed: {e}") from e

        stored = StoredFile(
            url=object_url(self.bucket, blob_name),
            bucket=self.bucket,
            blob_name=blob_name,
            mime_type=mime_type,
            size=len(payload),
            notes=file_name,
        )
        logger.info("Stored raw file", extra={"file_name": file_name, "url": stored.url, "size": stored.size})
        return stored
