"""
Stages the canonical, post-validation batch as CSV for the downstream load.
"""

from typing import Any, Iterable

import pandas as pd
from botocore.exceptions import BotoCoreError, ClientError

from appointment_etl.batch.object_store import object_url, timestamped_name
from appointment_etl.core.errors import PersistenceError
from appointment_etl.core.models import CANONICAL_HEADERS, AppointmentRecord, StoredFile
from appointment_etl.observability.logger import get_logger

logger = get_logger(__name__)


def render_canonical_csv(records: Iterable[AppointmentRecord]) -> bytes:
    """Comma-delimited UTF-8 CSV with the canonical header row."""
    frame = pd.DataFrame([record.to_row() for record in records], columns=CANONICAL_HEADERS)
    return frame.to_csv(index=False, lineterminator="\r\n").encode("utf-8")


class CanonicalBatchStager:
    """
    Uploads canonical batches to the client's staging bucket.
    """

    def __init__(self, s3_client: Any, bucket: str):
        self.s3_client = s3_client
        self.bucket = bucket

    def stage(self, stem: str, extension: str, records: list[AppointmentRecord]) -> StoredFile:
        """
        Upload one batch.

        Args:
            stem: Source file name without extension
            extension: Source file extension including the dot
            records: Records left after validation filtering

        Returns:
            StoredFile for the staged object

        Raises:
            PersistenceError: If the upload fails
        """
        blob_name = timestamped_name(stem, extension)
        body = render_canonical_csv(records)
        try:
            self.s3_client.put_object(
                Bucket=self.bucket,
                Key=blob_name,
                Body=body,
                ContentType="text/csv",
            )
        except (BotoCoreError, ClientError) as e:
            raise PersistenceError(f"Staging {blob_name} to {self.bucket} failed: {e}") from e

        logger.info(
            "Staged canonical batch",
            extra={"bucket": self.bucket, "blob_name": blob_name, "record_count": len(records)}
        )
        return StoredFile(
            url=object_url(self.bucket, blob_name),
            bucket=self.bucket,
            blob_name=blob_name,
            mime_type="text/csv",
            size=len(body),
        )
