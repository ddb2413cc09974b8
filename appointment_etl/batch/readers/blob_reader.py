"""
Object-store source reader: one bucket holds pending files, another the archive.
"""

from typing import Any, BinaryIO, Callable, Iterator

from botocore.exceptions import BotoCoreError, ClientError

from appointment_etl.batch.object_store import create_s3_client, object_url
from appointment_etl.core.errors import SourceConnectionError
from appointment_etl.core.models import ArchiveResult, BlobSourceConfig, SourceFileHandle
from appointment_etl.observability.logger import get_logger

from .source_reader import SourceReader, archive_name

logger = get_logger(__name__)

STORAGE_ERRORS = (BotoCoreError, ClientError)


class BlobSourceReader(SourceReader):
    """
    Pending files are the objects of the source container, listed page by page.

    Archiving copies the object into the archive container under
    <UTC timestamp>_<name>, then deletes the original. A failed copy leaves the
    source object untouched; a failed delete after a good copy is reported as
    a partial archive.
    """

    source_type = "blob"

    def __init__(self, config: BlobSourceConfig, client_factory: Callable[..., Any] = create_s3_client):
        """
        Initialize blob reader.

        Args:
            config: Blob source configuration
            client_factory: Builds the S3 client; replaced in tests
        """
        self.config = config
        self.client_factory = client_factory
        self._client: Any = None

    def connect(self) -> None:
        logger.info("Connecting to blob container", extra={"container": self.config.source_container})
        try:
            client = self.client_factory(
                region=self.config.region,
                profile=self.config.profile,
                endpoint_url=self.config.endpoint_url,
            )
            client.head_bucket(Bucket=self.config.source_container)
        except STORAGE_ERRORS as e:
            raise SourceConnectionError(
                f"Blob container {self.config.source_container} is not reachable: {e}"
            ) from e
        self._client = client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def list_pending(self) -> Iterator[SourceFileHandle]:
        client = self._require_client()
        request: dict[str, Any] = {"Bucket": self.config.source_container}
        if self.config.page_size:
            request["MaxKeys"] = self.config.page_size

        while True:
            try:
                page = client.list_objects_v2(**request)
            except STORAGE_ERRORS as e:
                raise SourceConnectionError(
                    f"Cannot list blob container {self.config.source_container}: {e}"
                ) from e

            for item in page.get("Contents", []):
                key = item["Key"]
                if key.endswith("/"):
                    continue
                yield SourceFileHandle(
                    name=key.rsplit("/", 1)[-1],
                    full_path=key,
                    size=item.get("Size"),
                    last_modified=item.get("LastModified"),
                    archive_action="copy_then_delete",
                )

            if not page.get("IsTruncated"):
                break
            request["ContinuationToken"] = page["NextContinuationToken"]

    def open_read(self, handle: SourceFileHandle) -> BinaryIO:
        response = self._require_client().get_object(
            Bucket=self.config.source_container, Key=handle.full_path
        )
        return response["Body"]

    def archive(self, handle: SourceFileHandle) -> ArchiveResult:
        client = self._require_client()
        target_key = archive_name(handle.name)
        location = object_url(self.config.archive_container, target_key)

        logger.info("Copying file to archive", extra={"file_name": handle.name, "archive_location": location})
        try:
            client.copy_object(
                Bucket=self.config.archive_container,
                Key=target_key,
                CopySource={"Bucket": self.config.source_container, "Key": handle.full_path},
            )
        except STORAGE_ERRORS as e:
            return self._archive_failed(handle, e)

        try:
            client.delete_object(Bucket=self.config.source_container, Key=handle.full_path)
        except STORAGE_ERRORS as e:
            return self._archive_failed(handle, e, state="partial", location=location)

        return ArchiveResult(state="archived", location=location)

    def _require_client(self) -> Any:
        if self._client is None:
            raise SourceConnectionError("Blob session is not open. Use session() first.")
        return self._client
