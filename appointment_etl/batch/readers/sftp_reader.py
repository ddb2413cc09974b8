"""
SFTP source reader using paramiko.
"""

import posixpath
import stat
from datetime import datetime, timezone
from typing import BinaryIO, Iterator

import paramiko

from appointment_etl.core.errors import SourceConnectionError
from appointment_etl.core.models import ArchiveResult, SftpSourceConfig, SourceFileHandle
from appointment_etl.observability.logger import get_logger

from .source_reader import SourceReader, archive_name

logger = get_logger(__name__)

DEFAULT_SFTP_PORT = 22


def remote_dir(*parts: str) -> str:
    """Join path segments into an absolute remote directory, skipping empty ones."""
    segments = [part.strip("/") for part in parts if part and part.strip("/")]
    return "/" + "/".join(segments)


class SftpSourceReader(SourceReader):
    """
    Files in /<home>/<appointment_directory> on an SFTP server.

    Processed files are renamed into /<home>/<archive_directory>/<UTC timestamp>_<name>,
    a single server-side rename.
    """

    source_type = "sftp"

    def __init__(self, config: SftpSourceConfig, timeout: float = 30.0):
        """
        Initialize SFTP reader.

        Args:
            config: SFTP source configuration
            timeout: TCP / banner / auth timeout in seconds
        """
        self.config = config
        self.timeout = timeout
        self.inbound_directory = remote_dir(config.home_directory, config.appointment_directory)
        self.archive_directory = remote_dir(config.home_directory, config.archive_directory)
        self._client: paramiko.SSHClient | None = None
        self._sftp: paramiko.SFTPClient | None = None

    def connect(self) -> None:
        logger.info(
            "Connecting to SFTP",
            extra={"host": self.config.host, "directory": self.inbound_directory}
        )
        client = paramiko.SSHClient()
        client.load_system_host_keys()
        client.set_missing_host_key_policy(paramiko.WarningPolicy())
        try:
            client.connect(
                hostname=self.config.host,
                port=self.config.port or DEFAULT_SFTP_PORT,
                username=self.config.username,
                password=None if self.config.private_key_authentication else self.config.password,
                pkey=self._load_private_key(),
                timeout=self.timeout,
                banner_timeout=self.timeout,
                auth_timeout=self.timeout,
                look_for_keys=False,
                allow_agent=False,
            )
            self._sftp = client.open_sftp()
        except (paramiko.SSHException, OSError) as e:
            client.close()
            raise SourceConnectionError(f"SFTP connection to {self.config.host} failed: {e}") from e

        self._client = client
        logger.info("SFTP connected", extra={"host": self.config.host})

    def close(self) -> None:
        if self._sftp is not None:
            self._sftp.close()
            self._sftp = None
        if self._client is not None:
            self._client.close()
            self._client = None

    def list_pending(self) -> Iterator[SourceFileHandle]:
        sftp = self._require_sftp()
        try:
            entries = sftp.listdir_attr(self.inbound_directory)
        except (OSError, paramiko.SSHException) as e:
            raise SourceConnectionError(f"Cannot list {self.inbound_directory}: {e}") from e

        for attributes in entries:
            if attributes.st_mode is None or not stat.S_ISREG(attributes.st_mode):
                continue
            modified = None
            if attributes.st_mtime:
                modified = datetime.fromtimestamp(attributes.st_mtime, tz=timezone.utc)
            yield SourceFileHandle(
                name=attributes.filename,
                full_path=posixpath.join(self.inbound_directory, attributes.filename),
                size=attributes.st_size,
                last_modified=modified,
                archive_action="rename",
            )

    def open_read(self, handle: SourceFileHandle) -> BinaryIO:
        remote_file = self._require_sftp().open(handle.full_path, "rb")
        remote_file.prefetch()
        return remote_file

    def archive(self, handle: SourceFileHandle) -> ArchiveResult:
        target = posixpath.join(self.archive_directory, archive_name(handle.name))
        logger.info("Moving file to archive", extra={"file_name": handle.name, "archive_location": target})
        try:
            self._require_sftp().rename(handle.full_path, target)
        except (OSError, paramiko.SSHException, SourceConnectionError) as e:
            return self._archive_failed(handle, e)
        return ArchiveResult(state="archived", location=target)

    def _require_sftp(self) -> paramiko.SFTPClient:
        if self._sftp is None:
            raise SourceConnectionError("SFTP session is not open. Use session() first.")
        return self._sftp

    def _load_private_key(self) -> paramiko.PKey | None:
        if not self.config.private_key_authentication:
            return None
        passphrase = self.config.private_key_passphrase
        try:
            # Key type (RSA, ECDSA, Ed25519) is detected from the file
            return paramiko.PKey.from_path(
                self.config.private_key_path,
                passphrase=passphrase.encode("utf-8") if passphrase else None,
            )
        except (paramiko.SSHException, OSError, ValueError, TypeError) as e:
            raise SourceConnectionError(
                f"Cannot load SFTP private key {self.config.private_key_path}: {e}"
            ) from e
