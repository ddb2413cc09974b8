"""
ClientProfile model describing one client feed: its source, layout and settings.
"""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, model_validator


class SftpSourceConfig(BaseModel):
    """
    SFTP source configuration.

    Files are listed under /<home_directory>/<appointment_directory> and moved
    into /<home_directory>/<archive_directory> once processed.
    """

    type: Literal["sftp"] = "sftp"
    host: str = Field(..., min_length=1)
    port: int | None = Field(None, gt=0, le=65535)
    username: str = Field(..., min_length=1)
    password: str | None = None
    private_key_authentication: bool = False
    private_key_path: str | None = None
    private_key_passphrase: str | None = None
    home_directory: str = ""
    appointment_directory: str = ""
    archive_directory: str = Field(..., min_length=1)

    @model_validator(mode="after")
    def check_credentials(self):
        """Key auth needs a key file, password auth needs a password."""
        if self.private_key_authentication and not self.private_key_path:
            raise ValueError("private_key_path is required when private_key_authentication is set")
        if not self.private_key_authentication and not self.password:
            raise ValueError("password is required unless private_key_authentication is set")
        return self


class BlobSourceConfig(BaseModel):
    """
    Object-store source configuration (separate source and archive containers).
    """

    type: Literal["blob"] = "blob"
    source_container: str = Field(..., min_length=1)
    archive_container: str = Field(..., min_length=1)
    region: str | None = None
    profile: str | None = None
    endpoint_url: str | None = None
    page_size: int | None = Field(None, gt=0, le=1000)


class LocalSourceConfig(BaseModel):
    """
    Local directory source, with the same rename-to-archive semantics as SFTP.
    """

    type: Literal["local"] = "local"
    directory: str = Field(..., min_length=1)
    archive_directory: str = Field(..., min_length=1)


SourceConfig = Annotated[
    Union[SftpSourceConfig, BlobSourceConfig, LocalSourceConfig],
    Field(discriminator="type"),
]


class ClientSettings(BaseModel):
    """
    Per-client storage and scheduling settings.

    Attributes:
        staging_bucket: Bucket receiving the canonical CSV handed to the downstream load
        archive_bucket: Bucket receiving the raw bytes of every processed file
        protocol_id: Reminder protocol recorded on import jobs
        storage_region / storage_endpoint_url: Object store connection overrides
    """

    staging_bucket: str = Field(..., min_length=1)
    archive_bucket: str = Field(..., min_length=1)
    protocol_id: int | None = None
    storage_region: str | None = None
    storage_endpoint_url: str | None = None


class ClientProfile(BaseModel):
    """
    One client feed.

    Attributes:
        client_id: External client identifier, also the transform registry key
        client_key: Integer database key used for dimension rows, jobs and file metadata
        name: Display name
        transform: Strategy name registered in the transform registry
        date_format: strftime pattern or legacy token pattern (e.g. "yyyyMMddHHmm")
        source: Where the files come from
        settings: Storage and scheduling settings
        archive_on_parse_failure: Archive files that could not be parsed at all;
            None falls back to the process-wide setting
        enabled: Whether the profile is polled
    """

    client_id: str = Field(..., min_length=1)
    client_key: int
    name: str = ""
    transform: str = "generic"
    date_format: str = Field(..., min_length=1)
    source: SourceConfig
    settings: ClientSettings
    archive_on_parse_failure: bool | None = None
    enabled: bool = True

    class Config:
        json_schema_extra = {
            "example": {
                "client_id": "61a04be0-c0a0-440b-a395-01c1ec49c882",
                "client_key": 7,
                "name": "Lakeside Orthopedics",
                "transform": "bracketed_codes",
                "date_format": "yyyyMMddHHmm",
                "source": {
                    "type": "sftp",
                    "host": "sftp.example.org",
                    "username": "lakeside",
                    "password": "${LAKESIDE_SFTP_PASSWORD}",
                    "home_directory": "lakeside",
                    "appointment_directory": "inbound",
                    "archive_directory": "processed"
                },
                "settings": {
                    "staging_bucket": "appointment-staging",
                    "archive_bucket": "appointment-archive",
                    "protocol_id": 3
                }
            }
        }
