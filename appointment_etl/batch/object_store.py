"""
boto3 client creation shared by the blob source and the archive/staging writers.
"""

from datetime import datetime, timezone
from typing import Any

import boto3


def create_s3_client(
    region: str | None = None,
    profile: str | None = None,
    endpoint_url: str | None = None,
) -> Any:
    """Create a boto3 S3 client.

    Args:
        region: AWS region, or None for the environment default
        profile: Named credentials profile
        endpoint_url: Alternative endpoint (S3-compatible stores, local emulators)

    Returns:
        Boto3 S3 client.
    """
    session_kwargs: dict[str, str] = {}
    if profile:
        session_kwargs["profile_name"] = profile
    if region:
        session_kwargs["region_name"] = region
    session = boto3.session.Session(**session_kwargs)
    client_kwargs: dict[str, str] = {}
    if endpoint_url:
        client_kwargs["endpoint_url"] = endpoint_url
    return session.client("s3", **client_kwargs)


def object_url(bucket: str, key: str) -> str:
    return f"s3://{bucket}/{key}"


def timestamped_name(stem: str, extension: str, now: datetime | None = None) -> str:
    """Object name <stem>_<UTC timestamp><extension> used by the archive store and the stager."""
    stamp = (now or datetime.now(timezone.utc)).strftime("%Y%m%d%H%M%S%f")
    return f"{stem}_{stamp}{extension}"
