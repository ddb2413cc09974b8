"""
Process-wide pipeline settings read from the environment.
"""

import os

from pydantic import BaseModel, Field

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in _TRUE_VALUES


def _env_int(name: str) -> int | None:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    return int(raw)


class PipelineSettings(BaseModel):
    """
    Settings shared by every client profile.

    Attributes:
        intake_url: Base URL of the downstream scheduler intake (INTAKE_URL)
        poll_interval_seconds: Default delay between poll cycles; unset means a single cycle (POLL_INTERVAL_SECONDS)
        archive_on_parse_failure: Default for profiles that do not set it (ARCHIVE_ON_PARSE_FAILURE)
        schedule_delay_minutes: Offset of DateTimeScheduled on import jobs (SCHEDULE_DELAY_MINUTES)
        http_timeout_seconds: Timeout for the scheduler webhook (HTTP_TIMEOUT_SECONDS)
    """

    intake_url: str | None = None
    poll_interval_seconds: int | None = Field(None, gt=0)
    archive_on_parse_failure: bool = True
    schedule_delay_minutes: int = Field(15, ge=0)
    http_timeout_seconds: float = Field(10.0, gt=0)

    @classmethod
    def from_env(cls) -> "PipelineSettings":
        return cls(
            intake_url=os.getenv("INTAKE_URL") or None,
            poll_interval_seconds=_env_int("POLL_INTERVAL_SECONDS"),
            archive_on_parse_failure=_env_bool("ARCHIVE_ON_PARSE_FAILURE", True),
            schedule_delay_minutes=int(os.getenv("SCHEDULE_DELAY_MINUTES", "15")),
            http_timeout_seconds=float(os.getenv("HTTP_TIMEOUT_SECONDS", "10")),
        )
