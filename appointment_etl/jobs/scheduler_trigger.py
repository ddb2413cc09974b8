"""
Webhook notifying the downstream scheduler that a job is ready.
"""

from datetime import datetime, timezone
from uuid import UUID

import requests
from tenacity.wait import wait_base

from appointment_etl.core.errors import DownstreamNotifyError
from appointment_etl.observability.logger import get_logger
from appointment_etl.observability.metrics import increment_counter, notify_failures_total
from appointment_etl.utils.retry import build_retrying

logger = get_logger(__name__)

MESSAGE_PATH = "api/message"
MESSAGE_TYPE = "schedule-job"
TEST_INTAKE_MARKER = "pt-test-intake"
TEST_PREFIX = "Test-"

TRANSIENT_HTTP_ERRORS = (requests.ConnectionError, requests.Timeout)


class SchedulerTrigger:
    """
    Posts one schedule-job message per notified job.

    Delivery failures are logged and counted, never raised to the caller.
    """

    def __init__(
        self,
        intake_url: str | None,
        timeout: float = 10.0,
        session: requests.Session | None = None,
        retry_wait: wait_base | None = None,
    ):
        """
        Initialize scheduler trigger.

        Args:
            intake_url: Base URL of the intake service; None disables notifications
            timeout: Request timeout in seconds
            session: requests session (tests pass a mock)
            retry_wait: Backoff between attempts on connection errors
        """
        self.intake_url = intake_url
        self.timeout = timeout
        self.session = session or requests.Session()
        self._retrying = build_retrying("scheduler_notify", TRANSIENT_HTTP_ERRORS, wait=retry_wait)

    @property
    def message_type(self) -> str:
        prefix = TEST_PREFIX if self.intake_url and TEST_INTAKE_MARKER in self.intake_url else ""
        return f"{prefix}{MESSAGE_TYPE}"

    @property
    def endpoint(self) -> str:
        return f"{(self.intake_url or '').rstrip('/')}/{MESSAGE_PATH}"

    def build_payload(self, job_id: UUID, client_id: str) -> dict:
        return {
            "Version": "1.0",
            "MessageType": self.message_type,
            "TimeStamp": datetime.now(timezone.utc).isoformat(),
            "PublishedBy": "ScheduleJob",
            "Body": {
                "ClientId": client_id,
                "JobId": str(job_id),
            },
        }

    def notify(self, job_id: UUID, client_id: str) -> bool:
        """
        Notify the scheduler about one job.

        Returns:
            True when the intake answered with a success status
        """
        if not self.intake_url:
            logger.warning("INTAKE_URL is not set; skipping scheduler notification", extra={"job_id": str(job_id)})
            return False

        payload = self.build_payload(job_id, client_id)
        try:
            response = self._retrying(self._post, payload)
        except (requests.RequestException, DownstreamNotifyError) as e:
            increment_counter(notify_failures_total)
            logger.error(
                f"Scheduler notification failed: {e}",
                extra={"job_id": str(job_id), "client_id": client_id, "endpoint": self.endpoint}
            )
            return False

        logger.info(
            "Scheduler notified",
            extra={"job_id": str(job_id), "client_id": client_id, "response": response.text[:500]}
        )
        return True

    def _post(self, payload: dict) -> requests.Response:
        response = self.session.post(
            self.endpoint,
            json=payload,
            headers={"Content-Type": "application/json"},
            timeout=self.timeout,
        )
        if response.status_code >= 400:
            raise DownstreamNotifyError(
                f"Intake answered {response.status_code}: {response.text[:200]}"
            )
        return response
