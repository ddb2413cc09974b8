"""
Job creation and scheduler notification.
"""

from .job_service import (
    JobService,
    processing_failure_description,
    read_failure_description,
    rejected_description,
)
from .scheduler_trigger import SchedulerTrigger

__all__ = [
    "JobService",
    "SchedulerTrigger",
    "rejected_description",
    "read_failure_description",
    "processing_failure_description",
]
