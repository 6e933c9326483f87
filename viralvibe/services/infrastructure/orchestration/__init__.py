"""Job orchestration - job tracking, cancellation and service lifecycle."""

from .cancellation import CancelToken
from .job_manager import JobManager, Job, get_job_manager
from .registry import BatchRegistry, get_batch_registry
from .lifecycle import StartupManager

__all__ = [
    "CancelToken",
    "JobManager",
    "Job",
    "get_job_manager",
    "BatchRegistry",
    "get_batch_registry",
    "StartupManager",
]
