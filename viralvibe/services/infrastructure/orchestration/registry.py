"""
Registry of batch runs that are still in flight, keyed by job id.

Routes register a runner when a background batch starts and look it up again
to cancel it; the lifecycle manager cancels whatever is left on shutdown.
"""

from threading import RLock
from typing import Dict, List, Optional, Protocol

from viralvibe.core.logging import get_logger

logger = get_logger(__name__, component="batch_registry")


class Cancellable(Protocol):
    def cancel(self, reason: str = ...) -> None: ...


class BatchRegistry:
    def __init__(self):
        self._runners: Dict[str, Cancellable] = {}
        self._lock = RLock()

    def register(self, job_id: str, runner: Cancellable) -> None:
        with self._lock:
            self._runners[job_id] = runner

    def unregister(self, job_id: str) -> None:
        with self._lock:
            self._runners.pop(job_id, None)

    def get(self, job_id: str) -> Optional[Cancellable]:
        with self._lock:
            return self._runners.get(job_id)

    def active_job_ids(self) -> List[str]:
        with self._lock:
            return list(self._runners)

    def cancel(self, job_id: str, reason: str = "cancelled by user") -> bool:
        """Cancel one batch. Returns False when nothing is running under ``job_id``."""
        runner = self.get(job_id)
        if runner is None:
            return False
        logger.info("Cancelling batch", extra={"job_id": job_id, "reason": reason})
        runner.cancel(reason)
        return True

    def cancel_all(self, reason: str = "server shutdown") -> int:
        job_ids = self.active_job_ids()
        for job_id in job_ids:
            self.cancel(job_id, reason)
        return len(job_ids)


_registry_instance: Optional[BatchRegistry] = None


def get_batch_registry() -> BatchRegistry:
    """Get the shared BatchRegistry instance (singleton pattern)."""
    global _registry_instance
    if _registry_instance is None:
        _registry_instance = BatchRegistry()
    return _registry_instance
