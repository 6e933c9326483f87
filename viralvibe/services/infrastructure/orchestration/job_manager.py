"""
Job Manager - Track batch generation jobs with file-based persistence.
"""

import json
import os
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from threading import RLock
from typing import Any, Dict, List, Optional

from viralvibe.config import JOB_DATA_DIR
from viralvibe.core.logging import get_logger
from viralvibe.models.status import JobStatus

logger = get_logger(__name__, component="job_manager")


def _env_int(name: str, default: int, minimum: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return max(int(raw), minimum)
    except (TypeError, ValueError):
        return default


ACTIVE_STATUSES = {
    JobStatus.PENDING,
    JobStatus.RUNNING,
}


@dataclass
class Job:
    id: str
    status: JobStatus = JobStatus.PENDING
    progress: float = 0.0
    message: str = "Job created"
    total_items: int = 0
    result: Optional[List[Any]] = None
    error: Optional[str] = None
    created_at: str = field(default_factory=lambda: datetime.now().isoformat())
    updated_at: str = field(default_factory=lambda: datetime.now().isoformat())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "status": self.status.value,
            "progress": self.progress,
            "message": self.message,
            "total_items": self.total_items,
            "result": self.result,
            "error": self.error,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Job":
        return cls(
            id=data["id"],
            status=JobStatus(data["status"]),
            progress=data.get("progress", 0.0),
            message=data.get("message", ""),
            total_items=data.get("total_items", 0),
            result=data.get("result"),
            error=data.get("error"),
            created_at=data.get("created_at", datetime.now().isoformat()),
            updated_at=data.get("updated_at", datetime.now().isoformat()),
        )


class JobManager:
    """Manages batch jobs with disk-first persistence and a bounded RAM cache."""

    def __init__(self, storage_dir: Optional[str] = None, cache_limit: Optional[int] = None):
        self._storage_dir = Path(storage_dir) if storage_dir else JOB_DATA_DIR
        self._storage_dir.mkdir(parents=True, exist_ok=True)
        self._cache_limit = cache_limit if cache_limit is not None else _env_int("JOB_MANAGER_CACHE_LIMIT", 200, 25)

        self._jobs: Dict[str, Job] = {}
        self._known_job_ids: set[str] = set()
        self._lock = RLock()

        self._index_jobs()

    def _index_jobs(self) -> None:
        with self._lock:
            self._known_job_ids = {job_file.stem for job_file in self._storage_dir.glob("*.json")}

    def _job_file(self, job_id: str) -> Path:
        return self._storage_dir / f"{job_id}.json"

    def _load_job_from_disk(self, job_id: str) -> Optional[Job]:
        job_file = self._job_file(job_id)
        if not job_file.exists():
            return None
        try:
            with open(job_file, "r", encoding="utf-8") as f:
                data = json.load(f)
            return Job.from_dict(data)
        except (OSError, ValueError, KeyError) as e:
            logger.error("Failed to load job record", extra={"job_id": job_id, "error": str(e)})
            return None

    def _prune_cache(self) -> None:
        if len(self._jobs) <= self._cache_limit:
            return

        evictable_ids = [
            job_id
            for job_id, job in self._jobs.items()
            if job.status not in ACTIVE_STATUSES
        ]
        evictable_ids.sort(key=lambda j: self._jobs[j].updated_at)

        while len(self._jobs) > self._cache_limit and evictable_ids:
            self._jobs.pop(evictable_ids.pop(0), None)

    def _cache_job(self, job: Job) -> None:
        self._jobs[job.id] = job
        self._prune_cache()

    def _save_job(self, job: Job) -> None:
        job_file = self._job_file(job.id)
        try:
            with open(job_file, "w", encoding="utf-8") as f:
                json.dump(job.to_dict(), f, indent=2, ensure_ascii=False)
            self._known_job_ids.add(job.id)
        except OSError as e:
            logger.error("Failed to save job record", extra={"job_id": job.id, "error": str(e)})

    def get_interrupted_jobs(self) -> List[Job]:
        """Get jobs that were in progress when the server stopped."""
        with self._lock:
            interrupted: List[Job] = []
            for job_id in list(self._known_job_ids):
                job = self._jobs.get(job_id) or self._load_job_from_disk(job_id)
                if job and job.status in ACTIVE_STATUSES:
                    interrupted.append(job)
                    self._cache_job(job)
            return interrupted

    def mark_interrupted_jobs(self) -> int:
        """Mark every job left running by a previous process as interrupted."""
        interrupted = self.get_interrupted_jobs()
        for job in interrupted:
            job.status = JobStatus.INTERRUPTED
            job.message = "Job was interrupted by server restart"
            job.updated_at = datetime.now().isoformat()
            with self._lock:
                self._save_job(job)
                self._cache_job(job)
        if interrupted:
            logger.warning("Marked interrupted jobs", extra={"count": len(interrupted)})
        return len(interrupted)

    def create_job(self, job_id: str, total_items: int = 0) -> Job:
        with self._lock:
            job = Job(id=job_id, total_items=total_items)
            self._save_job(job)
            self._cache_job(job)
            return job

    def get_job(self, job_id: str) -> Optional[Job]:
        with self._lock:
            cached = self._jobs.get(job_id)
            if cached:
                return cached

            if job_id not in self._known_job_ids:
                return None

            job = self._load_job_from_disk(job_id)
            if not job:
                self._known_job_ids.discard(job_id)
                return None

            self._cache_job(job)
            return job

    def update_job(
        self,
        job_id: str,
        status: Optional[JobStatus] = None,
        progress: Optional[float] = None,
        message: Optional[str] = None,
        result: Optional[List[Any]] = None,
        error: Optional[str] = None,
    ) -> None:
        """Update a job record; unknown ids are ignored."""
        with self._lock:
            job = self.get_job(job_id)
            if not job:
                return

            if status is not None:
                job.status = status
            if progress is not None:
                job.progress = progress
            if message is not None:
                job.message = message
            if result is not None:
                job.result = result
            if error is not None:
                job.error = error

            job.updated_at = datetime.now().isoformat()
            self._save_job(job)
            self._cache_job(job)

    def delete_job(self, job_id: str) -> Optional[Dict[str, Any]]:
        """Delete a job and return its data."""
        with self._lock:
            job = self.get_job(job_id)
            job_data = job.to_dict() if job else None

            self._jobs.pop(job_id, None)
            self._known_job_ids.discard(job_id)

            job_file = self._job_file(job_id)
            if job_file.exists():
                job_file.unlink()

            return job_data


_job_manager_instance: Optional[JobManager] = None


def get_job_manager() -> JobManager:
    """Get the shared JobManager instance (singleton pattern)."""
    global _job_manager_instance
    if _job_manager_instance is None:
        _job_manager_instance = JobManager()
    return _job_manager_instance
