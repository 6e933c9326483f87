"""
Pipeline stage and job status enumerations.

Centralized status definitions to replace magic strings throughout codebase.
"""

from enum import Enum


class PipelineStage(str, Enum):
    """Stages of one generation run, in execution order."""

    PENDING = "pending"
    METADATA = "metadata"
    AUDIO = "audio"
    VIDEO_INITIAL = "video_initial"
    VIDEO_EXTENSION = "video_extension"
    ASSET_DOWNLOAD = "asset_download"
    ASSET_READY = "asset_ready"
    FAILED = "failed"
    CANCELLED = "cancelled"

    def is_terminal(self) -> bool:
        return self in (PipelineStage.ASSET_READY, PipelineStage.FAILED, PipelineStage.CANCELLED)


# Human-readable stage descriptions used in failure messages
STAGE_DESCRIPTIONS = {
    PipelineStage.METADATA: "metadata generation",
    PipelineStage.AUDIO: "speech synthesis",
    PipelineStage.VIDEO_INITIAL: "initial video generation",
    PipelineStage.VIDEO_EXTENSION: "video extension",
    PipelineStage.ASSET_DOWNLOAD: "video download",
}

# Nominal progress reached when a stage starts
STAGE_PROGRESS = {
    PipelineStage.PENDING: 0.0,
    PipelineStage.METADATA: 5.0,
    PipelineStage.AUDIO: 20.0,
    PipelineStage.VIDEO_INITIAL: 30.0,
    PipelineStage.VIDEO_EXTENSION: 55.0,
    PipelineStage.ASSET_DOWNLOAD: 90.0,
    PipelineStage.ASSET_READY: 100.0,
}


class JobStatus(Enum):
    """Status of a batch job tracked by the JobManager."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"
    CANCELLED = "cancelled"
    INTERRUPTED = "interrupted"

    def is_terminal(self) -> bool:
        """Check if this status is a terminal state (no further progress)."""
        return self in (
            JobStatus.COMPLETED,
            JobStatus.PARTIAL,
            JobStatus.FAILED,
            JobStatus.CANCELLED,
        )


__all__ = [
    "PipelineStage",
    "STAGE_DESCRIPTIONS",
    "STAGE_PROGRESS",
    "JobStatus",
]
