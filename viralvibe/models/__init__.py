"""
Data models: pipeline domain dataclasses, stage enums and API schemas
"""

from .status import PipelineStage, STAGE_DESCRIPTIONS, STAGE_PROGRESS, JobStatus
from .pipeline import (
    GenerationRequest,
    CaptionSegment,
    ScriptBeat,
    ViralCaption,
    ScriptMetadata,
    AudioAsset,
    VideoAsset,
    StatusEvent,
    PipelineRun,
    ExportMode,
    ExportRequest,
)
from .export import ExportPayload
from .generation import (
    SourceImage,
    GenerationRequest as GenerationRequestSchema,
    GenerationResponse,
    VoiceInfo,
)

__all__ = [
    "PipelineStage",
    "STAGE_DESCRIPTIONS",
    "STAGE_PROGRESS",
    "JobStatus",
    "GenerationRequest",
    "CaptionSegment",
    "ScriptBeat",
    "ViralCaption",
    "ScriptMetadata",
    "AudioAsset",
    "VideoAsset",
    "StatusEvent",
    "PipelineRun",
    "ExportMode",
    "ExportRequest",
    "ExportPayload",
    "SourceImage",
    "GenerationRequestSchema",
    "GenerationResponse",
    "VoiceInfo",
]
