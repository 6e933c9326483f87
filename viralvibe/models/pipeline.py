"""
Domain models for one generation run.

Plain dataclasses passed between pipeline stages. API schemas live in
``generation.py`` / ``export.py``.
"""

import io
import time
import uuid
import wave
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

import numpy as np

from .status import PipelineStage


@dataclass(frozen=True)
class GenerationRequest:
    """Immutable input to one pipeline run."""
    topic: str
    template_style: str
    target_duration_seconds: Optional[int]
    voice_id: str
    source_image: bytes = field(repr=False)
    image_mime_type: str = "image/png"
    instructions: str = ""


@dataclass(frozen=True)
class CaptionSegment:
    id: str
    text: str
    start_seconds: float
    end_seconds: float

    @property
    def duration(self) -> float:
        return self.end_seconds - self.start_seconds

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "start": self.start_seconds,
            "end": self.end_seconds,
        }


@dataclass(frozen=True)
class ScriptBeat:
    id: str
    start_seconds: float
    end_seconds: float
    beat_type: str  # HOOK | BODY | PAYOFF | CTA
    description: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "start": self.start_seconds,
            "end": self.end_seconds,
            "type": self.beat_type,
            "description": self.description,
        }


@dataclass(frozen=True)
class ViralCaption:
    style: str
    text: str


@dataclass
class ScriptMetadata:
    """Script and social metadata produced once per run."""
    titles: List[str]
    hashtags: List[str]
    description: str
    caption_segments: List[CaptionSegment]
    visual_motion_prompt: str
    viral_captions: List[ViralCaption] = field(default_factory=list)
    script_beats: List[ScriptBeat] = field(default_factory=list)

    @property
    def narration_text(self) -> str:
        """Caption texts joined the way the voice-over reads them."""
        return "... ".join(segment.text for segment in self.caption_segments)

    @property
    def assumed_duration(self) -> float:
        """Span of the caption timeline as written by the model."""
        if not self.caption_segments:
            return 0.0
        return max(segment.end_seconds for segment in self.caption_segments)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "titles": list(self.titles),
            "hashtags": list(self.hashtags),
            "description": self.description,
            "visual_prompt": self.visual_motion_prompt,
            "captions": [segment.to_dict() for segment in self.caption_segments],
            "viral_captions": [{"style": c.style, "text": c.text} for c in self.viral_captions],
            "script_beats": [beat.to_dict() for beat in self.script_beats],
        }


@dataclass
class AudioAsset:
    """Decoded voice-over: signed 16-bit little-endian PCM."""
    sample_rate: int
    channel_count: int
    samples: np.ndarray = field(repr=False)

    @classmethod
    def from_pcm_bytes(cls, pcm: bytes, sample_rate: int = 24000, channel_count: int = 1) -> "AudioAsset":
        frame_bytes = 2 * channel_count
        usable = len(pcm) - (len(pcm) % frame_bytes)
        samples = np.frombuffer(pcm[:usable], dtype="<i2").copy()
        return cls(sample_rate=sample_rate, channel_count=channel_count, samples=samples)

    @property
    def frame_count(self) -> int:
        return int(self.samples.size // self.channel_count)

    @property
    def duration_seconds(self) -> float:
        if self.sample_rate <= 0:
            return 0.0
        return self.frame_count / float(self.sample_rate)

    def to_wav_bytes(self) -> bytes:
        """Encode into a playable WAV container."""
        buffer = io.BytesIO()
        with wave.open(buffer, "wb") as wf:
            wf.setnchannels(self.channel_count)
            wf.setsampwidth(2)
            wf.setframerate(self.sample_rate)
            wf.writeframes(self.samples.astype("<i2").tobytes())
        return buffer.getvalue()


@dataclass
class VideoAsset:
    """A resolved video: remote URI, optional downloaded bytes and the SDK
    reference used as input to a further extension."""
    uri: Optional[str]
    payload: Optional[bytes] = field(default=None, repr=False)
    source: Any = field(default=None, repr=False)
    stage_label: str = ""

    @property
    def locator(self) -> Union[str, bytes, None]:
        return self.payload if self.payload is not None else self.uri


@dataclass(frozen=True)
class StatusEvent:
    """One progress update for one run."""
    run_id: str
    stage: PipelineStage
    message: str
    progress: float
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "stage": self.stage.value,
            "message": self.message,
            "progress": self.progress,
            "timestamp": self.timestamp,
        }


@dataclass
class PipelineRun:
    """State of one run, mutated stage by stage."""
    request: GenerationRequest
    run_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    stage: PipelineStage = PipelineStage.PENDING
    status_message: str = ""
    metadata: Optional[ScriptMetadata] = None
    audio: Optional[AudioAsset] = None
    videos: List[VideoAsset] = field(default_factory=list)
    extensions_requested: int = 0
    extensions_completed: int = 0
    shortfall_seconds: float = 0.0
    error: Optional[str] = None

    @property
    def final_video(self) -> Optional[VideoAsset]:
        return self.videos[-1] if self.videos else None

    @property
    def has_shortfall(self) -> bool:
        return self.extensions_completed < self.extensions_requested

    def summary(self) -> Dict[str, Any]:
        final_video = self.final_video
        return {
            "run_id": self.run_id,
            "stage": self.stage.value,
            "status_message": self.status_message,
            "metadata": self.metadata.to_dict() if self.metadata else None,
            "audio_duration": self.audio.duration_seconds if self.audio else None,
            "video_uri": final_video.uri if final_video else None,
            "extensions_requested": self.extensions_requested,
            "extensions_completed": self.extensions_completed,
            "shortfall_seconds": self.shortfall_seconds,
            "error": self.error,
        }


class ExportMode(str, Enum):
    BURN = "burn"
    SOFT = "soft"


@dataclass
class ExportRequest:
    """Everything the transcoder needs for one deliverable file."""
    video_locator: Union[str, bytes] = field(repr=False)
    subtitle_document: str
    mode: ExportMode = ExportMode.BURN
    output_name: str = ""
    audio_payload: Optional[bytes] = field(default=None, repr=False)
