"""
Pipeline runtime settings

Retry/backoff policies, polling bounds, extension planning and export limits.
Every value can be overridden through the environment; malformed values fall
back to the default and every value is clamped to a sane minimum.
"""

import os
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional


def _env_int(name: str, default: int, minimum: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return max(int(raw), minimum)
    except (TypeError, ValueError):
        return default


def _env_float(name: str, default: float, minimum: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return max(float(raw), minimum)
    except (TypeError, ValueError):
        return default


def _env_str(name: str, default: str) -> str:
    raw = os.getenv(name)
    return raw.strip() if raw and raw.strip() else default


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff policy for one class of remote calls.

    Quota failures wait ``base_delay * multiplier ** attempt`` plus up to
    ``jitter`` seconds, capped at ``max_delay``. Transient failures wait the
    fixed ``transient_delay``.
    """
    max_attempts: int = 6
    base_delay: float = 20.0
    multiplier: float = 1.8
    jitter: float = 3.0
    max_delay: float = 300.0
    transient_delay: float = 5.0

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0 or self.jitter < 0 or self.transient_delay < 0:
            raise ValueError("delays must be non-negative")
        if self.multiplier <= 0:
            raise ValueError("multiplier must be positive")


@dataclass(frozen=True)
class PollSettings:
    """Bounds for the long-running operation poller."""
    cold_start_seconds: float = 20.0
    interval_seconds: float = 12.0
    max_polls: int = 60
    final_check_timeout_seconds: float = 10.0

    @property
    def max_wait_seconds(self) -> float:
        return self.cold_start_seconds + self.interval_seconds * self.max_polls


class ExtensionFailurePolicy(str, Enum):
    """What to do when one video extension cannot be completed."""
    KEEP_LAST = "keep_last"
    FAIL = "fail"


@dataclass(frozen=True)
class VideoSettings:
    aspect_ratio: str = "9:16"
    resolution: str = "720p"
    initial_increment_seconds: float = 6.0
    extension_increment_seconds: float = 7.0
    default_target_seconds: int = 20
    max_target_seconds: int = 148
    failure_policy: ExtensionFailurePolicy = ExtensionFailurePolicy.KEEP_LAST


@dataclass(frozen=True)
class AudioSettings:
    sample_rate: int = 24000
    channel_count: int = 1
    caption_rescale_tolerance_seconds: float = 0.05


@dataclass(frozen=True)
class ExportSettings:
    max_concurrency: int = field(default_factory=lambda: os.cpu_count() or 2)
    timeout_seconds: float = 600.0
    chunk_size: int = 64 * 1024
    download_api_key: Optional[str] = None
    ffmpeg_binary: str = "ffmpeg"


@dataclass(frozen=True)
class BatchSettings:
    max_concurrency: int = 2
    stagger_seconds: float = 2.0


@dataclass(frozen=True)
class PipelineSettings:
    """Everything one pipeline run needs besides its client."""
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    poll_retry: RetryPolicy = field(default_factory=lambda: RetryPolicy(
        max_attempts=5, base_delay=15.0, multiplier=1.5, jitter=2.0, max_delay=120.0, transient_delay=3.0,
    ))
    poll: PollSettings = field(default_factory=PollSettings)
    video: VideoSettings = field(default_factory=VideoSettings)
    audio: AudioSettings = field(default_factory=AudioSettings)
    export: ExportSettings = field(default_factory=ExportSettings)
    batch: BatchSettings = field(default_factory=BatchSettings)

    def with_overrides(self, **changes) -> "PipelineSettings":
        return replace(self, **changes)


def load_pipeline_settings() -> PipelineSettings:
    """Build settings from the environment."""
    retry = RetryPolicy(
        max_attempts=_env_int("RETRY_MAX_ATTEMPTS", 6, 1),
        base_delay=_env_float("RETRY_BASE_DELAY_SECONDS", 20.0, 0.0),
        multiplier=_env_float("RETRY_MULTIPLIER", 1.8, 1.0),
        jitter=_env_float("RETRY_JITTER_SECONDS", 3.0, 0.0),
        max_delay=_env_float("RETRY_MAX_DELAY_SECONDS", 300.0, 1.0),
        transient_delay=_env_float("RETRY_TRANSIENT_DELAY_SECONDS", 5.0, 0.0),
    )
    poll_retry = RetryPolicy(
        max_attempts=_env_int("POLL_RETRY_MAX_ATTEMPTS", 5, 1),
        base_delay=_env_float("POLL_RETRY_BASE_DELAY_SECONDS", 15.0, 0.0),
        multiplier=_env_float("POLL_RETRY_MULTIPLIER", 1.5, 1.0),
        jitter=_env_float("POLL_RETRY_JITTER_SECONDS", 2.0, 0.0),
        max_delay=_env_float("POLL_RETRY_MAX_DELAY_SECONDS", 120.0, 1.0),
        transient_delay=_env_float("POLL_RETRY_TRANSIENT_DELAY_SECONDS", 3.0, 0.0),
    )
    poll = PollSettings(
        cold_start_seconds=_env_float("VIDEO_POLL_COLD_START_SECONDS", 20.0, 0.0),
        interval_seconds=_env_float("VIDEO_POLL_INTERVAL_SECONDS", 12.0, 0.0),
        max_polls=_env_int("VIDEO_POLL_MAX_ATTEMPTS", 60, 1),
        final_check_timeout_seconds=_env_float("VIDEO_POLL_FINAL_CHECK_TIMEOUT_SECONDS", 10.0, 1.0),
    )

    policy_raw = _env_str("EXTENSION_FAILURE_POLICY", ExtensionFailurePolicy.KEEP_LAST.value).lower()
    try:
        failure_policy = ExtensionFailurePolicy(policy_raw)
    except ValueError:
        failure_policy = ExtensionFailurePolicy.KEEP_LAST

    video = VideoSettings(
        aspect_ratio=_env_str("VIDEO_ASPECT_RATIO", "9:16"),
        resolution=_env_str("VIDEO_RESOLUTION", "720p"),
        initial_increment_seconds=_env_float("VIDEO_INITIAL_SECONDS", 6.0, 1.0),
        extension_increment_seconds=_env_float("VIDEO_EXTENSION_SECONDS", 7.0, 1.0),
        default_target_seconds=_env_int("VIDEO_TARGET_SECONDS", 20, 1),
        max_target_seconds=_env_int("VIDEO_MAX_TARGET_SECONDS", 148, 1),
        failure_policy=failure_policy,
    )
    export = ExportSettings(
        max_concurrency=_env_int("EXPORT_MAX_CONCURRENCY", os.cpu_count() or 2, 1),
        timeout_seconds=_env_float("EXPORT_TIMEOUT_SECONDS", 600.0, 10.0),
        download_api_key=os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY"),
        ffmpeg_binary=_env_str("FFMPEG_BINARY", "ffmpeg"),
    )
    batch = BatchSettings(
        max_concurrency=_env_int("BATCH_MAX_CONCURRENCY", 2, 1),
        stagger_seconds=_env_float("BATCH_STAGGER_SECONDS", 2.0, 0.0),
    )
    return PipelineSettings(
        retry=retry,
        poll_retry=poll_retry,
        poll=poll,
        video=video,
        export=export,
        batch=batch,
    )
