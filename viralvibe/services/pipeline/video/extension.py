"""
Duration extension - chain follow-up video generations up to a target length.

Each generation produces a fixed increment, so the number of extensions is
planned up front. Every extension takes the previously resolved video (never
the source image) as input. When an extension fails after retries the last
good video is kept and the shortfall is reported, unless the failure policy
says otherwise.
"""

import asyncio
import math
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, Sequence

from viralvibe.config.pipeline import ExtensionFailurePolicy, RetryPolicy, VideoSettings
from viralvibe.core.exceptions import PipelineCancelledError, StageError, error_kind
from viralvibe.core.logging import get_logger
from viralvibe.models.pipeline import CaptionSegment, VideoAsset
from viralvibe.models.status import STAGE_DESCRIPTIONS, PipelineStage
from viralvibe.services.infrastructure.resilience import call_with_retry

from .poller import OperationPoller

logger = get_logger(__name__, component="video_extension")


def plan_extensions(
    target_seconds: float,
    increment_seconds: float,
    initial_increment_seconds: float,
) -> int:
    """Number of extensions needed to reach ``target_seconds``.

    Example:
        >>> plan_extensions(20, 7, initial_increment_seconds=6)
        2
        >>> plan_extensions(6, 7, initial_increment_seconds=6)
        0
    """
    if increment_seconds <= 0:
        raise ValueError("increment_seconds must be positive")
    remaining = target_seconds - initial_increment_seconds
    if remaining <= 0:
        return 0
    # Rounding first keeps float noise (13.000000001 / 7) from adding an extension
    return max(0, math.ceil(round(remaining / increment_seconds, 6)))


def rescale_captions(
    segments: Sequence[CaptionSegment],
    actual_duration: float,
    tolerance: float = 0.05,
) -> List[CaptionSegment]:
    """Stretch the caption timeline to the synthesized audio length.

    The assumed duration is the latest segment end. Segments are returned
    unchanged when it is within ``tolerance`` seconds of ``actual_duration``.
    """
    segments = list(segments)
    if not segments or actual_duration <= 0:
        return segments

    assumed = max(segment.end_seconds for segment in segments)
    if assumed <= 0 or abs(assumed - actual_duration) <= tolerance:
        return segments

    factor = actual_duration / assumed
    logger.info(
        "Rescaling captions to audio duration",
        extra={"assumed_seconds": assumed, "actual_seconds": actual_duration, "factor": round(factor, 4)},
    )
    return [
        CaptionSegment(
            id=segment.id,
            text=segment.text,
            start_seconds=segment.start_seconds * factor,
            end_seconds=segment.end_seconds * factor,
        )
        for segment in segments
    ]


@dataclass
class ExtensionOutcome:
    video: VideoAsset
    requested: int
    completed: int
    shortfall_seconds: float = 0.0
    errors: List[str] = field(default_factory=list)
    history: List[VideoAsset] = field(default_factory=list)

    @property
    def has_shortfall(self) -> bool:
        return self.completed < self.requested


class VideoExtender:
    """Issues and polls extension requests one after another."""

    def __init__(
        self,
        client,
        poller: OperationPoller,
        settings: VideoSettings,
        retry_policy: RetryPolicy,
        on_progress: Optional[Callable[[int, int], None]] = None,
        on_wait: Optional[Callable[[str], None]] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        self.client = client
        self.poller = poller
        self.settings = settings
        self.retry_policy = retry_policy
        self.on_progress = on_progress
        self.on_wait = on_wait
        self.sleep = sleep

    async def _extend_once(self, current: VideoAsset, prompt: str, label: str) -> VideoAsset:
        operation = await call_with_retry(
            lambda: self.client.submit_extension(prompt, current.source, self.settings),
            self.retry_policy,
            on_wait=self.on_wait,
            sleep=self.sleep,
            label=label,
        )
        return await self.poller.poll(operation, label)

    async def extend(self, initial: VideoAsset, count: int, prompt: str) -> ExtensionOutcome:
        current = initial
        outcome = ExtensionOutcome(video=initial, requested=count, completed=0, history=[initial])
        description = STAGE_DESCRIPTIONS[PipelineStage.VIDEO_EXTENSION]

        for index in range(1, count + 1):
            label = f"{description} {index}/{count}"
            if self.on_progress is not None:
                self.on_progress(index, count)
            try:
                current = await self._extend_once(current, prompt, label)
            except (PipelineCancelledError, asyncio.CancelledError):
                raise
            except Exception as exc:
                if self.settings.failure_policy is ExtensionFailurePolicy.FAIL:
                    raise StageError(PipelineStage.VIDEO_EXTENSION.value, label, exc) from exc

                missing = count - (index - 1)
                outcome.shortfall_seconds = missing * self.settings.extension_increment_seconds
                outcome.errors.append(f"{label} failed: {error_kind(exc)}: {exc}")
                logger.warning(
                    "Extension failed, keeping last good video",
                    extra={
                        "extension": index,
                        "requested": count,
                        "shortfall_seconds": outcome.shortfall_seconds,
                        "error": str(exc),
                    },
                )
                break

            outcome.completed = index
            outcome.video = current
            outcome.history.append(current)

        return outcome
