"""
Batch runner - many generation requests, bounded concurrency.

Every request gets its own client (from the factory), its own cancel token
and its own orchestrator, so one failing run never affects the others.
Launches are staggered to spread quota usage. Results come back in input
order.
"""

import asyncio
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

from viralvibe.config.pipeline import PipelineSettings, load_pipeline_settings
from viralvibe.core.exceptions import PipelineCancelledError, StageError
from viralvibe.core.logging import get_logger
from viralvibe.models.pipeline import GenerationRequest, PipelineRun, StatusEvent
from viralvibe.services.infrastructure.orchestration.cancellation import CancelToken

from .assembly.subtitles import build_srt
from .orchestrator import PipelineOrchestrator

logger = get_logger(__name__, component="batch_runner")

BatchEventCallback = Callable[[int, StatusEvent], None]


@dataclass
class BatchItemResult:
    index: int
    run: Optional[PipelineRun]
    error: Optional[str] = None
    cancelled: bool = False

    @property
    def succeeded(self) -> bool:
        return self.error is None and self.run is not None

    @property
    def status(self) -> str:
        if self.cancelled:
            return "cancelled"
        return "completed" if self.succeeded else "failed"

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"index": self.index, "status": self.status, "error": self.error}
        if self.run is not None:
            data.update(self.run.summary())
            data["error"] = self.error
            if self.run.metadata is not None:
                data["srt"] = build_srt(self.run.metadata.caption_segments)
        return data


def save_run_artifacts(run: PipelineRun, directory: Path) -> Dict[str, str]:
    """Write the final video, voice-over, captions and metadata of a run."""
    directory.mkdir(parents=True, exist_ok=True)
    saved: Dict[str, str] = {}

    final_video = run.final_video
    if final_video is not None and final_video.payload:
        path = directory / "video.mp4"
        path.write_bytes(final_video.payload)
        saved["video"] = str(path)
    if run.audio is not None:
        path = directory / "voiceover.wav"
        path.write_bytes(run.audio.to_wav_bytes())
        saved["audio"] = str(path)
    if run.metadata is not None:
        path = directory / "captions.srt"
        path.write_text(build_srt(run.metadata.caption_segments), encoding="utf-8")
        saved["srt"] = str(path)
        path = directory / "metadata.json"
        path.write_text(json.dumps(run.metadata.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")
        saved["metadata"] = str(path)
    return saved


class BatchRunner:
    def __init__(
        self,
        client_factory: Callable[[], Any],
        settings: Optional[PipelineSettings] = None,
        sleep=None,
    ):
        self.client_factory = client_factory
        self.settings = settings or load_pipeline_settings()
        self._sleep = sleep
        self._tokens: List[CancelToken] = []
        self._cancel_reason: Optional[str] = None

    def cancel(self, reason: str = "batch cancelled") -> None:
        """Cancel every item; a batch cancelled before it starts runs nothing."""
        self._cancel_reason = reason
        for token in self._tokens:
            token.cancel(reason)

    async def run(
        self,
        requests: Sequence[GenerationRequest],
        on_event: Optional[BatchEventCallback] = None,
    ) -> List[BatchItemResult]:
        batch = self.settings.batch
        semaphore = asyncio.Semaphore(batch.max_concurrency)
        self._tokens = [CancelToken() for _ in requests]
        if self._cancel_reason is not None:
            self.cancel(self._cancel_reason)

        async def run_one(index: int, request: GenerationRequest) -> BatchItemResult:
            token = self._tokens[index]
            orchestrator: Optional[PipelineOrchestrator] = None
            try:
                if index and batch.stagger_seconds:
                    await token.sleep(index * batch.stagger_seconds)
                async with semaphore:
                    token.raise_if_cancelled()
                    orchestrator = PipelineOrchestrator(
                        self.client_factory(), self.settings, cancel_token=token, sleep=self._sleep,
                    )

                    def forward(event: StatusEvent) -> None:
                        if on_event is not None:
                            on_event(index, event)

                    run = await orchestrator.execute(request, on_event=forward)
                    return BatchItemResult(index=index, run=run)
            except PipelineCancelledError as exc:
                run = orchestrator.current_run if orchestrator else None
                return BatchItemResult(index=index, run=run, error=str(exc), cancelled=True)
            except StageError as exc:
                return BatchItemResult(index=index, run=orchestrator.current_run, error=str(exc))
            except Exception as exc:
                logger.error("Batch item crashed", exc_info=True, extra={"index": index})
                return BatchItemResult(index=index, run=None, error=f"{type(exc).__name__}: {exc}")

        logger.info(
            "Starting batch",
            extra={"items": len(requests), "max_concurrency": batch.max_concurrency},
        )
        results = await asyncio.gather(*(run_one(i, r) for i, r in enumerate(requests)))
        succeeded = sum(1 for result in results if result.succeeded)
        logger.info("Batch finished", extra={"items": len(results), "succeeded": succeeded})
        return list(results)
