"""
Pipeline Orchestrator
Sequences one generation run: metadata, voice-over, initial video, chained
extensions and the final asset download.

Each run gets its own client, its own ``PipelineRun`` state and its own
cancel token; nothing is shared between runs. Progress is published as an
ordered stream of ``StatusEvent`` objects through a single queue, so a run
only ever shows one status at a time. Retries happen in the call wrapper;
this module only decides what to call next and how to label failures.
"""

import asyncio
from typing import AsyncIterator, Awaitable, Callable, Optional, TypeVar

from viralvibe.config.pipeline import PipelineSettings, load_pipeline_settings
from viralvibe.core.exceptions import PipelineCancelledError, StageError
from viralvibe.core.logging import LogTimer, get_logger, set_run_id
from viralvibe.models.pipeline import GenerationRequest, PipelineRun, StatusEvent, VideoAsset
from viralvibe.models.status import STAGE_DESCRIPTIONS, STAGE_PROGRESS, PipelineStage
from viralvibe.services.infrastructure.orchestration.cancellation import CancelToken
from viralvibe.services.infrastructure.resilience import call_with_retry

from .audio import SpeechSynthesizer
from .script_generation import MetadataGenerator
from .video import OperationPoller, VideoExtender, plan_extensions, rescale_captions

logger = get_logger(__name__, component="pipeline_orchestrator")

T = TypeVar("T")

EXTENSION_PROMPT_SUFFIX = " Continue the same shot seamlessly, keeping subject and camera motion consistent."

_DONE = object()


class PipelineOrchestrator:
    """
    Drives one ``GenerationRequest`` through every stage.

    Usage:
        orchestrator = PipelineOrchestrator(GeminiMediaClient())
        async for event in orchestrator.run(request):
            print(event.stage, event.message)
        run = orchestrator.current_run
    """

    def __init__(
        self,
        client,
        settings: Optional[PipelineSettings] = None,
        cancel_token: Optional[CancelToken] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        self.client = client
        self.settings = settings or load_pipeline_settings()
        self.cancel_token = cancel_token or CancelToken()
        self._sleep_override = sleep
        self.current_run: Optional[PipelineRun] = None
        self.failure: Optional[BaseException] = None

    async def _sleep(self, seconds: float) -> None:
        if self._sleep_override is None:
            await self.cancel_token.sleep(seconds)
            return
        self.cancel_token.raise_if_cancelled()
        await self._sleep_override(seconds)
        self.cancel_token.raise_if_cancelled()

    # ----- public interface -----

    async def run(self, request: GenerationRequest) -> AsyncIterator[StatusEvent]:
        """Execute the pipeline, yielding status events in order.

        Failures end the stream with a ``failed`` (or ``cancelled``) event; the
        finished state is available on ``current_run``.
        """
        run = PipelineRun(request=request)
        self.current_run = run
        self.failure = None
        queue: asyncio.Queue = asyncio.Queue()

        async def drive() -> None:
            try:
                await self._run_stages(run, queue.put_nowait)
            finally:
                queue.put_nowait(_DONE)

        task = asyncio.create_task(drive())
        try:
            while True:
                event = await queue.get()
                if event is _DONE:
                    break
                yield event
            await task
        finally:
            if not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass

    async def execute(
        self,
        request: GenerationRequest,
        on_event: Optional[Callable[[StatusEvent], None]] = None,
    ) -> PipelineRun:
        """Run to completion and return the finished ``PipelineRun``.

        Raises:
            StageError: a stage failed.
            PipelineCancelledError: the run was cancelled.
        """
        async for event in self.run(request):
            if on_event is not None:
                on_event(event)
        if self.failure is not None:
            raise self.failure
        return self.current_run

    # ----- stages -----

    async def _stage(self, stage: PipelineStage, work: Awaitable[T], description: Optional[str] = None) -> T:
        try:
            return await work
        except (PipelineCancelledError, StageError):
            raise
        except Exception as exc:
            raise StageError(stage.value, description or STAGE_DESCRIPTIONS[stage], exc) from exc

    async def _run_stages(self, run: PipelineRun, emit: Callable[[StatusEvent], None]) -> None:
        request = run.request
        settings = self.settings
        set_run_id(run.run_id)

        last_progress = [0.0]

        def status(stage: PipelineStage, message: str, progress: Optional[float] = None) -> None:
            if progress is None:
                progress = STAGE_PROGRESS.get(stage, last_progress[0])
            run.stage = stage
            run.status_message = message
            last_progress[0] = progress
            emit(StatusEvent(run_id=run.run_id, stage=stage, message=message, progress=progress))

        def on_wait(text: str) -> None:
            status(run.stage, text, last_progress[0])

        poller = OperationPoller(
            self.client.get_operation,
            settings.poll,
            settings.poll_retry,
            cancel_token=self.cancel_token,
            on_status=on_wait,
            sleep=self._sleep_override,
        )

        try:
            with LogTimer(logger, f"pipeline run {run.run_id[:8]}"):
                target = self._target_seconds(request)

                # 1. Script and metadata
                status(PipelineStage.METADATA, "Writing script and viral pack...")
                generator = MetadataGenerator(self.client, settings.retry, on_wait=on_wait, sleep=self._sleep)
                metadata = await self._stage(PipelineStage.METADATA, generator.generate(request, target))
                run.metadata = metadata
                self.cancel_token.raise_if_cancelled()

                # 2. Voice-over; its real length re-times the captions
                status(PipelineStage.AUDIO, "Synthesizing voice-over...")
                synthesizer = SpeechSynthesizer(
                    self.client, settings.retry, settings.audio, on_wait=on_wait, sleep=self._sleep,
                )
                run.audio = await self._stage(PipelineStage.AUDIO, synthesizer.synthesize(metadata, request.voice_id))
                metadata.caption_segments = rescale_captions(
                    metadata.caption_segments,
                    run.audio.duration_seconds,
                    settings.audio.caption_rescale_tolerance_seconds,
                )
                self.cancel_token.raise_if_cancelled()

                # 3. Initial video
                status(PipelineStage.VIDEO_INITIAL, "Rendering initial video...")
                initial = await self._stage(PipelineStage.VIDEO_INITIAL, self._initial_video(run, poller, on_wait))
                run.videos.append(initial)

                # 4. Extensions up to the target duration
                count = plan_extensions(
                    target,
                    settings.video.extension_increment_seconds,
                    settings.video.initial_increment_seconds,
                )
                run.extensions_requested = count
                if count:
                    await self._extend(run, initial, count, poller, status, on_wait)

                # 5. Final asset
                status(PipelineStage.ASSET_DOWNLOAD, "Downloading final video...")
                final_video = run.final_video
                final_video.payload = await self._stage(
                    PipelineStage.ASSET_DOWNLOAD,
                    call_with_retry(
                        lambda: self.client.download_video(final_video.source),
                        settings.retry,
                        on_wait=on_wait,
                        sleep=self._sleep,
                        label="video download",
                    ),
                )

                message = "Video ready"
                if run.has_shortfall:
                    message = (
                        f"Video ready ({run.extensions_completed}/{run.extensions_requested} extensions, "
                        f"{run.shortfall_seconds:.0f}s short of target)"
                    )
                status(PipelineStage.ASSET_READY, message)

        except StageError as exc:
            logger.error(f"Pipeline failed: {exc}", extra={"stage": exc.stage, "cause_kind": exc.cause_kind})
            self.failure = exc
            run.error = str(exc)
            status(PipelineStage.FAILED, str(exc), last_progress[0])
        except PipelineCancelledError as exc:
            logger.info("Pipeline cancelled", extra={"stage": run.stage.value})
            self.failure = exc
            run.error = str(exc)
            status(PipelineStage.CANCELLED, "Cancelled", last_progress[0])
        except asyncio.CancelledError:
            run.stage = PipelineStage.CANCELLED
            self.cancel_token.cancel("task cancelled")
            raise
        finally:
            set_run_id(None)

    async def _initial_video(self, run: PipelineRun, poller: OperationPoller, on_wait) -> VideoAsset:
        request = run.request
        operation = await call_with_retry(
            lambda: self.client.submit_video(
                run.metadata.visual_motion_prompt,
                request.source_image,
                request.image_mime_type,
                self.settings.video,
            ),
            self.settings.retry,
            on_wait=on_wait,
            sleep=self._sleep,
            label="video submission",
        )
        return await poller.poll(operation, STAGE_DESCRIPTIONS[PipelineStage.VIDEO_INITIAL])

    async def _extend(self, run: PipelineRun, initial: VideoAsset, count: int, poller, status, on_wait) -> None:
        span = STAGE_PROGRESS[PipelineStage.ASSET_DOWNLOAD] - STAGE_PROGRESS[PipelineStage.VIDEO_EXTENSION]

        def on_progress(index: int, total: int) -> None:
            progress = STAGE_PROGRESS[PipelineStage.VIDEO_EXTENSION] + span * (index - 1) / total
            status(PipelineStage.VIDEO_EXTENSION, f"Extending video {index}/{total}...", progress)

        extender = VideoExtender(
            self.client,
            poller,
            self.settings.video,
            self.settings.retry,
            on_progress=on_progress,
            on_wait=on_wait,
            sleep=self._sleep,
        )
        prompt = run.metadata.visual_motion_prompt + EXTENSION_PROMPT_SUFFIX
        outcome = await self._stage(PipelineStage.VIDEO_EXTENSION, extender.extend(initial, count, prompt))

        run.videos = list(outcome.history)
        run.extensions_completed = outcome.completed
        run.shortfall_seconds = outcome.shortfall_seconds
        if outcome.errors:
            logger.warning("Extension shortfall", extra={"errors": outcome.errors})

    def _target_seconds(self, request: GenerationRequest) -> int:
        video = self.settings.video
        target = request.target_duration_seconds or video.default_target_seconds
        return max(1, min(int(target), video.max_target_seconds))
