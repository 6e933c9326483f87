"""
Tests for viralvibe.services.pipeline.orchestrator
"""

import pytest

from viralvibe.config import ExtensionFailurePolicy, VideoSettings
from viralvibe.core.exceptions import MalformedResponseError, PipelineCancelledError, StageError
from viralvibe.models import GenerationRequest, PipelineStage
from viralvibe.services.infrastructure.orchestration import CancelToken
from viralvibe.services.pipeline.orchestrator import PipelineOrchestrator


def _request(duration=20):
    return GenerationRequest(
        topic="Why cats knock things over",
        template_style="viral",
        target_duration_seconds=duration,
        voice_id="Kore",
        source_image=b"\x89PNG",
    )


def _stages(events):
    stages = []
    for event in events:
        if not stages or stages[-1] is not event.stage:
            stages.append(event.stage)
    return stages


async def _collect(orchestrator, request):
    return [event async for event in orchestrator.run(request)]


@pytest.mark.asyncio
class TestPipelineOrchestrator:

    async def test_full_run(self, fake_client_cls, fast_settings, instant_sleep):
        client = fake_client_cls(audio_seconds=18.0)
        orchestrator = PipelineOrchestrator(client, fast_settings, sleep=instant_sleep)

        events = await _collect(orchestrator, _request())

        assert _stages(events) == [
            PipelineStage.METADATA,
            PipelineStage.AUDIO,
            PipelineStage.VIDEO_INITIAL,
            PipelineStage.VIDEO_EXTENSION,
            PipelineStage.ASSET_DOWNLOAD,
            PipelineStage.ASSET_READY,
        ]
        extension_messages = [e.message for e in events if e.stage is PipelineStage.VIDEO_EXTENSION]
        assert "Extending video 1/2..." in extension_messages
        assert "Extending video 2/2..." in extension_messages
        assert events[-1].message == "Video ready"
        assert events[-1].progress == 100.0

        run = orchestrator.current_run
        assert [(s.start_seconds, s.end_seconds) for s in run.metadata.caption_segments] == [
            pytest.approx((0.0, 9.0)),
            pytest.approx((9.0, 18.0)),
        ]
        assert run.audio.duration_seconds == pytest.approx(18.0)
        assert run.extensions_requested == 2
        assert run.extensions_completed == 2
        assert run.final_video.payload == b"mp4:https://video.example/v2.mp4"
        assert [v.uri for v in run.videos] == [
            "https://video.example/v0.mp4",
            "https://video.example/v1.mp4",
            "https://video.example/v2.mp4",
        ]
        assert {e.run_id for e in events} == {run.run_id}

    async def test_extensions_chain_previous_output(self, fake_client_cls, fast_settings, instant_sleep):
        client = fake_client_cls()
        await PipelineOrchestrator(client, fast_settings, sleep=instant_sleep).execute(_request())

        assert client.extension_inputs == [
            {"uri": "https://video.example/v0.mp4"},
            {"uri": "https://video.example/v1.mp4"},
        ]

    async def test_progress_never_decreases(self, fake_client_cls, fast_settings, instant_sleep):
        events = await _collect(PipelineOrchestrator(fake_client_cls(), fast_settings, sleep=instant_sleep), _request())
        progress = [event.progress for event in events]
        assert progress == sorted(progress)

    async def test_short_target_skips_extensions(self, fake_client_cls, fast_settings, instant_sleep):
        client = fake_client_cls(audio_seconds=6.0)
        run = await PipelineOrchestrator(client, fast_settings, sleep=instant_sleep).execute(_request(duration=6))

        assert "submit_extension" not in client.calls
        assert run.extensions_requested == 0
        assert run.final_video.payload == b"mp4:https://video.example/v0.mp4"

    async def test_missing_target_uses_default(self, fake_client_cls, fast_settings, instant_sleep):
        run = await PipelineOrchestrator(fake_client_cls(), fast_settings, sleep=instant_sleep).execute(
            _request(duration=None)
        )
        assert run.extensions_requested == 2

    async def test_extension_failure_keeps_last_good_video(self, fake_client_cls, fast_settings, instant_sleep):
        client = fake_client_cls(fail_extensions={2})
        orchestrator = PipelineOrchestrator(client, fast_settings, sleep=instant_sleep)

        events = await _collect(orchestrator, _request())

        run = orchestrator.current_run
        assert orchestrator.failure is None
        assert run.extensions_completed == 1
        assert run.shortfall_seconds == 7.0
        assert run.final_video.payload == b"mp4:https://video.example/v1.mp4"
        assert events[-1].stage is PipelineStage.ASSET_READY
        assert events[-1].message == "Video ready (1/2 extensions, 7s short of target)"

    async def test_extension_failure_policy_fail(self, fake_client_cls, fast_settings, instant_sleep):
        settings = fast_settings.with_overrides(video=VideoSettings(failure_policy=ExtensionFailurePolicy.FAIL))
        orchestrator = PipelineOrchestrator(fake_client_cls(fail_extensions={1}), settings, sleep=instant_sleep)

        with pytest.raises(StageError) as excinfo:
            await orchestrator.execute(_request())

        assert excinfo.value.stage == PipelineStage.VIDEO_EXTENSION.value
        assert str(excinfo.value).startswith("video extension 1/2 failed: RuntimeError:")

    async def test_metadata_failure_is_stage_qualified(self, fake_client_cls, fast_settings, instant_sleep):
        client = fake_client_cls(fail_metadata=MalformedResponseError("no JSON object found"))
        orchestrator = PipelineOrchestrator(client, fast_settings, sleep=instant_sleep)

        events = await _collect(orchestrator, _request())

        assert events[-1].stage is PipelineStage.FAILED
        assert events[-1].message == "metadata generation failed: MalformedResponse: no JSON object found"
        assert isinstance(orchestrator.failure, StageError)
        assert orchestrator.current_run.error == events[-1].message
        assert "synthesize_speech" not in client.calls

    async def test_cancellation_ends_with_cancelled_event(self, fake_client_cls, fast_settings, instant_sleep):
        token = CancelToken()

        class CancellingClient(fake_client_cls):
            async def synthesize_speech(self, text, voice):
                token.cancel("user pressed stop")
                return await super().synthesize_speech(text, voice)

        client = CancellingClient()
        orchestrator = PipelineOrchestrator(client, fast_settings, cancel_token=token, sleep=instant_sleep)

        events = await _collect(orchestrator, _request())

        assert events[-1].stage is PipelineStage.CANCELLED
        assert isinstance(orchestrator.failure, PipelineCancelledError)
        assert "submit_video" not in client.calls

    async def test_execute_raises_on_cancel(self, fake_client_cls, fast_settings, instant_sleep):
        token = CancelToken()
        token.cancel()
        orchestrator = PipelineOrchestrator(fake_client_cls(), fast_settings, cancel_token=token, sleep=instant_sleep)

        with pytest.raises(PipelineCancelledError):
            await orchestrator.execute(_request())
