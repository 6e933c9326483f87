"""
Tests for viralvibe.models.pipeline
"""

import pytest

from viralvibe.models import (
    AudioAsset,
    CaptionSegment,
    GenerationRequest,
    PipelineRun,
    PipelineStage,
    ScriptMetadata,
    StatusEvent,
    VideoAsset,
)


def _metadata():
    return ScriptMetadata(
        titles=["t"],
        hashtags=["#a"],
        description="d",
        caption_segments=[
            CaptionSegment(id="0", text="One", start_seconds=0.0, end_seconds=4.0),
            CaptionSegment(id="1", text="Two", start_seconds=4.0, end_seconds=9.5),
        ],
        visual_motion_prompt="pan",
    )


def test_metadata_narration_and_duration():
    metadata = _metadata()
    assert metadata.narration_text == "One... Two"
    assert metadata.assumed_duration == 9.5
    assert metadata.to_dict()["captions"][1] == {"id": "1", "text": "Two", "start": 4.0, "end": 9.5}


def test_audio_asset_stereo_duration():
    audio = AudioAsset.from_pcm_bytes(b"\x00\x00" * 4 * 100, sample_rate=100, channel_count=2)
    assert audio.frame_count == 200
    assert audio.duration_seconds == pytest.approx(2.0)


def test_video_locator_prefers_payload():
    assert VideoAsset(uri="https://x/v.mp4").locator == "https://x/v.mp4"
    assert VideoAsset(uri="https://x/v.mp4", payload=b"mp4").locator == b"mp4"


def test_pipeline_run_summary():
    run = PipelineRun(request=GenerationRequest(
        topic="cats", template_style="viral", target_duration_seconds=20, voice_id="Puck", source_image=b"img",
    ))
    assert run.final_video is None
    run.metadata = _metadata()
    run.videos = [VideoAsset(uri="a"), VideoAsset(uri="b")]
    run.extensions_requested = 2
    run.extensions_completed = 1

    summary = run.summary()
    assert summary["video_uri"] == "b"
    assert summary["metadata"]["titles"] == ["t"]
    assert run.has_shortfall
    assert "img" not in repr(run.request)


def test_status_event_to_dict():
    event = StatusEvent(run_id="r", stage=PipelineStage.AUDIO, message="m", progress=20.0, timestamp=1.0)
    assert event.to_dict() == {"run_id": "r", "stage": "audio", "message": "m", "progress": 20.0, "timestamp": 1.0}


def test_terminal_stages():
    assert PipelineStage.ASSET_READY.is_terminal()
    assert PipelineStage.CANCELLED.is_terminal()
    assert not PipelineStage.VIDEO_EXTENSION.is_terminal()
