import json

import pytest

from viralvibe.config import (
    BatchSettings,
    PipelineSettings,
    PollSettings,
    RetryPolicy,
)

SAMPLE_RATE = 24000

METADATA_PAYLOAD = {
    "catchyTitles": ["Cats vs Gravity", "The Glass Never Stood a Chance"],
    "hashtags": ["#cats", "#physics"],
    "description": "Why every cat tests gravity.",
    "visualPrompt": "A ginger cat slowly nudges a glass toward the edge of a table",
    "subtitles": [
        {"text": "Ever wondered why cats do this?", "start": 0, "end": 10},
        {"text": "They are running experiments.", "start": 10, "end": 20},
    ],
    "viralCaptions": [{"style": "question", "text": "Is your cat a scientist?"}],
    "scriptBeats": [
        {"type": "hook", "start": 0, "end": 3, "description": "Glass wobbles"},
        {"type": "cta", "start": 17, "end": 20, "description": "Follow for more"},
    ],
}


def pcm_for(seconds: float) -> bytes:
    """Silent 16-bit mono PCM of the given length."""
    return b"\x00\x00" * int(SAMPLE_RATE * seconds)


def video_operation(uri: str, done: bool = True) -> dict:
    if not done:
        return {"done": False}
    return {"done": True, "response": {"generated_videos": [{"video": {"uri": uri}}]}}


class FakeMediaClient:
    """In-memory stand-in for GeminiMediaClient.

    Every submitted operation is already done, so no poll sleeps happen.
    ``fail_extensions`` holds 1-based extension numbers that raise.
    """

    def __init__(self, metadata=None, audio_seconds=18.0, fail_extensions=(), fail_metadata=None):
        self.metadata_text = json.dumps(metadata or METADATA_PAYLOAD)
        self.pcm = pcm_for(audio_seconds)
        self.fail_extensions = set(fail_extensions)
        self.fail_metadata = fail_metadata
        self.extension_inputs = []
        self.calls = []

    async def generate_text(self, prompt, image_bytes=None, mime_type="image/png", system_instruction=None):
        self.calls.append("generate_text")
        if self.fail_metadata is not None:
            raise self.fail_metadata
        return self.metadata_text

    async def synthesize_speech(self, text, voice):
        self.calls.append("synthesize_speech")
        return self.pcm

    async def submit_video(self, prompt, image_bytes, mime_type, settings):
        self.calls.append("submit_video")
        return video_operation("https://video.example/v0.mp4")

    async def submit_extension(self, prompt, video_source, settings):
        self.calls.append("submit_extension")
        self.extension_inputs.append(video_source)
        number = len(self.extension_inputs)
        if number in self.fail_extensions:
            raise RuntimeError(f"extension {number} rejected")
        return video_operation(f"https://video.example/v{number}.mp4")

    async def get_operation(self, operation):
        self.calls.append("get_operation")
        return operation

    async def download_video(self, video):
        self.calls.append("download_video")
        return f"mp4:{video['uri']}".encode()


async def no_sleep(seconds):
    return None


@pytest.fixture
def fast_settings():
    quick = RetryPolicy(
        max_attempts=3, base_delay=0.0, multiplier=1.0, jitter=0.0, max_delay=1.0, transient_delay=0.0,
    )
    return PipelineSettings(
        retry=quick,
        poll_retry=quick,
        poll=PollSettings(cold_start_seconds=0.0, interval_seconds=0.0, max_polls=3),
        batch=BatchSettings(max_concurrency=2, stagger_seconds=0.0),
    )


@pytest.fixture
def fake_client_cls():
    return FakeMediaClient


@pytest.fixture
def metadata_payload():
    return json.loads(json.dumps(METADATA_PAYLOAD))


@pytest.fixture
def pcm_seconds():
    return pcm_for


@pytest.fixture
def instant_sleep():
    return no_sleep
