"""
Tests for viralvibe.services.infrastructure.llm.gemini.client
"""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from viralvibe.config import VideoSettings
from viralvibe.core.exceptions import MalformedResponseError
from viralvibe.services.infrastructure.llm import GeminiMediaClient


def _audio_response(data):
    part = SimpleNamespace(inline_data=SimpleNamespace(data=data, mime_type="audio/L16;rate=24000"))
    return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=[part]))])


@pytest.fixture
def backend():
    return MagicMock()


@pytest.fixture
def client(backend):
    return GeminiMediaClient(backend=backend)


def test_requires_api_key(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("API_KEY", raising=False)
    with pytest.raises(ValueError, match="GEMINI_API_KEY"):
        GeminiMediaClient()


@pytest.mark.asyncio
class TestGeminiMediaClient:

    async def test_generate_text_sends_image_and_prompt(self, client, backend):
        backend.models.generate_content.return_value = MagicMock(text='{"ok": true}')

        text = await client.generate_text("write it", b"\x89PNG", "image/png", system_instruction="be brief")

        assert text == '{"ok": true}'
        kwargs = backend.models.generate_content.call_args.kwargs
        assert kwargs["model"] == client.models.script.model_name
        assert kwargs["contents"][-1] == "write it"
        assert len(kwargs["contents"]) == 2
        assert kwargs["config"].response_mime_type == "application/json"

    async def test_generate_text_empty_is_malformed(self, client, backend):
        backend.models.generate_content.return_value = MagicMock(text="")
        with pytest.raises(MalformedResponseError):
            await client.generate_text("write it")

    async def test_synthesize_speech_returns_inline_data(self, client, backend):
        backend.models.generate_content.return_value = _audio_response(b"\x00\x01")

        assert await client.synthesize_speech("hello", "Kore") == b"\x00\x01"
        kwargs = backend.models.generate_content.call_args.kwargs
        assert kwargs["model"] == client.models.tts.model_name
        voice = kwargs["config"].speech_config.voice_config.prebuilt_voice_config.voice_name
        assert voice == "Kore"

    async def test_synthesize_speech_without_audio(self, client, backend):
        backend.models.generate_content.return_value = SimpleNamespace(candidates=[])
        with pytest.raises(MalformedResponseError):
            await client.synthesize_speech("hello", "Kore")

    async def test_submit_video_uses_settings(self, client, backend):
        backend.models.generate_videos.return_value = "operation-1"

        operation = await client.submit_video("pan left", b"img", "image/jpeg", VideoSettings(aspect_ratio="9:16"))

        assert operation == "operation-1"
        kwargs = backend.models.generate_videos.call_args.kwargs
        assert kwargs["model"] == client.models.video.model_name
        assert kwargs["image"].mime_type == "image/jpeg"
        assert kwargs["config"].aspect_ratio == "9:16"
        assert kwargs["config"].number_of_videos == 1

    async def test_submit_extension_passes_previous_video(self, client, backend):
        previous = object()
        await client.submit_extension("keep going", previous, VideoSettings())
        assert backend.models.generate_videos.call_args.kwargs["video"] is previous

    async def test_get_operation(self, client, backend):
        backend.operations.get.return_value = "refreshed"
        assert await client.get_operation("op") == "refreshed"
        backend.operations.get.assert_called_once_with("op")

    async def test_download_falls_back_to_video_bytes(self, client, backend):
        backend.files.download.return_value = None
        video = SimpleNamespace(video_bytes=b"mp4")
        assert await client.download_video(video) == b"mp4"

    async def test_download_without_bytes_is_malformed(self, client, backend):
        backend.files.download.return_value = b""
        with pytest.raises(MalformedResponseError):
            await client.download_video(SimpleNamespace())
