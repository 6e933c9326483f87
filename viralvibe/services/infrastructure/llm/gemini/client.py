"""
Gemini media client - script, speech and video calls through google-genai

One instance per pipeline run. The google-genai SDK is synchronous, so every
call runs in a worker thread via ``asyncio.to_thread`` to keep the event loop
free. No retry logic lives here; callers wrap each method with
``call_with_retry``.
"""

import asyncio
import os
from typing import Any, Optional

from google import genai
from google.genai import types

from viralvibe.config.models import PipelineModels, load_pipeline_models
from viralvibe.config.pipeline import VideoSettings
from viralvibe.core.exceptions import MalformedResponseError
from viralvibe.core.logging import get_logger

logger = get_logger(__name__, component="gemini_client")


class GeminiMediaClient:
    """
    Thin async facade over ``genai.Client`` for the three generation models.

    Environment Variables:
        GEMINI_API_KEY (or API_KEY): API key for the Gemini API

    Usage:
        client = GeminiMediaClient()
        text = await client.generate_text(prompt, image_bytes, "image/png")
        operation = await client.submit_video(prompt, image_bytes, "image/png", settings.video)
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        models: Optional[PipelineModels] = None,
        backend: Any = None,
    ):
        self.models = models or load_pipeline_models()
        if backend is not None:
            self.backend = backend
            return

        api_key = api_key or os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY")
        if not api_key:
            raise ValueError("GEMINI_API_KEY environment variable is required")
        self.backend = genai.Client(api_key=api_key)

    # ----- script / metadata -----

    async def generate_text(
        self,
        prompt: str,
        image_bytes: Optional[bytes] = None,
        mime_type: str = "image/png",
        system_instruction: Optional[str] = None,
    ) -> str:
        """Generate a JSON text response, optionally grounded on an image."""
        contents: list = []
        if image_bytes:
            contents.append(types.Part.from_bytes(data=image_bytes, mime_type=mime_type))
        contents.append(prompt)

        config = types.GenerateContentConfig(
            response_mime_type="application/json",
            system_instruction=system_instruction,
        )
        response = await asyncio.to_thread(
            self.backend.models.generate_content,
            model=self.models.script.model_name,
            contents=contents,
            config=config,
        )
        text = getattr(response, "text", None)
        if not text:
            raise MalformedResponseError("script model returned no text")
        return text

    # ----- speech -----

    async def synthesize_speech(self, text: str, voice: str) -> Any:
        """Return the raw audio payload (PCM bytes or base64 text)."""
        config = types.GenerateContentConfig(
            response_modalities=["AUDIO"],
            speech_config=types.SpeechConfig(
                voice_config=types.VoiceConfig(
                    prebuilt_voice_config=types.PrebuiltVoiceConfig(
                        voice_name=voice,
                    )
                )
            ),
        )
        response = await asyncio.to_thread(
            self.backend.models.generate_content,
            model=self.models.tts.model_name,
            contents=text,
            config=config,
        )
        try:
            inline = response.candidates[0].content.parts[0].inline_data
        except (AttributeError, IndexError, TypeError):
            raise MalformedResponseError("speech model returned no audio part")
        data = getattr(inline, "data", None) if inline is not None else None
        if not data:
            raise MalformedResponseError("speech model returned an empty audio payload")
        return data

    # ----- video -----

    async def submit_video(
        self,
        prompt: str,
        image_bytes: bytes,
        mime_type: str,
        settings: VideoSettings,
    ) -> Any:
        """Start an image-to-video generation; returns the operation handle."""
        config = types.GenerateVideosConfig(
            aspect_ratio=settings.aspect_ratio,
            resolution=settings.resolution,
            number_of_videos=1,
        )
        logger.info(
            "Submitting video generation",
            extra={"model": self.models.video.model_name, "aspect_ratio": settings.aspect_ratio},
        )
        return await asyncio.to_thread(
            self.backend.models.generate_videos,
            model=self.models.video.model_name,
            prompt=prompt,
            image=types.Image(image_bytes=image_bytes, mime_type=mime_type),
            config=config,
        )

    async def submit_extension(self, prompt: str, video_source: Any, settings: VideoSettings) -> Any:
        """Continue a previously generated video; returns the operation handle."""
        config = types.GenerateVideosConfig(
            aspect_ratio=settings.aspect_ratio,
            resolution=settings.resolution,
            number_of_videos=1,
        )
        logger.info("Submitting video extension", extra={"model": self.models.video.model_name})
        return await asyncio.to_thread(
            self.backend.models.generate_videos,
            model=self.models.video.model_name,
            prompt=prompt,
            video=video_source,
            config=config,
        )

    async def get_operation(self, operation: Any) -> Any:
        """Refresh a long-running operation."""
        return await asyncio.to_thread(self.backend.operations.get, operation)

    async def download_video(self, video: Any) -> bytes:
        """Fetch the bytes of a generated video."""
        data = await asyncio.to_thread(self.backend.files.download, file=video)
        if not data:
            data = getattr(video, "video_bytes", None)
        if not data:
            raise MalformedResponseError("video download returned no bytes")
        return data
