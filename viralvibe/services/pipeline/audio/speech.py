"""
Speech synthesis - narration voice-over via Gemini TTS.

The whole caption track is synthesized in a single call (segment texts joined
with "... "); the resulting 24 kHz mono 16-bit PCM is decoded into an
``AudioAsset`` whose duration drives caption re-timing.
"""

import base64
import binascii
from typing import Any

from viralvibe.config.models import DEFAULT_TTS_VOICE, TTS_VOICES
from viralvibe.config.pipeline import AudioSettings, RetryPolicy
from viralvibe.core.exceptions import MalformedResponseError
from viralvibe.core.logging import get_logger
from viralvibe.models.pipeline import AudioAsset, ScriptMetadata
from viralvibe.services.infrastructure.resilience import call_with_retry

logger = get_logger(__name__, component="speech")


def decode_pcm_payload(payload: Any, settings: AudioSettings) -> AudioAsset:
    """Turn an inline audio payload into an ``AudioAsset``.

    Text payloads are base64-decoded, bytes are used as-is. A trailing
    partial frame is discarded.
    """
    if isinstance(payload, str):
        try:
            pcm = base64.b64decode(payload, validate=False)
        except (binascii.Error, ValueError) as exc:
            raise MalformedResponseError(f"audio payload is not valid base64: {exc}")
    elif isinstance(payload, (bytes, bytearray, memoryview)):
        pcm = bytes(payload)
    else:
        raise MalformedResponseError("audio payload is missing")

    if not pcm:
        raise MalformedResponseError("audio payload is empty")

    asset = AudioAsset.from_pcm_bytes(pcm, settings.sample_rate, settings.channel_count)
    if asset.frame_count == 0:
        raise MalformedResponseError("audio payload holds no complete sample")
    return asset


def resolve_voice(voice_id: str) -> str:
    if voice_id in TTS_VOICES:
        return voice_id
    logger.warning(f"Unknown voice '{voice_id}', falling back to {DEFAULT_TTS_VOICE}")
    return DEFAULT_TTS_VOICE


class SpeechSynthesizer:
    def __init__(self, client, retry_policy: RetryPolicy, settings: AudioSettings, on_wait=None, sleep=None):
        self.client = client
        self.retry_policy = retry_policy
        self.settings = settings
        self.on_wait = on_wait
        self.sleep = sleep

    async def synthesize(self, metadata: ScriptMetadata, voice_id: str) -> AudioAsset:
        text = metadata.narration_text
        if not text.strip():
            raise MalformedResponseError("nothing to narrate")
        voice = resolve_voice(voice_id)

        payload = await call_with_retry(
            lambda: self.client.synthesize_speech(text, voice),
            self.retry_policy,
            on_wait=self.on_wait,
            sleep=self.sleep,
            label="speech synthesis",
        )
        audio = decode_pcm_payload(payload, self.settings)
        logger.info(
            f"Voice-over ready: {audio.duration_seconds:.2f}s",
            extra={"voice": voice, "characters": len(text)},
        )
        return audio
