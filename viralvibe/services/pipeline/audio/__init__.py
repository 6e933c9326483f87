"""Audio: voice-over synthesis and PCM decoding."""

from .speech import SpeechSynthesizer, decode_pcm_payload, resolve_voice

__all__ = ["SpeechSynthesizer", "decode_pcm_payload", "resolve_voice"]
