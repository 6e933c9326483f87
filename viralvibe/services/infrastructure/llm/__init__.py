"""LLM and media-model integrations."""

from .gemini import GeminiMediaClient

__all__ = ["GeminiMediaClient"]
