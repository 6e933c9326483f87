"""Gemini client for script, speech and video generation."""

from .client import GeminiMediaClient

__all__ = ["GeminiMediaClient"]
