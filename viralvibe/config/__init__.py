"""
Application configuration and settings
"""

import os

# Load environment variables from .env file
from dotenv import load_dotenv
load_dotenv()

from .constants import (
    API_TITLE,
    API_DESCRIPTION,
    API_VERSION,
    CORS_ORIGINS,
    ALLOWED_IMAGE_MIME_TYPES,
    MAX_REQUEST_BODY_BYTES,
)
from .paths import BASE_DIR, OUTPUT_DIR, JOB_DATA_DIR
from .models import (
    ModelConfig,
    PipelineModels,
    load_pipeline_models,
    TTS_VOICES,
    DEFAULT_TTS_VOICE,
)
from .pipeline import (
    RetryPolicy,
    PollSettings,
    VideoSettings,
    AudioSettings,
    ExportSettings,
    BatchSettings,
    PipelineSettings,
    ExtensionFailurePolicy,
    load_pipeline_settings,
)

# Gemini API key (Gemini API backend) or Vertex AI project
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY")

__all__ = [
    "API_TITLE",
    "API_DESCRIPTION",
    "API_VERSION",
    "CORS_ORIGINS",
    "ALLOWED_IMAGE_MIME_TYPES",
    "MAX_REQUEST_BODY_BYTES",
    "BASE_DIR",
    "OUTPUT_DIR",
    "JOB_DATA_DIR",
    "ModelConfig",
    "PipelineModels",
    "load_pipeline_models",
    "TTS_VOICES",
    "DEFAULT_TTS_VOICE",
    "RetryPolicy",
    "PollSettings",
    "VideoSettings",
    "AudioSettings",
    "ExportSettings",
    "BatchSettings",
    "PipelineSettings",
    "ExtensionFailurePolicy",
    "load_pipeline_settings",
    "GEMINI_API_KEY",
]
