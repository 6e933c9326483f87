"""
Model Configuration for Pipeline Steps

Each remote generation step has its own model configuration so models can be
swapped per environment without touching pipeline code.

Environment overrides:
    SCRIPT_MODEL : text model producing the script/metadata package
    TTS_MODEL    : speech model producing the voice-over
    VIDEO_MODEL  : video model producing and extending the clip
"""

import os
from dataclasses import dataclass
from typing import Dict


@dataclass(frozen=True)
class ModelConfig:
    """Configuration for a single model"""
    model_name: str
    description: str = ""


DEFAULT_SCRIPT_MODEL = "gemini-3-pro-preview"
DEFAULT_TTS_MODEL = "gemini-2.5-flash-preview-tts"
DEFAULT_VIDEO_MODEL = "veo-3.1-fast-generate-preview"


@dataclass(frozen=True)
class PipelineModels:
    """Models used by each pipeline step"""
    script: ModelConfig
    tts: ModelConfig
    video: ModelConfig

    def as_dict(self) -> Dict[str, str]:
        return {
            "script": self.script.model_name,
            "tts": self.tts.model_name,
            "video": self.video.model_name,
        }


def load_pipeline_models() -> PipelineModels:
    return PipelineModels(
        script=ModelConfig(
            model_name=os.getenv("SCRIPT_MODEL", DEFAULT_SCRIPT_MODEL),
            description="Script, captions and social metadata",
        ),
        tts=ModelConfig(
            model_name=os.getenv("TTS_MODEL", DEFAULT_TTS_MODEL),
            description="Voice-over synthesis (24 kHz mono PCM)",
        ),
        video=ModelConfig(
            model_name=os.getenv("VIDEO_MODEL", DEFAULT_VIDEO_MODEL),
            description="Image-to-video generation and extension",
        ),
    )


# Gemini TTS voice catalog (name -> character)
TTS_VOICES = {
    "Puck": "Upbeat",
    "Kore": "Firm",
    "Zephyr": "Bright",
    "Charon": "Informative",
    "Fenrir": "Excitable",
    "Leda": "Youthful",
    "Aoede": "Breezy",
    "Algieba": "Smooth",
    "Achird": "Friendly",
    "Sulafat": "Warm",
}

DEFAULT_TTS_VOICE = "Puck"
