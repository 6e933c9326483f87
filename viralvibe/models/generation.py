"""
API schemas for generation endpoints

Request/Response models for batch short-form video generation.
"""

from pydantic import BaseModel, Field
from typing import List, Optional


class SourceImage(BaseModel):
    """One source image and its per-asset instructions"""
    data: str  # base64 or data URL
    mime_type: str = "image/png"
    instructions: str = ""


class GenerationRequest(BaseModel):
    """Request to generate one short per source image"""
    topic: str = Field(..., min_length=1)
    template_style: str = "viral"
    target_duration_seconds: Optional[int] = None  # Defaults to VIDEO_TARGET_SECONDS
    voice_id: str = "Puck"  # Gemini TTS voice, see GET /voices
    images: List[SourceImage] = Field(..., min_length=1)


class GenerationResponse(BaseModel):
    """Response after initiating generation"""
    job_id: str
    status: str
    message: str
    total_items: int


class VoiceInfo(BaseModel):
    id: str
    character: str
