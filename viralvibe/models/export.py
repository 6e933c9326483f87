"""
API schemas for the export endpoint
"""

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from typing import Literal, Optional


class ExportPayload(BaseModel):
    """Request to mux a generated video with voice-over and subtitles"""
    model_config = ConfigDict(populate_by_name=True)

    video_locator: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("videoLocator", "rawVideoUri", "video_locator"),
    )
    audio_base64: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("audioBase64", "audio_base64"),
    )
    srt: Optional[str] = None
    mode: Literal["burn", "soft"] = "burn"
    filename: Optional[str] = None
