"""
Export routes

Mux a generated video with its voice-over and subtitle track into one
downloadable mp4. Errors come back as plain text so browser download flows
can show them directly.
"""

import base64
import binascii
from typing import Optional

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse, StreamingResponse
from starlette.background import BackgroundTask

from ..config import load_pipeline_settings
from ..core import ExportFailureError, get_logger
from ..models import ExportMode, ExportPayload, ExportRequest
from ..services.pipeline.assembly import ExportMuxClient, ExportResult

router = APIRouter(tags=["export"])
logger = get_logger(__name__, component="export_route")

_export_client: Optional[ExportMuxClient] = None


def get_export_client() -> ExportMuxClient:
    """Shared mux client, so the ffmpeg semaphore bounds every export in the process."""
    global _export_client
    if _export_client is None:
        _export_client = ExportMuxClient(load_pipeline_settings().export)
    return _export_client


def decode_base64_payload(value: str) -> bytes:
    """Decode plain base64 or a ``data:...;base64,`` URL.

    Raises:
        ValueError: the payload is not valid base64.
    """
    text = value.strip()
    if text.startswith("data:"):
        _, _, text = text.partition(",")
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"invalid base64 payload: {exc}") from exc


def export_response(result: ExportResult) -> StreamingResponse:
    """Stream a finished export; the temp directory goes away once it is sent."""
    return StreamingResponse(
        result.iter_bytes(),
        media_type=result.media_type,
        headers={
            "Content-Disposition": f'attachment; filename="{result.filename}"',
            "Content-Length": str(result.size),
        },
        background=BackgroundTask(result.cleanup),
    )


@router.post("/api/export-full")
async def export_full(payload: ExportPayload):
    """Burn or attach subtitles and mux the voice-over into the source video."""
    if not payload.video_locator or not payload.srt or not payload.srt.strip():
        return PlainTextResponse("Missing video locator or subtitle document", status_code=400)
    if not payload.video_locator.startswith(("http://", "https://")):
        return PlainTextResponse("videoLocator must be an http(s) URL", status_code=400)

    audio_payload = None
    if payload.audio_base64:
        try:
            audio_payload = decode_base64_payload(payload.audio_base64)
        except ValueError as e:
            return PlainTextResponse(f"Invalid audioBase64: {e}", status_code=400)

    request = ExportRequest(
        video_locator=payload.video_locator,
        subtitle_document=payload.srt,
        mode=ExportMode(payload.mode),
        output_name=payload.filename or "",
        audio_payload=audio_payload,
    )

    try:
        result = await get_export_client().export(request)
    except ExportFailureError as e:
        logger.error("Export failed", extra={"error": str(e), "mode": payload.mode})
        return PlainTextResponse(f"Export failed: {e}", status_code=500)

    logger.info("Export ready", extra={"filename": result.filename, "bytes": result.size})
    return export_response(result)
