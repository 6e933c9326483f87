"""
Job management routes.

Status polling, cancellation and re-export of the artifacts a finished
batch saved under ``OUTPUT_DIR/<job_id>/<item index>/``.
"""

import asyncio

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import PlainTextResponse

from ..config import OUTPUT_DIR
from ..core import ExportFailureError, get_logger, validate_job_id, validate_path_within_directory
from ..models import ExportMode, ExportRequest, JobStatus
from ..services.infrastructure.orchestration import get_batch_registry, get_job_manager
from .export import export_response, get_export_client

router = APIRouter(tags=["jobs"])
logger = get_logger(__name__, component="jobs_route")


def _require_job(job_id: str):
    if not validate_job_id(job_id):
        raise HTTPException(status_code=400, detail="Invalid job ID format")
    job = get_job_manager().get_job(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return job


@router.get("/job/{job_id}")
async def get_job_status(job_id: str):
    """Status, progress and per-item results of a generation job"""
    return _require_job(job_id).to_dict()


@router.post("/job/{job_id}/cancel")
async def cancel_job(job_id: str):
    """Cancel a running batch; finished items keep their results."""
    job = _require_job(job_id)
    if job.status.is_terminal():
        raise HTTPException(status_code=409, detail=f"Job already {job.status.value}")

    if not get_batch_registry().cancel(job_id):
        # Nothing in flight in this process (e.g. the job predates a restart)
        get_job_manager().update_job(job_id, JobStatus.CANCELLED, message="Generation cancelled")
        return {"job_id": job_id, "status": JobStatus.CANCELLED.value}

    get_job_manager().update_job(job_id, message="Cancelling...")
    return {"job_id": job_id, "status": "cancelling"}


@router.get("/job/{job_id}/items/{index}/export")
async def export_job_item(job_id: str, index: int, mode: ExportMode = Query(ExportMode.BURN)):
    """Mux a saved item's video, voice-over and captions into one mp4."""
    _require_job(job_id)
    item_dir = OUTPUT_DIR / job_id / str(index)
    if index < 0 or not validate_path_within_directory(item_dir, OUTPUT_DIR):
        raise HTTPException(status_code=400, detail="Invalid item index")

    video_path = item_dir / "video.mp4"
    srt_path = item_dir / "captions.srt"
    audio_path = item_dir / "voiceover.wav"
    if not video_path.exists() or not srt_path.exists():
        raise HTTPException(status_code=404, detail="Item has no exportable video")

    request = ExportRequest(
        video_locator=await asyncio.to_thread(video_path.read_bytes),
        subtitle_document=srt_path.read_text(encoding="utf-8"),
        mode=mode,
        output_name=f"ViralVibe_{job_id[:8]}_{index + 1}.mp4",
        audio_payload=await asyncio.to_thread(audio_path.read_bytes) if audio_path.exists() else None,
    )
    try:
        result = await get_export_client().export(request)
    except ExportFailureError as e:
        logger.error("Item export failed", extra={"job_id": job_id, "index": index, "error": str(e)})
        return PlainTextResponse(f"Export failed: {e}", status_code=500)

    return export_response(result)
