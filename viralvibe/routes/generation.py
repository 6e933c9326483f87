"""
Short-form video generation routes
"""

import asyncio
import uuid
from pathlib import Path
from typing import Callable, Dict, List, Sequence, Tuple

from fastapi import APIRouter, BackgroundTasks, HTTPException

from ..config import ALLOWED_IMAGE_MIME_TYPES, OUTPUT_DIR, TTS_VOICES, load_pipeline_settings
from ..core import get_logger
from ..models import (
    GenerationRequest,
    GenerationRequestSchema,
    GenerationResponse,
    JobStatus,
    SourceImage,
    StatusEvent,
    VoiceInfo,
)
from ..services.infrastructure.llm import GeminiMediaClient
from ..services.infrastructure.orchestration import get_batch_registry, get_job_manager
from ..services.pipeline import BatchItemResult, BatchRunner, save_run_artifacts
from .export import decode_base64_payload

router = APIRouter(tags=["generation"])
logger = get_logger(__name__, component="generation_route")

# One client per run; tests replace this factory
client_factory: Callable[[], GeminiMediaClient] = GeminiMediaClient


def decode_source_image(image: SourceImage) -> Tuple[bytes, str]:
    """Decode one uploaded image, taking the MIME type from a data URL when present."""
    mime_type = image.mime_type
    data = image.data.strip()
    if data.startswith("data:"):
        header, _, _ = data.partition(",")
        declared = header[len("data:"):].split(";", 1)[0]
        if declared:
            mime_type = declared

    if mime_type not in ALLOWED_IMAGE_MIME_TYPES:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported image type '{mime_type}'. Allowed: {', '.join(ALLOWED_IMAGE_MIME_TYPES)}",
        )
    try:
        payload = decode_base64_payload(data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid image data: {e}")
    if not payload:
        raise HTTPException(status_code=400, detail="Image data is empty")
    return payload, mime_type


def build_generation_requests(request: GenerationRequestSchema) -> List[GenerationRequest]:
    requests = []
    for image in request.images:
        image_bytes, mime_type = decode_source_image(image)
        requests.append(GenerationRequest(
            topic=request.topic,
            template_style=request.template_style,
            target_duration_seconds=request.target_duration_seconds,
            voice_id=request.voice_id,
            source_image=image_bytes,
            image_mime_type=mime_type,
            instructions=image.instructions,
        ))
    return requests


def summarize_batch(results: Sequence[BatchItemResult]) -> Tuple[JobStatus, str]:
    """Final job status and message for a finished batch."""
    total = len(results)
    succeeded = sum(1 for r in results if r.succeeded)
    cancelled = sum(1 for r in results if r.cancelled)

    if total and succeeded == total:
        return JobStatus.COMPLETED, f"Generated {total} video(s) successfully!"
    if succeeded:
        return JobStatus.PARTIAL, f"Generated {succeeded}/{total} video(s)"
    if cancelled:
        return JobStatus.CANCELLED, "Generation cancelled"
    return JobStatus.FAILED, "No videos were generated successfully"


async def run_generation_job(
    job_id: str,
    requests: Sequence[GenerationRequest],
    runner: BatchRunner,
    output_dir: Path = OUTPUT_DIR,
) -> None:
    """Run one batch and keep its job record current."""
    job_manager = get_job_manager()
    registry = get_batch_registry()
    total = len(requests)
    item_progress: Dict[int, float] = {index: 0.0 for index in range(total)}

    def on_event(index: int, event: StatusEvent) -> None:
        item_progress[index] = event.progress
        overall = sum(item_progress.values()) / max(total, 1)
        job_manager.update_job(
            job_id,
            JobStatus.RUNNING,
            round(overall, 1),
            f"[{index + 1}/{total}] {event.message}",
        )

    job = job_manager.get_job(job_id)
    if job is not None and job.status.is_terminal():
        # Cancelled (or otherwise closed) before the task got to run
        runner.cancel(f"job already {job.status.value}")
        registry.unregister(job_id)
        logger.info("Skipping generation job", extra={"job_id": job_id, "status": job.status.value})
        return

    registry.register(job_id, runner)
    try:
        job_manager.update_job(job_id, JobStatus.RUNNING, 0, f"Generating {total} video(s)...")
        results = await runner.run(requests, on_event=on_event)

        items = []
        for result in results:
            item = result.to_dict()
            if result.run is not None:
                item["files"] = await asyncio.to_thread(
                    save_run_artifacts, result.run, output_dir / job_id / str(result.index)
                )
            items.append(item)

        status, message = summarize_batch(results)
        errors = [f"item {r.index + 1}: {r.error}" for r in results if r.error]
        job_manager.update_job(
            job_id,
            status,
            100 if status in (JobStatus.COMPLETED, JobStatus.PARTIAL) else None,
            message,
            result=items,
            error="; ".join(errors) if errors else None,
        )
        logger.info("Generation job finished", extra={"job_id": job_id, "status": status.value})
    except Exception as e:
        logger.error("Generation job crashed", extra={"job_id": job_id, "error": str(e)}, exc_info=True)
        job_manager.update_job(job_id, JobStatus.FAILED, message=f"Error: {e}", error=str(e))
    finally:
        registry.unregister(job_id)


@router.post("/generate", response_model=GenerationResponse)
async def generate_videos(request: GenerationRequestSchema, background_tasks: BackgroundTasks):
    """Start one generation run per source image as a background batch."""
    requests = build_generation_requests(request)

    job_id = str(uuid.uuid4())
    job_manager = get_job_manager()
    job_manager.create_job(job_id, total_items=len(requests))

    runner = BatchRunner(lambda: client_factory(), load_pipeline_settings())
    # Registered before the task starts so an early cancel reaches the runner
    get_batch_registry().register(job_id, runner)
    background_tasks.add_task(run_generation_job, job_id, requests, runner)

    return GenerationResponse(
        job_id=job_id,
        status=JobStatus.PENDING.value,
        message="Video generation started",
        total_items=len(requests),
    )


@router.get("/voices", response_model=List[VoiceInfo])
async def list_voices():
    """Available voice-over voices"""
    return [VoiceInfo(id=voice_id, character=character) for voice_id, character in TTS_VOICES.items()]
