"""
Tests for viralvibe.routes.jobs
"""

import pytest

from viralvibe.models import ExportMode, JobStatus
from viralvibe.routes.jobs import OUTPUT_DIR
from viralvibe.services.infrastructure.orchestration import get_batch_registry, get_job_manager

SRT = "1\n00:00:00,000 --> 00:00:01,000\nHello\n"


class FakeRunner:
    def __init__(self):
        self.reasons = []

    def cancel(self, reason="cancelled by user"):
        self.reasons.append(reason)


def test_get_job(client, new_job):
    job_id = new_job(total_items=2)
    body = client.get(f"/job/{job_id}").json()
    assert body["id"] == job_id
    assert body["status"] == "pending"
    assert body["total_items"] == 2


def test_invalid_and_unknown_job_ids(client):
    assert client.get("/job/not-a-uuid").status_code == 400
    assert client.get("/job/123e4567-e89b-12d3-a456-426614174000").status_code == 404


def test_cancel_running_batch(client, new_job):
    job_id = new_job()
    get_job_manager().update_job(job_id, JobStatus.RUNNING)
    runner = FakeRunner()
    get_batch_registry().register(job_id, runner)
    try:
        response = client.post(f"/job/{job_id}/cancel")
    finally:
        get_batch_registry().unregister(job_id)

    assert response.json() == {"job_id": job_id, "status": "cancelling"}
    assert runner.reasons == ["cancelled by user"]
    assert get_job_manager().get_job(job_id).message == "Cancelling..."


def test_cancel_without_runner_marks_cancelled(client, new_job):
    job_id = new_job()
    response = client.post(f"/job/{job_id}/cancel")
    assert response.json()["status"] == "cancelled"
    assert get_job_manager().get_job(job_id).status is JobStatus.CANCELLED


def test_cancel_finished_job_conflicts(client, new_job):
    job_id = new_job()
    get_job_manager().update_job(job_id, JobStatus.COMPLETED)
    assert client.post(f"/job/{job_id}/cancel").status_code == 409


@pytest.fixture
def saved_item(new_job):
    job_id = new_job()
    item_dir = OUTPUT_DIR / job_id / "0"
    item_dir.mkdir(parents=True)
    (item_dir / "video.mp4").write_bytes(b"raw-video")
    (item_dir / "captions.srt").write_text(SRT, encoding="utf-8")
    (item_dir / "voiceover.wav").write_bytes(b"RIFFwav")
    return job_id


def test_export_saved_item(client, monkeypatch, export_client, saved_item):
    monkeypatch.setattr("viralvibe.routes.jobs.get_export_client", lambda: export_client)

    response = client.get(f"/job/{saved_item}/items/0/export", params={"mode": "soft"})

    assert response.status_code == 200
    assert response.content == b"muxed-video"
    (request,) = export_client.requests
    assert request.video_locator == b"raw-video"
    assert request.audio_payload == b"RIFFwav"
    assert request.mode is ExportMode.SOFT
    assert request.output_name == f"ViralVibe_{saved_item[:8]}_1.mp4"


def test_export_missing_item(client, monkeypatch, export_client, saved_item):
    monkeypatch.setattr("viralvibe.routes.jobs.get_export_client", lambda: export_client)
    assert client.get(f"/job/{saved_item}/items/3/export").status_code == 404
    assert client.get(f"/job/{saved_item}/items/0/export", params={"mode": "hdr"}).status_code == 422
