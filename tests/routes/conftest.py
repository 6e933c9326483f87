import uuid

import pytest
from fastapi.testclient import TestClient

from viralvibe.core.exceptions import ExportFailureError
from viralvibe.main import app
from viralvibe.services.infrastructure.orchestration import get_job_manager
from viralvibe.services.pipeline.assembly import ExportResult


class FakeExportClient:
    """Records export requests and hands back a small finished file."""

    def __init__(self, work_root, error=None):
        self.work_root = work_root
        self.error = error
        self.requests = []

    async def export(self, request):
        self.requests.append(request)
        if self.error is not None:
            raise ExportFailureError(self.error)
        work_dir = self.work_root / f"vibe_full_{len(self.requests)}"
        work_dir.mkdir(parents=True)
        path = work_dir / "output.mp4"
        path.write_bytes(b"muxed-video")
        return ExportResult(path=path, work_dir=work_dir, filename=request.output_name or "ViralVibe.mp4")


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def export_client(tmp_path):
    return FakeExportClient(tmp_path)


@pytest.fixture
def new_job():
    def create(total_items=1):
        job_id = str(uuid.uuid4())
        get_job_manager().create_job(job_id, total_items=total_items)
        return job_id
    return create
