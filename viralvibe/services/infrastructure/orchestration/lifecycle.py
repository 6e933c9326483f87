"""
Lifecycle management for the ViralVibe application.
Handles startup checks, interrupted-job recovery and shutdown tasks.
"""

import asyncio
import os

from fastapi import FastAPI

from viralvibe.config import JOB_DATA_DIR, OUTPUT_DIR
from viralvibe.core import get_logger, parse_bool_env, run_startup_runtime_checks

from .job_manager import get_job_manager
from .registry import get_batch_registry

logger = get_logger(__name__, service="lifecycle")

# Grace period for background batches to record their cancelled state
SHUTDOWN_GRACE_SECONDS = 2.0


class StartupManager:
    def __init__(self, app: FastAPI):
        self.app = app
        self.job_manager = get_job_manager()
        self.registry = get_batch_registry()

    async def run_startup(self) -> None:
        """Check the runtime environment and mark jobs orphaned by a previous process."""
        strict_runtime = parse_bool_env(
            os.getenv("STARTUP_STRICT_RUNTIME_CHECKS"),
            default=os.getenv("ENV", "").lower() == "production",
        )
        runtime_report = run_startup_runtime_checks(
            output_dir=OUTPUT_DIR,
            job_data_dir=JOB_DATA_DIR,
            strict_tools=strict_runtime,
        )
        self.app.state.runtime_report = runtime_report
        logger.info("Startup runtime checks complete", extra={"runtime_report": runtime_report})

        # Batches never resume: their remote operations died with the old process
        interrupted = self.job_manager.mark_interrupted_jobs()
        if interrupted:
            logger.info(f"[Startup] Marked {interrupted} job(s) as interrupted")

    async def run_shutdown(self) -> None:
        """Cancel batches that are still running."""
        cancelled = self.registry.cancel_all("server shutdown")
        if not cancelled:
            return
        logger.info("Cancelled running batches", extra={"count": cancelled})

        loop = asyncio.get_running_loop()
        deadline = loop.time() + SHUTDOWN_GRACE_SECONDS
        while self.registry.active_job_ids() and loop.time() < deadline:
            await asyncio.sleep(0.1)
