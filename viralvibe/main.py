"""
ViralVibe Backend API
FastAPI application turning a still image and a topic into a narrated,
subtitled short-form video

This is the main entry point that wires together all routes and services.
"""

import os
import shutil
import uuid
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import (
    API_DESCRIPTION,
    API_TITLE,
    API_VERSION,
    CORS_ORIGINS,
    MAX_REQUEST_BODY_BYTES,
    OUTPUT_DIR,
)
from .core import (
    OPTIONAL_TOOLS,
    REQUIRED_EXPORT_TOOLS,
    clear_context,
    get_logger,
    set_request_id,
    setup_logging,
)
from .routes import export_router, generation_router, jobs_router
from .services.infrastructure.orchestration import StartupManager

# Initialize logging
log_level = os.getenv("LOG_LEVEL", "INFO")
log_file = os.getenv("LOG_FILE")
use_json_logs = os.getenv("JSON_LOGS", "false").lower() == "true"

setup_logging(
    level=log_level,
    log_file=Path(log_file) if log_file else None,
    use_json=use_json_logs,
)

logger = get_logger(__name__, service="api")
logger.info("Starting ViralVibe Backend API", extra={
    "log_level": log_level,
    "json_logs": use_json_logs
})


@asynccontextmanager
async def lifespan(app: FastAPI):
    manager = StartupManager(app)
    await manager.run_startup()
    try:
        yield
    finally:
        await manager.run_shutdown()


# Create FastAPI app
app = FastAPI(
    title=API_TITLE,
    description=API_DESCRIPTION,
    version=API_VERSION,
    lifespan=lifespan,
)


@app.middleware("http")
async def add_request_correlation(request: Request, call_next):
    """Add correlation ID, enforce the body size limit, and attach security headers."""
    request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
    set_request_id(request_id)
    path = request.url.path

    logger.info(f"{request.method} {path}", extra={
        "method": request.method,
        "path": path,
        "client": request.client.host if request.client else "unknown",
    })

    try:
        content_length = request.headers.get("content-length")
        if content_length:
            try:
                size = int(content_length)
            except ValueError:
                return JSONResponse(status_code=400, content={"detail": "Invalid Content-Length header"})
            if size > MAX_REQUEST_BODY_BYTES:
                return JSONResponse(
                    status_code=413,
                    content={
                        "detail": f"Request body too large. Max allowed: {MAX_REQUEST_BODY_BYTES // (1024 * 1024)}MB"
                    },
                )

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "no-referrer")

        logger.info(f"Response: {response.status_code}", extra={
            "status_code": response.status_code,
            "method": request.method,
            "path": path,
        })

        return response
    finally:
        clear_context()

# CORS middleware for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition", "X-Request-ID"],
)

# Include routers
app.include_router(export_router)
app.include_router(generation_router)
app.include_router(jobs_router)


@app.get("/")
async def root():
    """Root endpoint - API info"""
    return {
        "message": "ViralVibe API - Generate narrated short-form videos",
        "version": API_VERSION
    }


@app.get("/health")
async def health_check():
    """
    Health check endpoint for container orchestration.

    Validates:
    - External tools (ffmpeg required, ffprobe optional)
    - Gemini API credentials
    - Disk space availability

    Returns 200 if healthy, 503 if any required check fails.
    """
    checks = {
        "status": "healthy",
        "checks": {}
    }

    all_healthy = True

    tools = {tool: True for tool in REQUIRED_EXPORT_TOOLS}
    tools.update({tool: False for tool in OPTIONAL_TOOLS})
    for tool_name, required in tools.items():
        path = shutil.which(tool_name)
        checks["checks"][tool_name] = {
            "available": path is not None,
            "required": required,
            "path": path,
        }
        if path is None:
            if required:
                all_healthy = False
                logger.warning(f"Health check: {tool_name} not found in PATH (REQUIRED)")
            else:
                logger.info(f"Health check: {tool_name} not found in PATH (optional)")

    gemini_key_exists = bool(os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY"))
    checks["checks"]["gemini_api_key"] = {"configured": gemini_key_exists}
    if not gemini_key_exists:
        all_healthy = False
        logger.warning("Health check: GEMINI_API_KEY not configured")

    # Warn if < 1GB available
    try:
        disk_stats = shutil.disk_usage(OUTPUT_DIR)
        free_space_gb = disk_stats.free / (1024 ** 3)
        checks["checks"]["disk_space"] = {
            "available_gb": round(free_space_gb, 2),
            "sufficient": free_space_gb > 1.0
        }
        if free_space_gb < 1.0:
            logger.warning(f"Health check: Low disk space ({free_space_gb:.2f} GB)")
    except OSError as e:
        checks["checks"]["disk_space"] = {
            "error": str(e),
            "sufficient": False
        }
        logger.error(f"Health check: Failed to check disk space: {e}")

    runtime_report = getattr(app.state, "runtime_report", None)
    if runtime_report is not None:
        checks["checks"]["runtime_startup"] = runtime_report

    if not all_healthy:
        checks["status"] = "unhealthy"
        raise HTTPException(status_code=503, detail=checks)

    return checks


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "viralvibe.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=os.getenv("RELOAD", "false").lower() == "true",
    )
