"""
Security utilities for names and identifiers coming from API callers
"""

import re
import time
from pathlib import Path
from typing import Optional

from .logging import get_logger

logger = get_logger(__name__, component="security")

_UNSAFE_NAME_CHARS = re.compile(r"[^\w.\-]+")
_JOB_ID_PATTERN = re.compile(
    r'^[a-f0-9]{8}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{12}$', re.IGNORECASE
)


def sanitize_filename(filename: Optional[str], default: Optional[str] = None) -> str:
    """
    Make a caller-supplied name safe for a Content-Disposition header and the
    file system.

    Runs of characters outside ``[A-Za-z0-9_.-]`` collapse to a single ``_``;
    path components and leading dots are dropped. An empty result falls back
    to ``default`` (or a timestamped export name).

    Example:
        >>> sanitize_filename("my clip (final).mp4")
        'my_clip_final_.mp4'
        >>> sanitize_filename("../../etc/passwd")
        'passwd'
    """
    original = filename or ""
    name = original.replace("\\", "/").rsplit("/", 1)[-1]
    name = name.replace("\x00", "")
    name = _UNSAFE_NAME_CHARS.sub("_", name)
    name = name.lstrip(".")[:255]

    if not name or name.replace(".", "").replace("_", "") == "":
        fallback = default or f"ViralVibe_Export_{int(time.time() * 1000)}.mp4"
        if original:
            logger.info("Filename replaced with default", extra={
                "original": original,
                "sanitized": fallback,
            })
        return fallback

    if name != original:
        logger.debug("Filename sanitized", extra={"original": original, "sanitized": name})

    return name


def validate_job_id(job_id: str) -> bool:
    """
    Validate job ID format (UUID) to prevent path injection through job routes.

    Example:
        >>> validate_job_id("123e4567-e89b-12d3-a456-426614174000")
        True
        >>> validate_job_id("../../etc/passwd")
        False
    """
    is_valid = bool(_JOB_ID_PATTERN.match(job_id or ""))
    if not is_valid:
        logger.warning("Invalid job ID format", extra={"job_id": job_id})
    return is_valid


def validate_path_within_directory(path: Path, allowed_directory: Path) -> bool:
    """Check that ``path`` resolves inside ``allowed_directory``."""
    try:
        path = path.resolve()
        allowed_directory = allowed_directory.resolve()
    except (OSError, RuntimeError) as e:
        logger.warning("Path resolution failed", extra={"path": str(path), "error": str(e)})
        return False

    try:
        path.relative_to(allowed_directory)
        return True
    except ValueError:
        logger.warning("Path traversal attempt detected", extra={
            "path": str(path),
            "allowed_directory": str(allowed_directory)
        })
        return False
