"""
Core Module - Cross-cutting concerns and shared infrastructure

Organization:
    - logging.py: Structured logging configuration and utilities
    - exceptions.py: Error taxonomy shared by pipeline, retry and export code
    - security.py: Filename sanitization and identifier validation
    - runtime.py: Startup checks for external tools and writable directories

Usage:
    from viralvibe.core import get_logger, sanitize_filename, StageError
"""

# Logging
from .logging import (
    setup_logging,
    get_logger,
    set_request_id,
    set_run_id,
    clear_context,
    LogTimer,
)

# Exceptions
from .exceptions import (
    ViralVibeError,
    PipelineError,
    InfrastructureError,
    QuotaExceededError,
    TransientIOError,
    RetryExhaustedError,
    MalformedResponseError,
    OperationFailedError,
    OperationTimeoutError,
    PipelineCancelledError,
    ExportFailureError,
    StageError,
    error_kind,
)

# Security
from .security import (
    sanitize_filename,
    validate_job_id,
    validate_path_within_directory,
)

# Runtime guards
from .runtime import (
    REQUIRED_EXPORT_TOOLS,
    OPTIONAL_TOOLS,
    parse_bool_env,
    missing_runtime_tools,
    assert_directory_writable,
    run_startup_runtime_checks,
)

__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    "set_request_id",
    "set_run_id",
    "clear_context",
    "LogTimer",
    # Exceptions
    "ViralVibeError",
    "PipelineError",
    "InfrastructureError",
    "QuotaExceededError",
    "TransientIOError",
    "RetryExhaustedError",
    "MalformedResponseError",
    "OperationFailedError",
    "OperationTimeoutError",
    "PipelineCancelledError",
    "ExportFailureError",
    "StageError",
    "error_kind",
    # Security
    "sanitize_filename",
    "validate_job_id",
    "validate_path_within_directory",
    # Runtime guards
    "REQUIRED_EXPORT_TOOLS",
    "OPTIONAL_TOOLS",
    "parse_bool_env",
    "missing_runtime_tools",
    "assert_directory_writable",
    "run_startup_runtime_checks",
]
