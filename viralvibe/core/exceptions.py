"""
Core Exceptions
Error taxonomy shared by the generation pipeline, the retry wrapper and the
export path. Every error carries a short ``kind`` used in stage-qualified
failure messages ("video extension 2/3 failed: Timeout: ...").
"""

from typing import Optional


class ViralVibeError(Exception):
    """Base exception for all application errors."""
    kind = "Error"


class PipelineError(ViralVibeError):
    """Base exception for generation pipeline errors."""
    kind = "PipelineError"


class InfrastructureError(ViralVibeError):
    """Base exception for infrastructure errors (remote APIs, transport)."""
    kind = "InfrastructureError"


class QuotaExceededError(InfrastructureError):
    """Remote API rejected the call for rate/quota reasons. Retryable."""
    kind = "QuotaExceeded"


class TransientIOError(InfrastructureError):
    """Server-side or network failure. Retryable."""
    kind = "TransientIO"


class RetryExhaustedError(InfrastructureError):
    """The retry wrapper gave up after its attempt budget."""
    kind = "RetryExhausted"

    def __init__(self, label: str, attempts: int, last_error: BaseException):
        self.label = label
        self.attempts = attempts
        self.last_error = last_error
        cause = f"{type(last_error).__name__}: {last_error}"
        super().__init__(f"gave up on {label or 'remote call'} after {attempts} attempts ({cause})")


class MalformedResponseError(PipelineError):
    """A model response could not be recovered into valid structure."""
    kind = "MalformedResponse"

    def __init__(self, message: str, raw_text: Optional[str] = None):
        self.raw_text = raw_text
        super().__init__(message)


class OperationFailedError(PipelineError):
    """A remote long-running operation reported an explicit error."""
    kind = "OperationFailed"


class OperationTimeoutError(PipelineError):
    """The poller exceeded its wait bound."""
    kind = "Timeout"


class PipelineCancelledError(PipelineError):
    """The run was cancelled by its owner."""
    kind = "Cancelled"


class ExportFailureError(ViralVibeError):
    """The transcoder failed or its inputs were missing."""
    kind = "ExportFailure"


def error_kind(exc: BaseException) -> str:
    """Short taxonomy name for any exception."""
    return getattr(exc, "kind", None) or type(exc).__name__


class StageError(PipelineError):
    """A pipeline stage failed; the message is qualified with the stage description."""
    kind = "StageError"

    def __init__(self, stage: str, description: str, cause: BaseException):
        self.stage = stage
        self.description = description
        self.cause = cause
        self.cause_kind = error_kind(cause)
        super().__init__(f"{description} failed: {self.cause_kind}: {cause}")
