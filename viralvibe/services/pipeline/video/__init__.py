"""Video generation: operation polling and duration extension."""

from .poller import OperationPoller, OperationStatus, read_operation
from .extension import ExtensionOutcome, VideoExtender, plan_extensions, rescale_captions

__all__ = [
    "OperationPoller",
    "OperationStatus",
    "read_operation",
    "ExtensionOutcome",
    "VideoExtender",
    "plan_extensions",
    "rescale_captions",
]
