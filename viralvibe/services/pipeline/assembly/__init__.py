"""Assembly: subtitle documents and the ffmpeg export mux."""

from .subtitles import build_srt, format_srt_entry, format_srt_timestamp
from .export import (
    ExportMuxClient,
    ExportPaths,
    ExportResult,
    build_ffmpeg_command,
    export_request_from_run,
)

__all__ = [
    "build_srt",
    "format_srt_entry",
    "format_srt_timestamp",
    "ExportMuxClient",
    "ExportPaths",
    "ExportResult",
    "build_ffmpeg_command",
    "export_request_from_run",
]
