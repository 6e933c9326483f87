"""
SubRip (SRT) subtitle building from caption segments.
"""

from typing import Any, Iterable, Mapping, Union

from viralvibe.models.pipeline import CaptionSegment

SegmentLike = Union[CaptionSegment, Mapping[str, Any]]


def format_srt_timestamp(seconds: float) -> str:
    """Format seconds as ``HH:MM:SS,mmm`` (rounded to the millisecond)."""
    total_ms = max(0, int(round(float(seconds) * 1000)))
    hours, remainder = divmod(total_ms, 3_600_000)
    minutes, remainder = divmod(remainder, 60_000)
    secs, millis = divmod(remainder, 1000)
    return f"{hours:02d}:{minutes:02d}:{secs:02d},{millis:03d}"


def _segment_fields(segment: SegmentLike):
    if isinstance(segment, CaptionSegment):
        return segment.text, segment.start_seconds, segment.end_seconds
    return (
        str(segment.get("text", "")),
        float(segment.get("start", 0.0)),
        float(segment.get("end", 0.0)),
    )


def format_srt_entry(index: int, segment: SegmentLike) -> str:
    """One SRT cue, terminated by a newline.

    Example:
        >>> format_srt_entry(2, {"text": "Hello", "start": 61.5, "end": 63.2})
        '2\\n00:01:01,500 --> 00:01:03,200\\nHello\\n'
    """
    text, start, end = _segment_fields(segment)
    return f"{index}\n{format_srt_timestamp(start)} --> {format_srt_timestamp(end)}\n{text}\n"


def build_srt(segments: Iterable[SegmentLike]) -> str:
    """Build an SRT document with 1-based cue numbers and blank-line separators."""
    return "\n".join(format_srt_entry(index, segment) for index, segment in enumerate(segments, start=1))
