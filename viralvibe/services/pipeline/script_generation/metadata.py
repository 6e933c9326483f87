"""
Metadata generation - script, captions and social copy for one run.

The model response is parsed through the JSON sanitizer, then validated into
a ``ScriptMetadata``. Caption segments with unusable timing are dropped; a
package without any usable caption or without a visual prompt is rejected.
"""

from typing import Any, Dict, List, Optional

from viralvibe.config.pipeline import RetryPolicy
from viralvibe.core.exceptions import MalformedResponseError
from viralvibe.core.logging import get_logger
from viralvibe.models.pipeline import (
    CaptionSegment,
    GenerationRequest,
    ScriptBeat,
    ScriptMetadata,
    ViralCaption,
)
from viralvibe.services.infrastructure.parsing import assign_segment_ids, parse_json_payload
from viralvibe.services.infrastructure.resilience import call_with_retry

from .prompts import METADATA_SYSTEM_INSTRUCTION, build_metadata_prompt

logger = get_logger(__name__, component="metadata_generator")

BEAT_TYPES = ("HOOK", "BODY", "PAYOFF", "CTA")


def _as_seconds(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _valid_span(start: Optional[float], end: Optional[float]) -> bool:
    return start is not None and end is not None and 0 <= start < end


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


def _parse_segments(entries: Any) -> List[CaptionSegment]:
    segments: List[CaptionSegment] = []
    dropped = 0
    for entry in entries if isinstance(entries, list) else []:
        if not isinstance(entry, dict):
            dropped += 1
            continue
        text = entry.get("text")
        start = _as_seconds(entry.get("start"))
        end = _as_seconds(entry.get("end"))
        if not isinstance(text, str) or not text.strip() or not _valid_span(start, end):
            dropped += 1
            continue
        segments.append(CaptionSegment(
            id=str(entry.get("id", len(segments))),
            text=text.strip(),
            start_seconds=start,
            end_seconds=end,
        ))
    if dropped:
        logger.warning("Dropped invalid caption segments", extra={"dropped": dropped, "kept": len(segments)})
    return segments


def _parse_beats(entries: Any) -> List[ScriptBeat]:
    beats: List[ScriptBeat] = []
    for entry in entries if isinstance(entries, list) else []:
        if not isinstance(entry, dict):
            continue
        start = _as_seconds(entry.get("start"))
        end = _as_seconds(entry.get("end"))
        if not _valid_span(start, end):
            continue
        beat_type = str(entry.get("type", "")).strip().upper()
        if beat_type not in BEAT_TYPES:
            beat_type = "BODY"
        beats.append(ScriptBeat(
            id=str(entry.get("id", len(beats))),
            start_seconds=start,
            end_seconds=end,
            beat_type=beat_type,
            description=str(entry.get("description", "")).strip(),
        ))
    return beats


def _parse_viral_captions(entries: Any) -> List[ViralCaption]:
    captions: List[ViralCaption] = []
    for entry in entries if isinstance(entries, list) else []:
        if isinstance(entry, dict) and isinstance(entry.get("text"), str) and entry["text"].strip():
            captions.append(ViralCaption(style=str(entry.get("style", "")).strip(), text=entry["text"].strip()))
    return captions


def build_script_metadata(payload: Any, raw_text: Optional[str] = None) -> ScriptMetadata:
    """Validate a parsed metadata payload.

    Raises:
        MalformedResponseError: missing visual prompt or no usable captions.
    """
    if not isinstance(payload, dict):
        raise MalformedResponseError("metadata response is not a JSON object", raw_text=raw_text)

    visual_prompt = payload.get("visualPrompt")
    if not isinstance(visual_prompt, str) or not visual_prompt.strip():
        raise MalformedResponseError("metadata response has no visualPrompt", raw_text=raw_text)

    segments = _parse_segments(payload.get("subtitles"))
    if not segments:
        raise MalformedResponseError("metadata response has no usable subtitles", raw_text=raw_text)

    description = payload.get("description")
    return ScriptMetadata(
        titles=_string_list(payload.get("catchyTitles")),
        hashtags=_string_list(payload.get("hashtags")),
        description=description.strip() if isinstance(description, str) else "",
        caption_segments=segments,
        visual_motion_prompt=visual_prompt.strip(),
        viral_captions=_parse_viral_captions(payload.get("viralCaptions")),
        script_beats=_parse_beats(payload.get("scriptBeats")),
    )


class MetadataGenerator:
    """Requests and validates the script/metadata package for one run."""

    def __init__(self, client, retry_policy: RetryPolicy, on_wait=None, sleep=None):
        self.client = client
        self.retry_policy = retry_policy
        self.on_wait = on_wait
        self.sleep = sleep

    async def generate(self, request: GenerationRequest, duration: Optional[int] = None) -> ScriptMetadata:
        prompt = build_metadata_prompt(
            topic=request.topic,
            style=request.template_style,
            duration=duration or request.target_duration_seconds,
            instructions=request.instructions,
        )
        raw_text = await call_with_retry(
            lambda: self.client.generate_text(
                prompt,
                request.source_image,
                request.image_mime_type,
                system_instruction=METADATA_SYSTEM_INSTRUCTION,
            ),
            self.retry_policy,
            on_wait=self.on_wait,
            sleep=self.sleep,
            label="metadata generation",
        )
        payload = assign_segment_ids(parse_json_payload(raw_text))
        metadata = build_script_metadata(payload, raw_text)
        logger.info(
            "Metadata package ready",
            extra={
                "captions": len(metadata.caption_segments),
                "beats": len(metadata.script_beats),
                "titles": len(metadata.titles),
            },
        )
        return metadata
