"""
JSON parsing for model responses.

Model output is expected to be JSON but regularly arrives wrapped in markdown
fences, surrounded by prose, with invalid escape sequences, or truncated
mid-payload. This module turns such text into a parsed value or raises
``MalformedResponseError``; it never returns a guessed default.

Repair stages, in order:
- strip markdown fences at line boundaries
- slice from the first ``{``/``[`` to the last matching closer
- direct parse
- escape repair (drop invalid backslashes)
- balance repair (close open strings and containers)
- decode from each later ``{``/``[`` when prose before the payload has brackets
"""

import json
import re
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from viralvibe.core.exceptions import MalformedResponseError
from viralvibe.core.logging import get_logger

logger = get_logger(__name__, component="json_parser")

JsonValue = Union[Dict[str, Any], List[Any]]

_FENCE_PATTERN = re.compile(r"^[ \t]*```[\w-]*|```[ \t]*$", re.MULTILINE)
_HEX_DIGITS = set("0123456789abcdefABCDEF")
_SIMPLE_ESCAPES = set('"\\/bfnrt')
_CLOSERS = {"{": "}", "[": "]"}

# Bound on how many trailing items balance repair may drop
MAX_TRIM_ATTEMPTS = 25

# Bound on how many opener positions are tried when the first one fails
MAX_OPENER_ATTEMPTS = 50


# ============================================================================
# Extraction
# ============================================================================

def strip_code_fences(text: str) -> str:
    """Remove markdown fence markers at line boundaries, keeping their content.

    Backticks inside a line (for example inside a string value) are left alone.
    """
    return _FENCE_PATTERN.sub("", text).strip()


def slice_json_candidate(text: str) -> Optional[str]:
    """Slice from the first opener to the last matching closer.

    If no closer follows the opener the payload is treated as truncated and
    the slice runs to the end of the text.
    """
    starts = [idx for idx in (text.find("{"), text.find("[")) if idx >= 0]
    if not starts:
        return None
    start = min(starts)
    end = text.rfind(_CLOSERS[text[start]])
    if end < start:
        return text[start:]
    return text[start:end + 1]


def is_likely_truncated_json(text: str) -> bool:
    """Heuristic check for truncated JSON payloads.

    Detects unterminated strings or unbalanced braces/brackets while
    respecting escape sequences.
    """
    if not text:
        return False

    in_string = False
    escape = False
    stack: List[str] = []

    for ch in text:
        if in_string:
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
        elif ch in _CLOSERS:
            stack.append(_CLOSERS[ch])
        elif ch in "}]":
            if not stack or stack[-1] != ch:
                # Mismatched closer; invalid but not necessarily truncation.
                return False
            stack.pop()

    return bool(stack) or in_string


# ============================================================================
# Repair
# ============================================================================

def fix_json_escapes(text: str) -> str:
    """Drop backslashes that do not start a valid JSON escape.

    ``\\uXXXX`` survives only with four hex digits; a dangling trailing
    backslash is removed. Valid escapes are preserved untouched.
    """
    out: List[str] = []
    i = 0
    length = len(text)
    while i < length:
        ch = text[i]
        if ch != "\\":
            out.append(ch)
            i += 1
            continue

        if i + 1 >= length:
            break

        target = text[i + 1]
        if target in _SIMPLE_ESCAPES:
            out.append(text[i:i + 2])
            i += 2
        elif target == "u" and len(text[i + 2:i + 6]) == 4 and set(text[i + 2:i + 6]) <= _HEX_DIGITS:
            out.append(text[i:i + 6])
            i += 6
        else:
            # Invalid escape target: keep the character, lose the backslash
            i += 1

    return "".join(out)


def _close(prefix: str, closers: Iterable[str]) -> str:
    body = prefix.rstrip()
    while body and body[-1] in ",:":
        body = body[:-1].rstrip()
    return body + "".join(reversed(list(closers)))


def balance_json(text: str) -> List[str]:
    """Produce completion candidates for a truncated or unbalanced payload.

    Walks the text tracking string state and a closer stack. Unmatched
    closers are dropped, an unterminated string is closed and open
    containers are closed in LIFO order. Further candidates cut the payload
    back to each earlier top-level comma so a half-written trailing item can
    be discarded.
    """
    out: List[str] = []
    stack: List[str] = []
    cut_points: List[Tuple[int, List[str]]] = []
    in_string = False
    escape = False

    for ch in text:
        if in_string:
            out.append(ch)
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
            out.append(ch)
        elif ch in _CLOSERS:
            stack.append(_CLOSERS[ch])
            out.append(ch)
        elif ch in "}]":
            if stack and stack[-1] == ch:
                stack.pop()
                out.append(ch)
            # unmatched closer dropped
        else:
            if ch == ",":
                cut_points.append((len(out), list(stack)))
            out.append(ch)

    if in_string:
        if escape:
            out.pop()
        out.append('"')

    candidates = [_close("".join(out), stack)]
    for position, open_stack in reversed(cut_points[-MAX_TRIM_ATTEMPTS:]):
        candidates.append(_close("".join(out[:position]), open_stack))
    return candidates


# ============================================================================
# Public API
# ============================================================================

def _try_loads(text: str, *, strict: bool = True) -> Tuple[bool, Any]:
    try:
        return True, json.loads(text, strict=strict)
    except (ValueError, RecursionError):
        return False, None


def _parse_candidate(candidate: str) -> Tuple[bool, Any]:
    ok, value = _try_loads(candidate)
    if ok:
        return ok, value

    escaped = fix_json_escapes(candidate)
    ok, value = _try_loads(escaped, strict=False)
    if ok:
        logger.debug("Recovered JSON after escape repair")
        return ok, value

    for completion in balance_json(escaped):
        ok, value = _try_loads(completion, strict=False)
        if ok:
            logger.warning(
                "Recovered JSON after balance repair",
                extra={"original_length": len(candidate), "repaired_length": len(completion)},
            )
            return ok, value

    return False, None


def _attempts_from(text: str) -> List[str]:
    candidate = slice_json_candidate(text)
    if candidate is None:
        return []
    attempts = [candidate]
    tail = text[text.index(candidate[0]):].rstrip()
    if tail != candidate:
        # An unbalanced slice means the last closer belongs to an inner container
        # of a truncated payload, so the full tail is the better guess
        if is_likely_truncated_json(candidate):
            attempts.insert(0, tail)
        else:
            attempts.append(tail)
    return attempts


def _parse_from(text: str) -> Tuple[bool, Any]:
    for attempt in _attempts_from(text):
        ok, value = _parse_candidate(attempt)
        if ok and isinstance(value, (dict, list)):
            return ok, value
    return False, None


def _opener_positions(text: str) -> List[int]:
    return [idx for idx, ch in enumerate(text) if ch in _CLOSERS][:MAX_OPENER_ATTEMPTS]


def _decode_at(text: str, position: int) -> Tuple[bool, Any]:
    """Decode one complete value starting at ``position``, ignoring what follows it."""
    decoder = json.JSONDecoder(strict=False)
    source = text[position:]
    for attempt in (source, fix_json_escapes(source)):
        try:
            value, _ = decoder.raw_decode(attempt)
        except (ValueError, RecursionError):
            continue
        if isinstance(value, (dict, list)):
            return True, value
    return False, None


def parse_json_payload(raw_text: Optional[str]) -> JsonValue:
    """Parse a model response into a JSON object or array.

    Raises:
        MalformedResponseError: when no repair stage yields valid JSON, or
            when the input is empty. No other exception escapes.
    """
    if raw_text is None or not str(raw_text).strip():
        raise MalformedResponseError("empty model response", raw_text=raw_text)

    text = strip_code_fences(str(raw_text))
    positions = _opener_positions(text)
    if not positions:
        raise MalformedResponseError("no JSON object or array found in model response", raw_text=raw_text)

    ok, value = _parse_from(text)
    if not ok:
        # Prose before the payload may contain its own brackets ("pack [v2]")
        for position in positions[1:]:
            ok, value = _decode_at(text, position)
            if ok:
                logger.debug("Recovered JSON from a later opener", extra={"offset": position})
                break

    if not ok:
        logger.warning(
            "Unrecoverable model response",
            extra={
                "response_length": len(text),
                "looks_truncated": is_likely_truncated_json(text[positions[0]:]),
            },
        )
        raise MalformedResponseError("model response is not valid JSON after repair", raw_text=raw_text)

    return value


def assign_segment_ids(payload: JsonValue, keys: Iterable[str] = ("subtitles", "scriptBeats")) -> JsonValue:
    """Give every entry of caption-like arrays a stable sequential string id.

    Any id the model supplied is overwritten; entries that are not objects
    are left alone.
    """
    if not isinstance(payload, dict):
        return payload
    for key in keys:
        entries = payload.get(key)
        if not isinstance(entries, list):
            continue
        for index, entry in enumerate(entries):
            if isinstance(entry, dict):
                entry["id"] = str(index)
    return payload
