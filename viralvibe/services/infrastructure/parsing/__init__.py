"""
Parsing Module

Turns model responses into JSON values or typed errors.

Usage:
    from viralvibe.services.infrastructure.parsing import parse_json_payload
"""

from .json_parser import (
    parse_json_payload,
    assign_segment_ids,
    strip_code_fences,
    slice_json_candidate,
    is_likely_truncated_json,
    fix_json_escapes,
    balance_json,
)

__all__ = [
    "parse_json_payload",
    "assign_segment_ids",
    "strip_code_fences",
    "slice_json_candidate",
    "is_likely_truncated_json",
    "fix_json_escapes",
    "balance_json",
]
