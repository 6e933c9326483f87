"""
Tests for viralvibe.core.security
"""

import pytest

from viralvibe.core.security import sanitize_filename, validate_job_id, validate_path_within_directory


@pytest.mark.parametrize("name, expected", [
    ("clip.mp4", "clip.mp4"),
    ("my clip (final).mp4", "my_clip_final_.mp4"),
    ("../../etc/passwd", "passwd"),
    ("..\\windows\\evil.mp4", "evil.mp4"),
    ("  .hidden.mp4", "_.hidden.mp4"),
])
def test_sanitize_filename(name, expected):
    assert sanitize_filename(name) == expected


@pytest.mark.parametrize("name", [None, "", "...", "///"])
def test_sanitize_filename_default(name):
    assert sanitize_filename(name, default="fallback.mp4") == "fallback.mp4"


def test_sanitize_filename_generated_default():
    name = sanitize_filename("")
    assert name.startswith("ViralVibe_Export_")
    assert name.endswith(".mp4")


def test_validate_job_id():
    assert validate_job_id("123e4567-e89b-12d3-a456-426614174000")
    assert not validate_job_id("../../etc/passwd")
    assert not validate_job_id("")


def test_validate_path_within_directory(tmp_path):
    assert validate_path_within_directory(tmp_path / "job" / "0", tmp_path)
    assert not validate_path_within_directory(tmp_path / ".." / "elsewhere", tmp_path)
