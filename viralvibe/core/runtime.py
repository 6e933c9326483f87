"""
Runtime environment guards and dependency checks.
"""

import os
import shutil
from pathlib import Path
from typing import Dict, Iterable, List

REQUIRED_EXPORT_TOOLS = ("ffmpeg",)
OPTIONAL_TOOLS = ("ffprobe",)


def parse_bool_env(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def missing_runtime_tools(tools: Iterable[str]) -> List[str]:
    return [tool for tool in tools if shutil.which(tool) is None]


def assert_directory_writable(path: Path, *, create: bool = True) -> None:
    if create:
        path.mkdir(parents=True, exist_ok=True)
    if not path.exists() or not path.is_dir():
        raise RuntimeError(f"Required directory is missing: {path}")

    probe = path / f".write_probe_{os.getpid()}.tmp"
    try:
        with open(probe, "w", encoding="utf-8") as f:
            f.write("ok")
        probe.unlink(missing_ok=True)
    except Exception as exc:
        raise RuntimeError(f"Directory is not writable: {path}") from exc


def run_startup_runtime_checks(
    *,
    output_dir: Path,
    job_data_dir: Path,
    strict_tools: bool,
) -> Dict[str, object]:
    report: Dict[str, object] = {
        "directories": {},
        "tools": {},
        "ok": True,
    }

    for dir_name, dir_path in (("output", output_dir), ("job_data", job_data_dir)):
        assert_directory_writable(dir_path)
        report["directories"][dir_name] = {"path": str(dir_path), "writable": True}

    missing = missing_runtime_tools(REQUIRED_EXPORT_TOOLS)
    report["tools"] = {
        "required": list(REQUIRED_EXPORT_TOOLS),
        "optional": list(OPTIONAL_TOOLS),
        "missing": missing,
        "missing_optional": missing_runtime_tools(OPTIONAL_TOOLS),
    }
    if missing:
        report["ok"] = False
        if strict_tools:
            raise RuntimeError("Missing required runtime tools: " + ", ".join(missing))

    return report
