"""
Command-line batch generation.

    python -m viralvibe.cli generate cat.png dog.jpg --topic "Why cats knock things over" \
        --duration 27 --export burn --out ./shorts

Each image becomes one run. Artifacts land in ``<out>/<n>/``; with ``--export``
the muxed mp4 is written next to them.
"""

import argparse
import asyncio
import mimetypes
import os
import sys
from pathlib import Path
from typing import List, Optional

from .config import ALLOWED_IMAGE_MIME_TYPES, DEFAULT_TTS_VOICE, TTS_VOICES, load_pipeline_settings
from .core import ExportFailureError, get_logger, setup_logging
from .models import ExportMode, GenerationRequest, StatusEvent
from .services.infrastructure.llm import GeminiMediaClient
from .services.pipeline import BatchItemResult, BatchRunner, save_run_artifacts
from .services.pipeline.assembly import ExportMuxClient, export_request_from_run

logger = get_logger(__name__, component="cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="viralvibe", description="Generate narrated short-form videos")
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate = subparsers.add_parser("generate", help="Generate one short per source image")
    generate.add_argument("images", nargs="+", type=Path, help="Source images (png, jpeg, webp)")
    generate.add_argument("--topic", required=True, help="What the short is about")
    generate.add_argument("--style", default="viral", help="Template style passed to the script model")
    generate.add_argument("--duration", type=int, default=None, help="Target duration in seconds")
    generate.add_argument("--voice", default=DEFAULT_TTS_VOICE, choices=sorted(TTS_VOICES), help="Voice-over voice")
    generate.add_argument("--instructions", default="", help="Extra instructions for every image")
    generate.add_argument("--export", choices=[mode.value for mode in ExportMode], default=None,
                          help="Also mux video, voice-over and subtitles into one mp4")
    generate.add_argument("--out", type=Path, default=Path("viralvibe_output"), help="Output directory")
    return parser


def load_requests(args: argparse.Namespace) -> List[GenerationRequest]:
    requests = []
    for image_path in args.images:
        mime_type = mimetypes.guess_type(image_path.name)[0] or "image/png"
        if mime_type not in ALLOWED_IMAGE_MIME_TYPES:
            raise SystemExit(f"{image_path}: unsupported image type {mime_type}")
        requests.append(GenerationRequest(
            topic=args.topic,
            template_style=args.style,
            target_duration_seconds=args.duration,
            voice_id=args.voice,
            source_image=image_path.read_bytes(),
            image_mime_type=mime_type,
            instructions=args.instructions,
        ))
    return requests


def print_event(index: int, event: StatusEvent) -> None:
    print(f"[{index + 1}] {event.progress:5.1f}%  {event.message}", flush=True)


async def export_result(result: BatchItemResult, mode: ExportMode, directory: Path) -> Optional[Path]:
    mux = ExportMuxClient(load_pipeline_settings().export)
    request = export_request_from_run(result.run, mode, output_name=f"short_{result.index + 1}.mp4")
    export = await mux.export(request)
    destination = directory / export.filename
    with open(destination, "wb") as handle:
        async for chunk in export.iter_bytes():
            handle.write(chunk)
    return destination


async def run_generate(args: argparse.Namespace) -> int:
    requests = load_requests(args)
    runner = BatchRunner(GeminiMediaClient, load_pipeline_settings())
    results = await runner.run(requests, on_event=print_event)

    failures = 0
    for result in results:
        item_dir = args.out / str(result.index + 1)
        if not result.succeeded:
            failures += 1
            print(f"[{result.index + 1}] {result.status}: {result.error}", file=sys.stderr)
            continue

        saved = save_run_artifacts(result.run, item_dir)
        print(f"[{result.index + 1}] saved {', '.join(sorted(saved))} to {item_dir}")
        if result.run.has_shortfall:
            print(f"[{result.index + 1}] {result.run.status_message}")

        if args.export:
            try:
                path = await export_result(result, ExportMode(args.export), item_dir)
                print(f"[{result.index + 1}] exported {path}")
            except ExportFailureError as e:
                failures += 1
                print(f"[{result.index + 1}] export failed: {e}", file=sys.stderr)

    return 1 if failures else 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(level=os.getenv("LOG_LEVEL", "WARNING"))

    if args.command == "generate":
        return asyncio.run(run_generate(args))
    parser.error(f"unknown command {args.command}")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
