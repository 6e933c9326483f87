"""
Export mux client - hands video, voice-over and subtitles to ffmpeg.

Each export gets a private temporary directory holding ``input.mp4``,
``input.wav``, ``sub.srt`` and ``output.mp4``. The directory is removed when
the result has been streamed (or closed early), and immediately on any
failure: missing inputs, download errors, a non-zero ffmpeg exit, a timeout
or cancellation. ffmpeg runs under a semaphore sized to the CPU count.
"""

import asyncio
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import AsyncIterator, List, Optional

import httpx

from viralvibe.config.pipeline import ExportSettings
from viralvibe.core.exceptions import ExportFailureError
from viralvibe.core.logging import LogTimer, get_logger
from viralvibe.core.security import sanitize_filename
from viralvibe.models.pipeline import ExportMode, ExportRequest, PipelineRun

from .subtitles import build_srt

logger = get_logger(__name__, component="export_mux")

BURN_FORCE_STYLE = (
    "Fontname=Arial,Fontsize=24,PrimaryColour=&H00FFFFFF,"
    "BorderStyle=1,Outline=2,Shadow=1,Alignment=2,MarginV=40"
)


@dataclass(frozen=True)
class ExportPaths:
    work_dir: Path
    video: Path
    audio: Path
    subtitles: Path
    output: Path

    @classmethod
    def in_directory(cls, work_dir: Path) -> "ExportPaths":
        return cls(
            work_dir=work_dir,
            video=work_dir / "input.mp4",
            audio=work_dir / "input.wav",
            subtitles=work_dir / "sub.srt",
            output=work_dir / "output.mp4",
        )


def _escape_filter_path(path: Path) -> str:
    return str(path).replace("\\", "\\\\").replace(":", "\\:").replace("'", "\\'")


def build_ffmpeg_command(
    paths: ExportPaths,
    mode: ExportMode,
    has_audio: bool,
    ffmpeg_binary: str = "ffmpeg",
) -> List[str]:
    """Build the transcoder argument list for one export.

    BURN re-encodes the video with the subtitles drawn in; SOFT copies the
    video stream and attaches the SRT as a ``mov_text`` track. With a
    voice-over the synthesized audio replaces the source audio and the output
    stops at the shorter stream.
    """
    cmd = [ffmpeg_binary, "-y", "-i", str(paths.video)]
    if has_audio:
        cmd += ["-i", str(paths.audio)]

    audio_map = ["-map", "1:a:0"] if has_audio else ["-map", "0:a?"]
    audio_codec = ["-c:a", "aac", "-b:a", "128k"] if has_audio else ["-c:a", "copy"]

    if mode is ExportMode.BURN:
        vf = f"subtitles={_escape_filter_path(paths.subtitles)}:force_style='{BURN_FORCE_STYLE}'"
        cmd += ["-vf", vf]
        cmd += ["-c:v", "libx264", "-crf", "24", "-preset", "ultrafast", "-pix_fmt", "yuv420p", "-threads", "0"]
        cmd += ["-map", "0:v:0", *audio_map, *audio_codec]
    else:
        subtitle_input = 2 if has_audio else 1
        cmd += ["-i", str(paths.subtitles)]
        cmd += ["-map", "0:v:0", *audio_map, "-map", f"{subtitle_input}:s:0"]
        cmd += ["-c:v", "copy", *audio_codec, "-c:s", "mov_text", "-metadata:s:s:0", "language=eng"]

    if has_audio:
        cmd.append("-shortest")
    cmd.append(str(paths.output))
    return cmd


@dataclass
class ExportResult:
    """A finished export on disk, streamed once then removed."""
    path: Path
    work_dir: Path
    filename: str
    chunk_size: int = 64 * 1024
    media_type: str = "video/mp4"
    _cleaned: bool = field(default=False, repr=False)

    @property
    def size(self) -> int:
        return self.path.stat().st_size

    def cleanup(self) -> None:
        """Remove the temporary directory; safe to call more than once."""
        if self._cleaned:
            return
        self._cleaned = True
        shutil.rmtree(self.work_dir, ignore_errors=True)
        logger.debug("Export workspace removed", extra={"work_dir": str(self.work_dir)})

    async def iter_bytes(self) -> AsyncIterator[bytes]:
        try:
            with open(self.path, "rb") as handle:
                while True:
                    chunk = await asyncio.to_thread(handle.read, self.chunk_size)
                    if not chunk:
                        break
                    yield chunk
        finally:
            self.cleanup()


class ExportMuxClient:
    """Runs ffmpeg exports with bounded concurrency."""

    def __init__(
        self,
        settings: Optional[ExportSettings] = None,
        temp_root: Optional[Path] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or ExportSettings()
        self.temp_root = temp_root
        self._transport = transport
        self._semaphore = asyncio.Semaphore(max(1, self.settings.max_concurrency))

    async def export(self, request: ExportRequest) -> ExportResult:
        """Mux one deliverable file.

        Raises:
            ExportFailureError: on missing inputs or any transcoder failure.
            asyncio.CancelledError: when cancelled; the child process is killed.
        """
        if not request.video_locator:
            raise ExportFailureError("missing video locator")
        if not request.subtitle_document or not request.subtitle_document.strip():
            raise ExportFailureError("missing subtitle document")

        if self.temp_root is not None:
            self.temp_root.mkdir(parents=True, exist_ok=True)
        work_dir = Path(tempfile.mkdtemp(prefix="vibe_full_", dir=self.temp_root))
        paths = ExportPaths.in_directory(work_dir)
        filename = sanitize_filename(request.output_name)

        try:
            await self._prepare_inputs(request, paths)
            cmd = build_ffmpeg_command(
                paths,
                request.mode,
                has_audio=request.audio_payload is not None,
                ffmpeg_binary=self.settings.ffmpeg_binary,
            )
            async with self._semaphore:
                with LogTimer(logger, f"ffmpeg export ({request.mode.value})"):
                    await self._run_ffmpeg(cmd)

            if not paths.output.exists() or paths.output.stat().st_size == 0:
                raise ExportFailureError("transcoder produced no output")
        except asyncio.CancelledError:
            shutil.rmtree(work_dir, ignore_errors=True)
            raise
        except ExportFailureError:
            shutil.rmtree(work_dir, ignore_errors=True)
            raise
        except Exception as exc:
            shutil.rmtree(work_dir, ignore_errors=True)
            raise ExportFailureError(f"{type(exc).__name__}: {exc}") from exc

        return ExportResult(
            path=paths.output,
            work_dir=work_dir,
            filename=filename,
            chunk_size=self.settings.chunk_size,
        )

    async def _prepare_inputs(self, request: ExportRequest, paths: ExportPaths) -> None:
        locator = request.video_locator
        if isinstance(locator, (bytes, bytearray)):
            paths.video.write_bytes(bytes(locator))
        elif locator.startswith(("http://", "https://")):
            await self._download(locator, paths.video)
        else:
            raise ExportFailureError("unsupported video locator; expected an http(s) URL or bytes")

        if request.audio_payload is not None:
            paths.audio.write_bytes(request.audio_payload)
        paths.subtitles.write_text(request.subtitle_document, encoding="utf-8")

    async def _download(self, url: str, destination: Path) -> None:
        params = {"key": self.settings.download_api_key} if self.settings.download_api_key else None
        timeout = httpx.Timeout(60.0, connect=10.0)
        async with httpx.AsyncClient(timeout=timeout, follow_redirects=True, transport=self._transport) as http:
            async with http.stream("GET", url, params=params) as response:
                if response.status_code >= 400:
                    raise ExportFailureError(f"video download failed with HTTP {response.status_code}")
                with open(destination, "wb") as handle:
                    async for chunk in response.aiter_bytes(self.settings.chunk_size):
                        handle.write(chunk)
        logger.info("Downloaded source video", extra={"bytes": destination.stat().st_size})

    async def _run_ffmpeg(self, cmd: List[str]) -> None:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            _, stderr = await asyncio.wait_for(process.communicate(), timeout=self.settings.timeout_seconds)
        except asyncio.TimeoutError:
            await self._kill(process)
            raise ExportFailureError(f"transcoder timed out after {self.settings.timeout_seconds:.0f}s")
        except asyncio.CancelledError:
            await self._kill(process)
            raise

        if process.returncode != 0:
            detail = (stderr or b"").decode(errors="replace").strip()[-500:]
            raise ExportFailureError(f"transcoder exited with code {process.returncode}: {detail}")

    @staticmethod
    async def _kill(process) -> None:
        if process.returncode is not None:
            return
        try:
            process.kill()
        except ProcessLookupError:
            return
        await process.wait()


def export_request_from_run(
    run: PipelineRun,
    mode: ExportMode = ExportMode.BURN,
    output_name: str = "",
) -> ExportRequest:
    """Build an export request from a finished pipeline run."""
    video = run.final_video
    if video is None or video.locator is None:
        raise ExportFailureError("run has no resolved video")
    if run.metadata is None:
        raise ExportFailureError("run has no caption track")

    return ExportRequest(
        video_locator=video.locator,
        subtitle_document=build_srt(run.metadata.caption_segments),
        mode=mode,
        output_name=output_name or f"ViralVibe_{run.run_id[:8]}.mp4",
        audio_payload=run.audio.to_wav_bytes() if run.audio is not None else None,
    )
