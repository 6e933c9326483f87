"""
Tests for viralvibe.cli
"""

from pathlib import Path

import pytest

from viralvibe import cli
from viralvibe.cli import build_parser, load_requests, run_generate
from viralvibe.core.exceptions import ExportFailureError
from viralvibe.models import ExportMode
from viralvibe.services.pipeline.assembly import ExportResult


class StubMuxClient:
    """Stands in for ExportMuxClient; writes a small mp4 into its own work dir."""

    instances = []
    work_root = None
    error = None

    def __init__(self, settings):
        self.settings = settings
        self.requests = []
        StubMuxClient.instances.append(self)

    async def export(self, request):
        self.requests.append(request)
        if self.error is not None:
            raise ExportFailureError(self.error)
        work_dir = self.work_root / f"mux_{len(StubMuxClient.instances)}"
        work_dir.mkdir(parents=True)
        path = work_dir / "output.mp4"
        path.write_bytes(b"muxed-video")
        return ExportResult(path=path, work_dir=work_dir, filename=request.output_name)


@pytest.fixture
def cli_env(monkeypatch, tmp_path, fake_client_cls, fast_settings):
    monkeypatch.setattr(StubMuxClient, "instances", [])
    monkeypatch.setattr(StubMuxClient, "work_root", tmp_path / "mux")
    image = tmp_path / "cat.png"
    image.write_bytes(b"\x89PNG")
    monkeypatch.setattr(cli, "GeminiMediaClient", fake_client_cls)
    monkeypatch.setattr(cli, "load_pipeline_settings", lambda: fast_settings)
    monkeypatch.setattr(cli, "ExportMuxClient", StubMuxClient)
    return image


def _generate_args(image, out, *extra):
    return build_parser().parse_args(["generate", str(image), "--topic", "cats", "--out", str(out), *extra])


def test_parser_defaults():
    args = build_parser().parse_args(["generate", "cat.png", "--topic", "cats"])
    assert args.images == [Path("cat.png")]
    assert args.voice == "Puck"
    assert args.duration is None
    assert args.export is None


def test_parser_rejects_unknown_voice():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["generate", "cat.png", "--topic", "cats", "--voice", "Robot"])


def test_load_requests(tmp_path):
    image = tmp_path / "cat.jpg"
    image.write_bytes(b"jpeg")
    args = build_parser().parse_args([
        "generate", str(image), "--topic", "cats", "--duration", "27", "--export", "soft",
    ])

    (request,) = load_requests(args)
    assert request.source_image == b"jpeg"
    assert request.image_mime_type == "image/jpeg"
    assert request.target_duration_seconds == 27


def test_load_requests_rejects_unsupported_image(tmp_path):
    image = tmp_path / "cat.gif"
    image.write_bytes(b"gif")
    args = build_parser().parse_args(["generate", str(image), "--topic", "cats"])
    with pytest.raises(SystemExit):
        load_requests(args)


@pytest.mark.asyncio
class TestRunGenerate:

    async def test_saves_artifacts_and_export(self, cli_env, tmp_path):
        out = tmp_path / "shorts"

        code = await run_generate(_generate_args(cli_env, out, "--duration", "13", "--export", "burn"))

        assert code == 0
        item_dir = out / "1"
        assert (item_dir / "video.mp4").read_bytes() == b"mp4:https://video.example/v1.mp4"
        assert (item_dir / "captions.srt").exists()
        assert (item_dir / "short_1.mp4").read_bytes() == b"muxed-video"

        (mux,) = StubMuxClient.instances
        (request,) = mux.requests
        assert request.mode is ExportMode.BURN
        assert request.output_name == "short_1.mp4"
        # Work dir removed once the file was streamed out
        assert not (tmp_path / "mux" / "mux_1").exists()

    async def test_without_export_skips_mux(self, cli_env, tmp_path):
        code = await run_generate(_generate_args(cli_env, tmp_path / "shorts"))

        assert code == 0
        assert StubMuxClient.instances == []
        assert not (tmp_path / "shorts" / "1" / "short_1.mp4").exists()

    async def test_export_failure_sets_exit_code(self, cli_env, tmp_path, monkeypatch):
        monkeypatch.setattr(StubMuxClient, "error", "ffmpeg exited with code 1")
        out = tmp_path / "shorts"

        code = await run_generate(_generate_args(cli_env, out, "--export", "soft"))

        assert code == 1
        assert (out / "1" / "video.mp4").exists()
        assert not (out / "1" / "short_1.mp4").exists()
