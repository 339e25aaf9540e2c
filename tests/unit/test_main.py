import pytest
from unittest.mock import MagicMock
from typer.testing import CliRunner

from vbe import main as vbe_main
from vbe.config.capabilities import codecs_for_format, switch_format
from vbe.domain.errors import BatchEncodeError
from vbe.domain.models import CodecInfo, Job, QualityMode

AVAILABLE = [
    CodecInfo(name="h264", display_name="H.264 (CPU)", formats=["mp4"]),
    CodecInfo(name="hevc_nvenc", display_name="HEVC (NVIDIA GPU)", formats=["mp4"]),
    CodecInfo(name="vp9", display_name="VP9", formats=["webm"]),
]


@pytest.fixture
def created(monkeypatch):
    """Replaces logging and the session wiring with recorders."""
    created = {}

    def fake_setup_logging(log_dir, debug=False, log_path=None):
        created["log_debug"] = debug
        created["log_path"] = log_path
        return MagicMock()

    def fake_load_codecs(settings, video_format=None):
        if video_format is not None:
            switch_format(settings, video_format, AVAILABLE)
        return codecs_for_format(AVAILABLE, settings.video_format)

    class DummySession:
        def __init__(self, config):
            created["config"] = config
            created["session"] = self
            self.registry = MagicMock()
            self.registry.jobs.return_value = created.get("jobs", [])
            self.registry.overall_percent = 100.0
            self.controller = MagicMock()
            self.controller.load_codecs.side_effect = fake_load_codecs
            self.dispatcher = MagicMock()

    monkeypatch.setattr(vbe_main, "setup_logging", fake_setup_logging)
    monkeypatch.setattr(vbe_main, "Session", DummySession)
    return created


def test_encode_missing_path_exits(tmp_path):
    runner = CliRunner()
    result = runner.invoke(vbe_main.app, ["encode", str(tmp_path / "missing")])

    assert result.exit_code != 0
    assert "does not exist" in result.output


def test_encode_applies_overrides(tmp_path, created, config_yaml_path):
    runner = CliRunner()
    video = tmp_path / "clip.mov"
    video.write_bytes(b"data")

    result = runner.invoke(vbe_main.app, [
        "encode", str(video),
        "--config", str(config_yaml_path),
        "--format", "mp4",
        "--codec", "hevc_nvenc",
        "--bitrate", "3000",
        "--two-pass",
        "--width", "1280", "--height", "720",
        "--output-dir", str(tmp_path / "out"),
        "--prefix", "x_",
        "--log-path", str(tmp_path / "run.log"),
    ])

    assert result.exit_code == 0, result.output
    settings = created["config"].encoding
    assert settings.video_format == "mp4"
    assert settings.video_codec == "hevc_nvenc"
    assert settings.quality_mode == QualityMode.BITRATE
    assert settings.bitrate_kbps == 3000
    assert settings.use_two_pass is True
    assert (settings.resize, settings.width, settings.height) == (True, 1280, 720)
    assert settings.output_dir == str(tmp_path / "out")
    assert settings.prefix == "x_"
    assert settings.postfix == "_small"
    assert created["log_debug"] is True
    assert created["log_path"] == tmp_path / "run.log"

    session = created["session"]
    session.controller.load_codecs.assert_called_once_with(settings, video_format="mp4")
    session.dispatcher.handle_file_drop.assert_called_once_with([str(video)])
    session.controller.start_batch.assert_called_once_with(settings)
    assert "Overall: 100.0%" in result.output


def test_encode_failure_exits_nonzero(tmp_path, created, monkeypatch):
    runner = CliRunner()
    video = tmp_path / "clip.mov"
    video.write_bytes(b"data")

    class FailingSession(vbe_main.Session):
        def __init__(self, config):
            super().__init__(config)
            self.controller.start_batch.side_effect = BatchEncodeError("encoding failed")

    monkeypatch.setattr(vbe_main, "Session", FailingSession)
    result = runner.invoke(vbe_main.app, ["encode", str(video), "--config", str(tmp_path / "none.yaml")])

    assert result.exit_code == 1
    assert "Overall" not in result.output


def test_probe_describes_without_encoding(tmp_path, created):
    runner = CliRunner()
    video = tmp_path / "clip.mov"
    video.write_bytes(b"data")

    result = runner.invoke(vbe_main.app, ["probe", str(video), "--config", str(tmp_path / "none.yaml")])

    assert result.exit_code == 0, result.output
    session = created["session"]
    session.dispatcher.handle_file_drop.assert_called_once_with([str(video)])
    session.controller.start_batch.assert_not_called()


def test_codecs_lists_filtered(monkeypatch):
    class DummyProbe:
        def available_codecs(self):
            return [
                CodecInfo(name="h264", display_name="H.264 (CPU)", formats=["mp4"]),
                CodecInfo(name="vp9", display_name="VP9", formats=["webm"]),
            ]

    monkeypatch.setattr(vbe_main, "CodecProbe", DummyProbe)
    runner = CliRunner()

    result = runner.invoke(vbe_main.app, ["codecs", "--format", "webm"])

    assert result.exit_code == 0, result.output
    assert "vp9" in result.output
    assert "h264" not in result.output


def test_invalid_config_exits(tmp_path, created):
    runner = CliRunner()
    video = tmp_path / "clip.mov"
    video.write_bytes(b"data")
    conf = tmp_path / "bad.yaml"
    conf.write_text("encoding:\n  video_format: avi\n")

    result = runner.invoke(vbe_main.app, ["encode", str(video), "--config", str(conf)])

    assert result.exit_code == 1
    assert created.get("session") is None


def test_encode_unsupported_format_exits_before_discovery(tmp_path, created, config_yaml_path):
    runner = CliRunner()
    video = tmp_path / "clip.mov"
    video.write_bytes(b"data")

    result = runner.invoke(vbe_main.app, ["encode", str(video), "--config", str(config_yaml_path), "--format", "avi"])

    assert result.exit_code == 1
    assert "unsupported video format: avi" in result.output
    assert created["config"].encoding.video_format == "webm"
    session = created["session"]
    session.dispatcher.handle_file_drop.assert_not_called()
    session.controller.start_batch.assert_not_called()


def test_encode_crf_survives_codec_reselection(tmp_path, created, config_yaml_path):
    runner = CliRunner()
    video = tmp_path / "clip.mov"
    video.write_bytes(b"data")

    # webm/vp9 in the config; mp4 forces a switch to h264 and its defaults
    result = runner.invoke(vbe_main.app, [
        "encode", str(video), "--config", str(config_yaml_path), "--format", "mp4", "--crf", "20",
    ])

    assert result.exit_code == 0, result.output
    settings = created["config"].encoding
    assert settings.video_codec == "h264"
    assert settings.quality_mode == QualityMode.CRF
    assert settings.crf_value == 20


def test_encode_bitrate_survives_codec_reselection(tmp_path, created, config_yaml_path):
    runner = CliRunner()
    video = tmp_path / "clip.mov"
    video.write_bytes(b"data")

    result = runner.invoke(vbe_main.app, [
        "encode", str(video), "--config", str(config_yaml_path), "--format", "mp4", "--bitrate", "2500",
    ])

    assert result.exit_code == 0, result.output
    settings = created["config"].encoding
    assert settings.quality_mode == QualityMode.BITRATE
    assert settings.bitrate_kbps == 2500


def test_encode_skip_deselects_named_files(tmp_path, created):
    runner = CliRunner()
    video = tmp_path / "clip.mov"
    video.write_bytes(b"data")
    created["jobs"] = [
        Job(id="j1", path=str(video), name="clip.mov"),
        Job(id="j2", path=str(tmp_path / "other.mov"), name="other.mov"),
    ]

    result = runner.invoke(vbe_main.app, [
        "encode", str(video), "--config", str(tmp_path / "none.yaml"), "--skip", "clip.mov",
    ])

    assert result.exit_code == 0, result.output
    created["session"].registry.deselect.assert_called_once_with("j1")
