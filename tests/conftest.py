import pytest
import yaml
from itertools import count
from vbe.config.models import AppConfig, EncoderSettings
from vbe.domain.events import FileDiscovered, UserNotice
from vbe.infrastructure.event_bus import EventBus
from vbe.pipeline.registry import JobRegistry
from vbe.pipeline.selection import SelectionSet

# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def sample_config():
    """Returns a sample AppConfig object for testing."""
    return AppConfig(
        general={
            "debug": False,
            "extensions": [".mp4", ".mov"],
            "notify": False,
        },
        encoding={
            "video_format": "mp4",
            "video_codec": "h264",
            "quality_mode": "crf",
            "crf_value": 23,
        },
    )

@pytest.fixture
def settings():
    """Default editor settings (mp4 / h264 / CRF 23)."""
    return EncoderSettings()

@pytest.fixture
def config_yaml_path(tmp_path):
    """Creates a temporary YAML config file."""
    conf_dir = tmp_path / "conf"
    conf_dir.mkdir()
    conf_file = conf_dir / "vbe.yaml"

    content = {
        'general': {
            'debug': True,
            'extensions': ['mp4', 'MKV'],
            'notify': False,
        },
        'encoding': {
            'video_format': 'webm',
            'video_codec': 'vp9',
            'crf_value': 31,
            'prefix': '',
            'postfix': '_small',
        },
    }

    with open(conf_file, 'w') as f:
        yaml.dump(content, f)

    return conf_file

# ============================================================================
# EventBus / Registry Fixtures
# ============================================================================

@pytest.fixture
def event_bus():
    """Returns a fresh EventBus instance."""
    return EventBus()

@pytest.fixture
def notices(event_bus):
    """Collects every UserNotice published on the event_bus fixture."""
    received = []
    event_bus.subscribe(UserNotice, received.append)
    return received

@pytest.fixture
def registry():
    """Registry with deterministic ids: job-1, job-2, ..."""
    ids = count(1)
    return JobRegistry(selection=SelectionSet(), id_factory=lambda: f"job-{next(ids)}")

@pytest.fixture
def make_discovery():
    """Factory for FileDiscovered events."""
    def _make(name="clip.mp4", duration=100.0, path=None, size=1024 * 1024, fmt="mov", codec="h264"):
        return FileDiscovered(
            name=name,
            size_bytes=size,
            duration_seconds=duration,
            container_format=fmt,
            codec=codec,
            path=path or f"/videos/{name}",
        )
    return _make

# ============================================================================
# File System Fixtures
# ============================================================================

@pytest.fixture
def test_input_dir(tmp_path):
    """Creates a test input directory."""
    input_dir = tmp_path / "input"
    input_dir.mkdir()
    return input_dir

@pytest.fixture
def dummy_video_files(test_input_dir):
    """Creates dummy video files in test input directory."""
    files = []

    for i in range(3):
        f = test_input_dir / f"video{i}.mp4"
        f.write_bytes(b"dummy video content " * 100)  # ~2KB
        files.append(f)

    # Create a subdirectory with a file
    subdir = test_input_dir / "subdir"
    subdir.mkdir()
    f = subdir / "subvideo.mov"
    f.write_bytes(b"dummy video content " * 100)
    files.append(f)

    return files
