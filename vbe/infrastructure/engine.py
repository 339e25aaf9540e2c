"""ffmpeg/ffprobe backed encoding engine.

Implements the operations the core consumes: file discovery, codec listing,
batch encoding and user notification. Results of discovery and encoding are
published on the event bus from the calling thread while the call runs.
"""

import logging
import shutil
from pathlib import Path
from typing import List, Optional

from vbe.config.capabilities import validate_options
from vbe.domain.errors import DiscoveryError, EngineUnavailableError
from vbe.domain.events import FileDiscovered, FileDiscoveryFailed
from vbe.domain.models import CodecInfo, EncodingOptions
from vbe.infrastructure.codecs import CodecProbe
from vbe.infrastructure.event_bus import EventBus
from vbe.infrastructure.ffmpeg import FFmpegAdapter
from vbe.infrastructure.ffprobe import FFprobeAdapter
from vbe.infrastructure.file_scanner import FileScanner
from vbe.infrastructure.notifier import DesktopNotifier


class FFmpegEngine:
    def __init__(
        self,
        event_bus: EventBus,
        file_scanner: FileScanner,
        ffprobe_adapter: FFprobeAdapter,
        ffmpeg_adapter: FFmpegAdapter,
        codec_probe: Optional[CodecProbe] = None,
        notifier: Optional[DesktopNotifier] = None,
    ):
        self.event_bus = event_bus
        self.file_scanner = file_scanner
        self.ffprobe = ffprobe_adapter
        self.ffmpeg = ffmpeg_adapter
        self.codec_probe = codec_probe or CodecProbe()
        self.notifier = notifier or DesktopNotifier()
        self.logger = logging.getLogger(__name__)

    def discover_files(self, paths: List[str]):
        """Publishes one FileDiscovered or FileDiscoveryFailed per video file found.

        A dropped path that cannot be expanded yields a single failure event.
        """
        for raw_path in paths:
            path = Path(raw_path)
            try:
                video_paths = list(self.file_scanner.scan(path))
            except OSError as e:
                self.event_bus.publish(FileDiscoveryFailed(
                    message=f"Error while processing path: {e}", path=str(path)
                ))
                continue

            for video_path in video_paths:
                try:
                    event = self.describe_file(video_path)
                except DiscoveryError as e:
                    self.event_bus.publish(FileDiscoveryFailed(message=e.message, path=str(video_path)))
                    continue
                self.event_bus.publish(event)

    def describe_file(self, video_path: Path) -> FileDiscovered:
        """Raises DiscoveryError when ffprobe cannot describe the file."""
        try:
            return FileDiscovered(**self.ffprobe.describe(video_path.absolute()))
        except (RuntimeError, ValueError) as e:
            raise DiscoveryError(f"Error while processing video: {e}") from e

    def list_available_codecs(self) -> List[CodecInfo]:
        return self.codec_probe.available_codecs()

    def start_batch_encode(self, paths: List[str], options: EncodingOptions):
        """Encodes `paths` one after another; the first failure aborts the batch.

        Raises:
            InvalidOptionsError: options rejected before any file is touched.
            EngineUnavailableError: ffmpeg is not installed.
            EncodeFailedError: a file failed to encode.
        """
        options = validate_options(options)
        if shutil.which("ffmpeg") is None:
            raise EngineUnavailableError("FFmpeg is not installed")

        for raw_path in paths:
            self.ffmpeg.encode_file(Path(raw_path), options)

    def notify_user(self, title: str, body: str):
        try:
            self.notifier.notify_user(title, body)
        except Exception as e:
            self.logger.warning(f"Notification failed: {e}")
