import subprocess
import re
import logging
import os
import tempfile
import time
from collections import deque
from pathlib import Path
from typing import List, Optional, Tuple
from vbe.domain.errors import EncodeFailedError
from vbe.domain.events import EncodingProgress
from vbe.domain.models import EncodingOptions, QualityMode
from vbe.infrastructure.event_bus import EventBus

# ffmpeg stderr progress fields, e.g.
# frame=  240 fps= 60 q=28.0 size=    1024kB time=00:00:08.00 bitrate=1048.6kbits/s speed=2.01x
FRAME_RE = re.compile(r"frame=\s*(\d+)")
FPS_RE = re.compile(r"fps=\s*(\d+(?:\.\d+)?)")
TIME_RE = re.compile(r"time=\s*(\d+:\d{2}:\d{2}(?:\.\d+)?)")
SIZE_RE = re.compile(r"size=\s*(\d+)\s*(?:kB|KiB)")
BITRATE_RE = re.compile(r"bitrate=\s*(\d+(?:\.\d+)?)\s*kbits/s")
SPEED_RE = re.compile(r"speed=\s*(\d+(?:\.\d+)?)x")

STDERR_TAIL_LINES = 20


def parse_progress_line(line: str, filename: str) -> Optional[EncodingProgress]:
    """Parses one ffmpeg progress line. None if it carries neither time nor frames."""
    if not line.strip():
        return None

    frame = 0
    fps = 0.0
    elapsed = ""
    size_bytes = 0
    bitrate = 0.0
    speed = 0.0

    match = FRAME_RE.search(line)
    if match:
        frame = int(match.group(1))
    match = FPS_RE.search(line)
    if match:
        fps = float(match.group(1))
    match = TIME_RE.search(line)
    if match:
        elapsed = match.group(1)
    match = SIZE_RE.search(line)
    if match:
        size_bytes = int(match.group(1)) * 1024
    match = BITRATE_RE.search(line)
    if match:
        bitrate = float(match.group(1))
    match = SPEED_RE.search(line)
    if match:
        speed = float(match.group(1))

    if not elapsed and frame <= 0:
        return None

    return EncodingProgress(
        filename=filename,
        frame=frame,
        fps=fps,
        time=elapsed,
        output_size_bytes=size_bytes,
        bitrate_kbps=bitrate,
        speed=speed,
        status="processing",
    )


def output_path_for(input_path: Path, options: EncodingOptions) -> Path:
    """<output_dir or source dir>/<prefix><stem><postfix>.<format>"""
    directory = Path(options.output_dir) if options.output_dir else input_path.parent
    name = f"{options.prefix}{input_path.stem}{options.postfix}.{options.video_format}"
    return directory / name


def _scale_args(options: EncodingOptions) -> List[str]:
    if options.resize and options.width > 0 and options.height > 0:
        return ["-vf", f"scale={options.width}:{options.height}"]
    return []


def _audio_args(options: EncodingOptions) -> List[str]:
    args = ["-c:a", options.audio_codec or "copy"]
    if options.audio_bitrate_kbps > 0:
        args.extend(["-b:a", f"{options.audio_bitrate_kbps}k"])
    if options.audio_sample_rate > 0:
        args.extend(["-ar", str(options.audio_sample_rate)])
    return args


class FFmpegAdapter:
    """Wrapper around ffmpeg for encoding one file at a time."""

    def __init__(self, event_bus: EventBus, debug: bool = False):
        self.event_bus = event_bus
        self.debug = debug
        self.logger = logging.getLogger(__name__)

    def build_args(self, input_path: Path, output_path: Path, options: EncodingOptions) -> List[str]:
        """Single-pass command line arguments (without the binary)."""
        args = ["-i", str(input_path), "-c:v", options.video_codec]
        if options.quality_mode == QualityMode.CRF:
            args.extend(["-crf", str(options.quality_value)])
        else:
            args.extend(["-b:v", f"{options.quality_value}k"])
        args.extend(_scale_args(options))
        args.extend(_audio_args(options))
        args.append(str(output_path))
        return args

    def build_two_pass_args(self, input_path: Path, output_path: Path, options: EncodingOptions,
                            pass_log_file: str) -> Tuple[List[str], List[str]]:
        """First pass analyses to the null muxer; second pass writes the output."""
        bitrate = f"{options.quality_value}k"
        pass1 = [
            "-i", str(input_path),
            "-c:v", options.video_codec,
            "-b:v", bitrate,
            "-pass", "1",
            "-passlogfile", pass_log_file,
            "-an",
            "-f", "null",
        ]
        pass1.extend(_scale_args(options))
        pass1.append(os.devnull)

        pass2 = [
            "-i", str(input_path),
            "-c:v", options.video_codec,
            "-b:v", bitrate,
            "-pass", "2",
            "-passlogfile", pass_log_file,
        ]
        pass2.extend(_scale_args(options))
        pass2.extend(_audio_args(options))
        pass2.append(str(output_path))
        return pass1, pass2

    def encode_file(self, input_path: Path, options: EncodingOptions):
        """Encodes one file, publishing EncodingProgress events as ffmpeg reports them.

        Raises:
            EncodeFailedError: missing input, existing output, or ffmpeg failure.
        """
        filename = input_path.name
        if not input_path.exists():
            raise EncodeFailedError(f"input file not found: {input_path}")

        output_path = output_path_for(input_path, options)
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise EncodeFailedError(f"failed to create output directory ({output_path.parent}): {e}") from e
        if output_path.exists():
            raise EncodeFailedError(f"output file already exists: {output_path}")

        start_time = time.monotonic()
        self.logger.info(f"FFMPEG_START: {filename} -> {output_path}")
        self.event_bus.publish(EncodingProgress(filename=filename, status="processing"))

        if options.use_two_pass and options.quality_mode == QualityMode.BITRATE:
            self._encode_two_pass(input_path, output_path, options)
        else:
            self._run(self.build_args(input_path, output_path, options), filename)

        if not output_path.exists():
            raise EncodeFailedError(f"encoded file not found: {output_path}")

        self.event_bus.publish(EncodingProgress(filename=filename, status="completed"))
        self.logger.info(f"FFMPEG_END: {filename} status=completed elapsed={time.monotonic() - start_time:.2f}s")

    def _encode_two_pass(self, input_path: Path, output_path: Path, options: EncodingOptions):
        pass_log_file = os.path.join(tempfile.gettempdir(), f"ffmpeg2pass_{time.time_ns()}")
        pass1, pass2 = self.build_two_pass_args(input_path, output_path, options, pass_log_file)
        try:
            try:
                self._run(pass1, input_path.name)
            except EncodeFailedError as e:
                raise EncodeFailedError(f"first pass failed: {e.message}", detail=e.detail) from e
            try:
                self._run(pass2, input_path.name)
            except EncodeFailedError as e:
                raise EncodeFailedError(f"second pass failed: {e.message}", detail=e.detail) from e
        finally:
            for suffix in ("-0.log", "-0.log.mbtree"):
                log_file = Path(pass_log_file + suffix)
                if log_file.exists():
                    try:
                        log_file.unlink()
                    except OSError:
                        self.logger.debug(f"Could not remove pass log {log_file}")

    def _run(self, args: List[str], filename: str):
        cmd = ["ffmpeg", *args]
        if self.debug:
            self.logger.debug(f"FFMPEG_CMD: {' '.join(cmd)}")

        try:
            # universal_newlines turns ffmpeg's \r progress updates into lines
            process = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                stdin=subprocess.DEVNULL,
                universal_newlines=True,
                bufsize=1
            )
        except OSError as e:
            raise EncodeFailedError(f"failed to start encoding: {e}") from e

        tail: deque = deque(maxlen=STDERR_TAIL_LINES)
        if process.stdout:
            for line in process.stdout:
                tail.append(line.rstrip())
                progress = parse_progress_line(line, filename)
                if progress is not None:
                    self.event_bus.publish(progress)
        process.wait()

        if process.returncode != 0:
            raise EncodeFailedError(
                f"encoding failed: ffmpeg exited with code {process.returncode}",
                detail="\n".join(tail),
            )
