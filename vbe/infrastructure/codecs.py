import logging
import platform
import subprocess
from typing import Callable, List, Optional

from vbe.domain.models import CodecInfo

ENCODER_LIST_TIMEOUT_S = 5
GPU_PROBE_TIMEOUT_S = 2

BASE_CODECS = [
    CodecInfo(name="h264", display_name="H.264 (CPU)", hardware="cpu", formats=["mp4"]),
    CodecInfo(name="hevc", display_name="HEVC (CPU)", hardware="cpu", formats=["mp4"]),
]

APPLE_CODECS = [
    CodecInfo(name="hevc_videotoolbox", display_name="HEVC (Apple Silicon/Intel)", hardware="apple", formats=["mp4"]),
    CodecInfo(name="h264_videotoolbox", display_name="H.264 (Apple Silicon/Intel)", hardware="apple", formats=["mp4"]),
]

NVIDIA_CODECS = [
    CodecInfo(name="hevc_nvenc", display_name="HEVC (NVIDIA GPU)", hardware="nvidia", formats=["mp4"]),
    CodecInfo(name="h264_nvenc", display_name="H.264 (NVIDIA GPU)", hardware="nvidia", formats=["mp4"]),
]

INTEL_CODECS = [
    CodecInfo(name="hevc_qsv", display_name="HEVC (Intel QuickSync)", hardware="intel", formats=["mp4"]),
    CodecInfo(name="h264_qsv", display_name="H.264 (Intel QuickSync)", hardware="intel", formats=["mp4"]),
]


def _run_output(cmd: List[str], timeout: float) -> Optional[str]:
    """stdout of `cmd`, or None if it could not run or failed."""
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
    except (OSError, subprocess.SubprocessError):
        return None
    if result.returncode != 0:
        return None
    return result.stdout


def has_nvidia_gpu(system: Optional[str] = None) -> bool:
    system = system or platform.system()
    if system == "Windows":
        return _run_output(["nvidia-smi"], GPU_PROBE_TIMEOUT_S) is not None
    if system == "Linux":
        output = _run_output(["lspci"], GPU_PROBE_TIMEOUT_S)
        return output is not None and "nvidia" in output.lower()
    return False


def has_intel_gpu(system: Optional[str] = None) -> bool:
    system = system or platform.system()
    if system == "Windows":
        output = _run_output(["wmic", "path", "win32_VideoController", "get", "name"], GPU_PROBE_TIMEOUT_S)
    elif system == "Linux":
        output = _run_output(["lspci"], GPU_PROBE_TIMEOUT_S)
    else:
        return False
    if output is None:
        return False
    lowered = output.lower()
    return "intel" in lowered and "graphics" in lowered


class CodecProbe:
    """Lists the encoders usable on this machine."""

    def __init__(self, system: Optional[str] = None,
                 nvidia_check: Optional[Callable[[], bool]] = None,
                 intel_check: Optional[Callable[[], bool]] = None):
        self.system = system or platform.system()
        self._nvidia_check = nvidia_check or (lambda: has_nvidia_gpu(self.system))
        self._intel_check = intel_check or (lambda: has_intel_gpu(self.system))
        self.logger = logging.getLogger(__name__)

    def available_codecs(self) -> List[CodecInfo]:
        """CPU H.264/HEVC always; hardware and VP8/VP9 encoders when ffmpeg has them."""
        codecs = list(BASE_CODECS)

        encoder_list = _run_output(["ffmpeg", "-hide_banner", "-encoders"], ENCODER_LIST_TIMEOUT_S)
        if encoder_list is None:
            self.logger.warning("Failed to get ffmpeg encoder list (using default codecs only)")
            return codecs

        if self.system == "Darwin":
            codecs.extend(c for c in APPLE_CODECS if c.name in encoder_list)
        elif self.system in ("Windows", "Linux"):
            if self._nvidia_check():
                codecs.extend(c for c in NVIDIA_CODECS if c.name in encoder_list)
            if self._intel_check():
                codecs.extend(c for c in INTEL_CODECS if c.name in encoder_list)

        if "libvpx" in encoder_list:
            codecs.append(CodecInfo(name="vp8", display_name="VP8", hardware="cpu", formats=["webm"]))
        if "libvpx-vp9" in encoder_list:
            codecs.append(CodecInfo(name="vp9", display_name="VP9", hardware="cpu", formats=["webm"]))

        self.logger.debug(f"CODECS_AVAILABLE: {', '.join(c.name for c in codecs)}")
        return codecs
