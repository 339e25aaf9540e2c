from enum import Enum
from typing import Dict, List, Optional, Set
from pydantic import BaseModel, ConfigDict, Field

from vbe.utils.timefmt import format_duration, format_size

class JobStatus(str, Enum):
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

class QualityMode(str, Enum):
    CRF = "crf"
    BITRATE = "bitrate"

# Edges reachable through progress events. Resets back to PENDING and the
# synthetic RUNNING -> FAILED override are handled by the registry directly.
_TRANSITIONS: Dict[JobStatus, Set[JobStatus]] = {
    JobStatus.PENDING: {JobStatus.RUNNING},
    JobStatus.RUNNING: {JobStatus.RUNNING, JobStatus.COMPLETED, JobStatus.FAILED},
    JobStatus.COMPLETED: set(),
    JobStatus.FAILED: set(),
}

def can_transition(current: JobStatus, target: JobStatus) -> bool:
    return target in _TRANSITIONS[current]

class LiveStats(BaseModel):
    frame: int = 0
    fps: float = 0.0
    elapsed_time: str = ""
    output_size_bytes: int = 0
    bitrate_kbps: float = 0.0
    speed_factor: float = 0.0

class Job(BaseModel):
    """One file's encode work item and its tracked state."""

    id: str = Field(frozen=True)
    path: str = Field(frozen=True)
    name: str = Field(frozen=True)
    size_bytes: int = Field(default=0, ge=0, frozen=True)
    duration_seconds: float = Field(default=0.0, ge=0.0, frozen=True)
    container_format: str = Field(default="", frozen=True)
    source_codec: str = Field(default="", frozen=True)
    status: JobStatus = JobStatus.PENDING
    progress_percent: float = Field(default=0.0, ge=0.0, le=100.0)
    live_stats: Optional[LiveStats] = None
    error_message: Optional[str] = None

    @property
    def display_size(self) -> str:
        return format_size(self.size_bytes)

    @property
    def display_duration(self) -> str:
        return format_duration(self.duration_seconds)

    @property
    def display_format(self) -> str:
        return f"{self.container_format} ({self.source_codec})"

class EncodingOptions(BaseModel):
    """Options payload handed to the engine for one batch. Immutable."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    video_format: str = Field(alias="videoformat")
    video_codec: str = Field(alias="videocodec")
    quality_mode: QualityMode = Field(default=QualityMode.CRF, alias="qualitymode")
    quality_value: int = Field(default=0, ge=0, alias="qualityvalue")
    use_two_pass: bool = Field(default=False, alias="use2pass")

    resize: bool = Field(default=False, alias="isresize")
    width: int = Field(default=0, ge=0)
    height: int = Field(default=0, ge=0)

    output_dir: str = Field(default="", alias="outputpath")
    prefix: str = ""
    postfix: str = ""

    # Empty / zero means "use source"
    audio_codec: str = Field(default="", alias="audiocodec")
    audio_bitrate_kbps: int = Field(default=0, ge=0, alias="audiobitrate")
    audio_sample_rate: int = Field(default=0, ge=0, alias="audiosamplerate")

class CodecInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    display_name: str = Field(alias="displayName")
    hardware: str = "cpu"
    formats: List[str] = Field(default_factory=list)

    @property
    def is_hardware(self) -> bool:
        return self.hardware != "cpu"
