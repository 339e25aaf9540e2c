"""Domain events for the batch encoding core.

Three channels come from the encoding engine (discovery, discovery error,
progress). Each is a distinct validated model so payloads are converted at
the boundary instead of being trusted deep inside the registry. The
remaining events are published by the core itself for the UI layer.

See `infrastructure/event_bus.py` for the pub/sub mechanism.
"""

from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field


class Event(BaseModel):
    """Base class for all domain events.

    Events are validated Pydantic models. They are not frozen by default.
    """

    pass


# ── Engine channels ────────────────────────────────────────────────────────────

class FileDiscovered(Event):
    """Emitted by the engine once a file has been described."""

    name: str
    size_bytes: int = Field(default=0, ge=0, alias="size")
    duration_seconds: float = Field(default=0.0, ge=0.0, alias="duration")
    container_format: str = Field(default="", alias="format")
    codec: str = ""
    path: str

    model_config = ConfigDict(populate_by_name=True)


class FileDiscoveryFailed(Event):
    """Emitted by the engine when a file or dropped path cannot be described."""

    message: str = Field(alias="error")
    path: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)


class EncodingProgress(Event):
    """Emitted by the engine for each progress line of a running encode.

    `progress_percent` and `status` are advisory; the registry recomputes the
    percentage from `time` and the duration known at discovery.
    """

    filename: str
    frame: int = 0
    fps: float = 0.0
    time: str = ""
    output_size_bytes: int = Field(default=0, alias="size")
    bitrate_kbps: float = Field(default=0.0, alias="bitrate")
    speed: float = 0.0
    progress_percent: float = Field(default=0.0, alias="progress")
    status: str = "processing"

    model_config = ConfigDict(populate_by_name=True)


# ── Core notifications ─────────────────────────────────────────────────────────

class JobProgressApplied(Event):
    """Emitted after a progress event changed a job and the overall percentage."""

    job_id: str
    status: str
    progress_percent: float
    overall_percent: float


class BatchStarted(Event):
    """Emitted when the controller hands a batch to the engine."""

    job_ids: List[str]


class BatchFinished(Event):
    """Emitted when the batch-encode call returned (successfully or not)."""

    job_ids: List[str]
    success: bool
    error_message: Optional[str] = None


class UserNotice(Event):
    """User-facing feedback (toast-level): success, warning or error."""

    level: Literal["info", "success", "warning", "error"] = "info"
    title: str
    description: str = ""
