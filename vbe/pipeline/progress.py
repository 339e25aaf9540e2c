"""Per-job and overall progress math.

The per-job percentage is recomputed locally from the elapsed clock reported
by the engine and the duration known since discovery; the engine's own
percentage is not trusted. The overall percentage always folds over the full
registry snapshot so that out-of-order updates across jobs cannot drift it.
"""

import math
from typing import Iterable, Optional

from vbe.domain.models import Job, JobStatus
from vbe.utils.timefmt import parse_clock

_ENGINE_STATUS = {
    "processing": JobStatus.RUNNING,
    "running": JobStatus.RUNNING,
    "completed": JobStatus.COMPLETED,
    "done": JobStatus.COMPLETED,
    "failed": JobStatus.FAILED,
    "error": JobStatus.FAILED,
}


def clamp_percent(value: float) -> float:
    if value is None or math.isnan(value):
        return 0.0
    return min(max(float(value), 0.0), 100.0)


def job_percent(elapsed: Optional[str], total_seconds: Optional[float]) -> float:
    """Percentage of `total_seconds` covered by the `elapsed` clock string.

    Unknown or zero duration gives 0.

    Raises:
        ValueError: if `elapsed` is not a clock string.
    """
    elapsed_seconds = parse_clock(elapsed)
    if not total_seconds or total_seconds <= 0:
        return 0.0
    return clamp_percent(elapsed_seconds / total_seconds * 100.0)


def overall_percent(jobs: Iterable[Job]) -> float:
    """Completed jobs count 100, running jobs their own percent, the rest 0."""
    total = 0
    completed = 0
    running_sum = 0.0
    for job in jobs:
        total += 1
        if job.status == JobStatus.COMPLETED:
            completed += 1
        elif job.status == JobStatus.RUNNING:
            running_sum += job.progress_percent
    if total == 0:
        return 0.0
    return clamp_percent((completed * 100.0 + running_sum) / total)


def resolve_engine_status(raw: Optional[str]) -> JobStatus:
    """Maps the engine's status word onto JobStatus; unknown words mean RUNNING."""
    if not raw:
        return JobStatus.RUNNING
    return _ENGINE_STATUS.get(str(raw).strip().lower(), JobStatus.RUNNING)
