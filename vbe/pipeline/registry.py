"""Canonical store of encode jobs.

Every write to job membership, status or progress goes through a
`JobRegistry` method; engine events map onto exactly one of them. The
registry also owns the overall percentage, recomputed from the full job list
after each progress update.
"""

import logging
import threading
import uuid
from typing import Callable, Iterable, List, Optional

from vbe.domain.events import EncodingProgress, FileDiscovered
from vbe.domain.models import Job, JobStatus, LiveStats, can_transition
from vbe.pipeline.progress import job_percent, overall_percent, resolve_engine_status
from vbe.pipeline.selection import SelectionSet


def _new_job_id() -> str:
    return uuid.uuid4().hex


class JobRegistry:
    """Thread-safe job store keyed by id, unique by path."""

    def __init__(self, selection: Optional[SelectionSet] = None,
                 id_factory: Callable[[], str] = _new_job_id):
        self._lock = threading.RLock()
        self._jobs: List[Job] = []
        self.selection = selection if selection is not None else SelectionSet()
        self._id_factory = id_factory
        self._overall_percent = 0.0
        self.logger = logging.getLogger(__name__)

    # ── Queries ────────────────────────────────────────────────────────────

    @property
    def overall_percent(self) -> float:
        with self._lock:
            return self._overall_percent

    def jobs(self) -> List[Job]:
        with self._lock:
            return list(self._jobs)

    def get(self, job_id: str) -> Optional[Job]:
        with self._lock:
            return next((j for j in self._jobs if j.id == job_id), None)

    def find_by_path(self, path: str) -> Optional[Job]:
        with self._lock:
            return next((j for j in self._jobs if j.path == path), None)

    def find_by_name(self, name: str) -> List[Job]:
        with self._lock:
            return [j for j in self._jobs if j.name == name]

    def selected_jobs(self) -> List[Job]:
        with self._lock:
            return [j for j in self._jobs if j.id in self.selection]

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def __contains__(self, job_id: object) -> bool:
        return isinstance(job_id, str) and self.get(job_id) is not None

    # ── Membership ─────────────────────────────────────────────────────────

    def upsert_from_discovery(self, event: FileDiscovered) -> Optional[Job]:
        """Creates a PENDING, auto-selected job; None if the path is already tracked."""
        with self._lock:
            if self.find_by_path(event.path) is not None:
                self.logger.debug(f"DISCOVERY_DUPLICATE: {event.path}")
                return None
            job = Job(
                id=self._id_factory(),
                path=event.path,
                name=event.name,
                size_bytes=event.size_bytes,
                duration_seconds=event.duration_seconds,
                container_format=event.container_format,
                source_codec=event.codec,
            )
            self._jobs.append(job)
            self.selection.add(job.id)
            self.logger.debug(f"JOB_ADDED: {job.name} id={job.id} duration={job.duration_seconds:.2f}s")
            return job

    def remove_by_ids(self, ids: Iterable[str]) -> int:
        """Drops the given jobs and their selection entries. Unknown ids are ignored."""
        with self._lock:
            doomed = set(ids)
            before = len(self._jobs)
            self._jobs = [j for j in self._jobs if j.id not in doomed]
            for job_id in doomed:
                self.selection.remove(job_id)
            removed = before - len(self._jobs)
            if removed:
                self.logger.debug(f"JOBS_REMOVED: {removed}")
                self.recompute_overall()
            return removed

    # ── Selection ──────────────────────────────────────────────────────────

    def select(self, job_id: str) -> bool:
        """Selects a tracked job. Unknown ids are ignored and return False."""
        with self._lock:
            if self.get(job_id) is None:
                self.logger.debug(f"SELECT_UNKNOWN: {job_id}")
                return False
            self.selection.add(job_id)
            return True

    def deselect(self, job_id: str) -> bool:
        with self._lock:
            if job_id not in self.selection:
                return False
            self.selection.remove(job_id)
            return True

    def select_all(self):
        with self._lock:
            self.selection.select_all(j.id for j in self._jobs)

    def deselect_all(self):
        with self._lock:
            self.selection.clear()

    def remove_all(self):
        with self._lock:
            self._jobs = []
            self.selection.clear()
            self._overall_percent = 0.0
            self.logger.debug("JOBS_CLEARED")

    # ── State transitions ──────────────────────────────────────────────────

    def apply_progress(self, event: EncodingProgress) -> List[Job]:
        """Applies one engine progress event; returns the jobs it touched.

        The job is located by file name. If several tracked jobs share the
        name, the event goes to exactly one of them: selected jobs first,
        then the RUNNING one, else the first PENDING one in registry order
        (the order the engine encodes in). An event naming no tracked job
        is dropped.
        """
        with self._lock:
            candidates = self.find_by_name(event.filename)
            if not candidates:
                self.logger.debug(f"PROGRESS_UNROUTED: {event.filename}")
                return []
            if len(candidates) > 1:
                candidates = [self._route_shared_name(candidates)]

            target = resolve_engine_status(event.status)
            touched = [job for job in candidates if self._apply_to_job(job, event, target)]
            self.recompute_overall()
            return touched

    def _route_shared_name(self, candidates: List[Job]) -> Job:
        pool = [j for j in candidates if j.id in self.selection] or candidates
        running = [j for j in pool if j.status == JobStatus.RUNNING]
        if running:
            return running[0]
        pending = [j for j in pool if j.status == JobStatus.PENDING]
        # All terminal: the event is stale and will be ignored
        return (pending or pool)[0]

    def _apply_to_job(self, job: Job, event: EncodingProgress, target: JobStatus) -> bool:
        if job.status == JobStatus.PENDING and target != JobStatus.RUNNING:
            # Terminal event without a preceding running one
            job.status = JobStatus.RUNNING
        if not can_transition(job.status, target):
            self.logger.debug(
                f"PROGRESS_STALE: {job.name} {job.status.value} -> {target.value} ignored"
            )
            return False

        job.status = target
        if target == JobStatus.COMPLETED:
            job.progress_percent = 100.0
        elif target == JobStatus.RUNNING:
            try:
                job.progress_percent = job_percent(event.time, job.duration_seconds)
            except ValueError:
                self.logger.debug(f"PROGRESS_BAD_TIME: {job.name} time={event.time!r}")
            job.live_stats = LiveStats(
                frame=event.frame,
                fps=event.fps,
                elapsed_time=event.time,
                output_size_bytes=event.output_size_bytes,
                bitrate_kbps=event.bitrate_kbps,
                speed_factor=event.speed,
            )
        return True

    def reset_for_batch(self, ids: Iterable[str]):
        """Selected jobs go back to PENDING at 0% with no error; others untouched."""
        with self._lock:
            wanted = set(ids)
            for job in self._jobs:
                if job.id in wanted:
                    job.status = JobStatus.PENDING
                    job.progress_percent = 0.0
                    job.error_message = None
                    job.live_stats = None

    def mark_failed(self, ids: Iterable[str], error_message: Optional[str] = None) -> List[Job]:
        """Forces the given jobs that are still RUNNING to FAILED."""
        with self._lock:
            wanted = set(ids)
            failed = []
            for job in self._jobs:
                if job.id in wanted and job.status == JobStatus.RUNNING:
                    job.status = JobStatus.FAILED
                    job.error_message = error_message
                    failed.append(job)
            if failed:
                self.logger.debug(f"JOBS_FAILED: {', '.join(j.name for j in failed)}")
            return failed

    # ── Aggregate ──────────────────────────────────────────────────────────

    def recompute_overall(self) -> float:
        with self._lock:
            self._overall_percent = overall_percent(self._jobs)
            return self._overall_percent

    def reset_overall(self):
        with self._lock:
            self._overall_percent = 0.0
