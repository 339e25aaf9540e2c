import logging
from typing import Sequence

from vbe.domain.events import (
    EncodingProgress, FileDiscovered, FileDiscoveryFailed, JobProgressApplied, UserNotice
)
from vbe.infrastructure.event_bus import EventBus
from vbe.pipeline.controller import EncodingController
from vbe.pipeline.registry import JobRegistry


class EventDispatcher:
    """Routes the engine's event channels into the registry.

    Subscriptions are registered once per dispatcher lifetime by `attach()`
    and dropped by `detach()`. The liveness flag is cleared before
    unsubscribing, so a delivery racing with teardown is ignored.
    """

    def __init__(self, bus: EventBus, registry: JobRegistry, controller: EncodingController):
        self.bus = bus
        self.registry = registry
        self.controller = controller
        self.is_analysing = False
        self._alive = False
        self._attached = False
        self.logger = logging.getLogger(__name__)

    @property
    def alive(self) -> bool:
        return self._alive

    def attach(self):
        if self._attached:
            return
        self.bus.subscribe(FileDiscovered, self.on_file_discovered)
        self.bus.subscribe(FileDiscoveryFailed, self.on_discovery_failed)
        self.bus.subscribe(EncodingProgress, self.on_progress)
        self._attached = True
        self._alive = True

    def detach(self):
        self._alive = False
        if not self._attached:
            return
        self.bus.unsubscribe(FileDiscovered, self.on_file_discovered)
        self.bus.unsubscribe(FileDiscoveryFailed, self.on_discovery_failed)
        self.bus.unsubscribe(EncodingProgress, self.on_progress)
        self._attached = False

    def __enter__(self):
        self.attach()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.detach()
        return False

    # ── Channel handlers ───────────────────────────────────────────────────

    def on_file_discovered(self, event: FileDiscovered):
        if not self._alive:
            return
        self.registry.upsert_from_discovery(event)

    def on_discovery_failed(self, event: FileDiscoveryFailed):
        if not self._alive:
            return
        self.logger.warning(f"DISCOVERY_FAILED: {event.path or '-'}: {event.message}")
        self.bus.publish(UserNotice(level="error", title="File processing error", description=event.message))

    def on_progress(self, event: EncodingProgress):
        if not self._alive:
            return
        touched = self.registry.apply_progress(event)
        if not touched:
            return
        overall = self.registry.overall_percent
        for job in touched:
            self.bus.publish(JobProgressApplied(
                job_id=job.id,
                status=job.status.value,
                progress_percent=job.progress_percent,
                overall_percent=overall,
            ))

    # ── File drop ──────────────────────────────────────────────────────────

    def handle_file_drop(self, paths: Sequence[str], x: int = 0, y: int = 0) -> bool:
        """Starts discovery for dropped paths. Drop coordinates are unused.

        Returns False when the drop was rejected because a previous drop is
        still being analysed.
        """
        if self.is_analysing:
            self.logger.warning(f"DROP_REJECTED: analysis in progress ({len(paths)} path(s))")
            self.bus.publish(UserNotice(level="warning", title="Files are already being processed."))
            return False

        self.is_analysing = True
        try:
            self.controller.discover(paths)
        except Exception as e:
            self.logger.error(f"Discovery request failed: {e}")
            self.bus.publish(UserNotice(level="error", title="Error occurred", description=str(e)))
        finally:
            self.is_analysing = False
        return True
