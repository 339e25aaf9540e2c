"""End-to-end batch flow over a real EventBus with a scripted engine."""
import pytest
from pathlib import Path
from vbe.domain.errors import BatchEncodeError, EncodeFailedError
from vbe.domain.events import EncodingProgress, FileDiscovered, FileDiscoveryFailed, JobProgressApplied
from vbe.domain.models import CodecInfo, JobStatus
from vbe.config.models import EncoderSettings
from vbe.pipeline.controller import EncodingController
from vbe.pipeline.dispatcher import EventDispatcher


class ScriptedEngine:
    """Publishes the events a real engine would, from the calling thread."""

    def __init__(self, bus, durations, fail_on=None):
        self.bus = bus
        self.durations = durations
        self.fail_on = fail_on
        self.encoded = []
        self.notified = []

    def discover_files(self, paths):
        for raw in paths:
            name = Path(raw).name
            if name not in self.durations:
                self.bus.publish(FileDiscoveryFailed(message=f"Error while processing video: {name}", path=raw))
                continue
            self.bus.publish(FileDiscovered(name=name, size_bytes=1000, duration_seconds=self.durations[name],
                                            container_format="mov", codec="h264", path=raw))

    def list_available_codecs(self):
        return [CodecInfo(name="h264", display_name="H.264 (CPU)", formats=["mp4"])]

    def start_batch_encode(self, paths, options):
        for raw in paths:
            name = Path(raw).name
            self.bus.publish(EncodingProgress(filename=name, status="processing"))
            half = self.durations[name] / 2
            self.bus.publish(EncodingProgress(filename=name, time=f"0:{int(half):02d}", progress=99.0))
            if self.fail_on in (name, raw):
                raise EncodeFailedError("encoding failed: ffmpeg exited with code 1", detail="broken stream")
            self.bus.publish(EncodingProgress(filename=name, status="completed"))
            self.encoded.append(raw)

    def notify_user(self, title, body):
        self.notified.append(title)


@pytest.fixture
def wiring(event_bus, registry):
    def _wire(durations, fail_on=None):
        engine = ScriptedEngine(event_bus, durations, fail_on=fail_on)
        controller = EncodingController(registry, engine, event_bus, notify_on_finish=True)
        dispatcher = EventDispatcher(event_bus, registry, controller)
        dispatcher.attach()
        return engine, controller, dispatcher
    return _wire


def test_discover_and_encode_all(wiring, event_bus, registry, notices):
    engine, controller, dispatcher = wiring({"first.mp4": 40.0, "second.mp4": 20.0})
    applied = []
    event_bus.subscribe(JobProgressApplied, applied.append)

    dispatcher.handle_file_drop(["/in/first.mp4", "/in/second.mp4", "/in/first.mp4"])
    assert [j.name for j in registry.jobs()] == ["first.mp4", "second.mp4"]

    controller.start_batch(EncoderSettings())

    assert all(j.status == JobStatus.COMPLETED for j in registry.jobs())
    assert registry.overall_percent == 100.0
    assert engine.encoded == ["/in/first.mp4", "/in/second.mp4"]
    assert engine.notified == ["Encoding completed"]
    assert notices[-1].level == "success"

    # Halfway event of the first file: 50% of one job, two jobs tracked
    halfway = [e for e in applied if e.job_id == "job-1" and e.progress_percent == 50.0]
    assert halfway[0].overall_percent == pytest.approx(25.0)
    overall = [e.overall_percent for e in applied]
    assert overall == sorted(overall)


def test_failure_mid_batch(wiring, registry, notices):
    engine, controller, dispatcher = wiring({"first.mp4": 40.0, "second.mp4": 20.0, "third.mp4": 10.0},
                                            fail_on="second.mp4")
    dispatcher.handle_file_drop(["/in/first.mp4", "/in/second.mp4", "/in/third.mp4"])

    with pytest.raises(BatchEncodeError):
        controller.start_batch(EncoderSettings())

    first, second, third = registry.jobs()
    assert first.status == JobStatus.COMPLETED
    assert second.status == JobStatus.FAILED
    assert second.error_message == "encoding failed: ffmpeg exited with code 1"
    assert third.status == JobStatus.PENDING
    assert registry.overall_percent == 0.0
    assert engine.notified == []
    assert notices[-1].level == "error"


def test_retry_after_failure_resets_jobs(wiring, registry):
    engine, controller, dispatcher = wiring({"first.mp4": 40.0}, fail_on="first.mp4")
    dispatcher.handle_file_drop(["/in/first.mp4"])
    with pytest.raises(BatchEncodeError):
        controller.start_batch(EncoderSettings())

    engine.fail_on = None
    controller.start_batch(EncoderSettings())

    job = registry.jobs()[0]
    assert job.status == JobStatus.COMPLETED
    assert job.error_message is None


def test_discovery_failure_and_deselection(wiring, registry, notices):
    engine, controller, dispatcher = wiring({"good.mp4": 30.0, "other.mp4": 30.0})
    dispatcher.handle_file_drop(["/in/good.mp4", "/in/broken.mp4", "/in/other.mp4"])

    assert len(registry) == 2
    assert notices[-1].title == "File processing error"

    other = registry.find_by_path("/in/other.mp4")
    registry.deselect(other.id)
    controller.start_batch(EncoderSettings())

    assert engine.encoded == ["/in/good.mp4"]
    assert other.status == JobStatus.PENDING
    assert registry.overall_percent == pytest.approx(50.0)


def test_shared_file_name_failure_is_not_hidden(wiring, registry, notices):
    engine, controller, dispatcher = wiring({"a.mp4": 40.0}, fail_on="/y/a.mp4")
    dispatcher.handle_file_drop(["/x/a.mp4", "/y/a.mp4"])
    x, y = registry.jobs()

    with pytest.raises(BatchEncodeError):
        controller.start_batch(EncoderSettings())

    assert x.status == JobStatus.COMPLETED
    assert y.status == JobStatus.FAILED
    assert y.progress_percent == pytest.approx(50.0)
    assert engine.encoded == ["/x/a.mp4"]
    assert registry.overall_percent == 0.0
    assert notices[-1].level == "error"


def test_detached_dispatcher_ignores_late_events(wiring, event_bus, registry):
    engine, controller, dispatcher = wiring({"first.mp4": 40.0})
    dispatcher.handle_file_drop(["/in/first.mp4"])
    dispatcher.detach()

    event_bus.publish(EncodingProgress(filename="first.mp4", time="0:20"))

    assert registry.jobs()[0].status == JobStatus.PENDING
